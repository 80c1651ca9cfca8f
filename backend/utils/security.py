"""
Security Utilities - Input validation, sanitization, and upload checks
"""
import re
import logging
from pathlib import PurePosixPath
from typing import Optional

logger = logging.getLogger(__name__)

# Maximum lengths for common fields
MAX_EMAIL_LENGTH = 255
MAX_USERNAME_LENGTH = 50

# Same shape the registration form checks on the client
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

ALLOWED_IMAGE_EXTENSIONS = {'jpg', 'jpeg', 'png', 'gif', 'webp'}

# Image magic bytes for content validation
IMAGE_SIGNATURES = {
    b'\xff\xd8\xff': 'jpg',      # JPEG
    b'\x89PNG\r\n\x1a\n': 'png', # PNG
    b'GIF87a': 'gif',            # GIF87a
    b'GIF89a': 'gif',            # GIF89a
}


def validate_email(email: str) -> tuple[bool, Optional[str]]:
    """
    Validate email address format and length.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email:
        return False, "Email is required"

    if len(email) > MAX_EMAIL_LENGTH:
        return False, f"Email must be less than {MAX_EMAIL_LENGTH} characters"

    if not EMAIL_PATTERN.match(email.lower()):
        return False, "Please enter a valid email"

    return True, None


def validate_username(username: str) -> tuple[bool, Optional[str]]:
    """
    Validate a username: required and bounded in length; any characters allowed.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not username or not username.strip():
        return False, "Username is required"

    if len(username) > MAX_USERNAME_LENGTH:
        return False, f"Username must be less than {MAX_USERNAME_LENGTH} characters"

    return True, None


def get_extension(filename: Optional[str]) -> str:
    """Lower-cased extension without the dot, or '' when there is none."""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def safe_stem(filename: Optional[str]) -> str:
    """File name without directories or extension, restricted to safe characters."""
    name = PurePosixPath((filename or "").replace("\\", "/")).name
    stem = name.split(".")[0] if name else ""
    stem = re.sub(r'[^a-zA-Z0-9_-]', '_', stem)
    return stem or "image"


def is_safe_upload_name(filename: str) -> bool:
    """Reject path traversal and hidden files when serving uploads."""
    if not filename or filename.startswith("."):
        return False
    if "/" in filename or "\\" in filename or ".." in filename or "\x00" in filename:
        return False
    return True


def validate_image_content(content: bytes, claimed_extension: str) -> tuple[bool, Optional[str]]:
    """
    Validate image content by checking magic bytes.
    Prevents uploading malicious files with fake extensions.

    Args:
        content: File content bytes
        claimed_extension: The file extension claimed by the upload

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not content:
        return False, "Empty file"

    if len(content) < 8:
        return False, "File too small to be a valid image"

    detected_type = None

    for signature, file_type in IMAGE_SIGNATURES.items():
        if content.startswith(signature):
            detected_type = file_type
            break

    # WebP is RIFF....WEBP
    if content[:4] == b'RIFF' and len(content) >= 12 and content[8:12] == b'WEBP':
        detected_type = 'webp'

    if not detected_type:
        return False, "File content does not match any supported image format"

    claimed = claimed_extension.lower().strip('.')
    if claimed == 'jpeg':
        claimed = 'jpg'

    if detected_type != claimed:
        logger.warning(f"Image content mismatch: claimed {claimed}, detected {detected_type}")
        return False, f"File extension ({claimed}) does not match content ({detected_type})"

    return True, None
