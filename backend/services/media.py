"""
Media Store - Recipe image uploads

Two backends share one validation path:
- LocalMediaStore writes files under UPLOAD_DIR and serves them from /uploads
- CloudinaryMediaStore performs a signed upload to Cloudinary over HTTPS
"""
import hashlib
import time
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
import httpx
from fastapi import UploadFile

from config import Settings
from utils.debug import Loggers
from utils.errors import ValidationError, UploadTooLargeError, InternalServerError
from utils.security import (
    ALLOWED_IMAGE_EXTENSIONS,
    get_extension,
    safe_stem,
    validate_image_content,
)

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"


class MediaStore:
    """Validates an uploaded image and hands the bytes to a backend"""

    def __init__(self, max_bytes: int, max_label: str):
        self.max_bytes = max_bytes
        self.max_label = max_label

    async def read_upload(self, upload: UploadFile) -> bytes:
        # Read one byte past the limit so oversize files are detected without buffering them whole
        content = await upload.read(self.max_bytes + 1)
        if len(content) > self.max_bytes:
            Loggers.media.warning("Upload rejected: too large", filename=upload.filename,
                                  max_bytes=self.max_bytes)
            raise UploadTooLargeError(self.max_label)
        return content

    def validate(self, content: bytes, filename: Optional[str]) -> str:
        """Check extension and magic bytes; returns the normalized extension"""
        ext = get_extension(filename)
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise ValidationError(
                "Invalid file type. Allowed: " + ", ".join(sorted(ALLOWED_IMAGE_EXTENSIONS))
            )
        is_valid, error = validate_image_content(content, ext)
        if not is_valid:
            raise ValidationError(error)
        return "jpg" if ext == "jpeg" else ext

    def make_public_id(self, filename: Optional[str]) -> str:
        """<epoch-ms>-<original stem>, plus a short random suffix against collisions"""
        return f"{int(time.time() * 1000)}-{safe_stem(filename)}-{uuid.uuid4().hex[:6]}"

    async def save(self, upload: UploadFile) -> str:
        """Validate and store an uploaded image; returns its durable URL/path"""
        content = await self.read_upload(upload)
        ext = self.validate(content, upload.filename)
        return await self._store(content, upload.filename, ext)

    async def _store(self, content: bytes, filename: Optional[str], ext: str) -> str:
        raise NotImplementedError

    async def discard(self, url: str) -> None:
        """Called when the record referencing an uploaded image was never written"""
        Loggers.media.warning("Orphaned image left in store", url=url)


class LocalMediaStore(MediaStore):
    """Stores images in a local directory, served by GET /uploads/{filename}"""

    URL_PREFIX = "/uploads"

    def __init__(self, upload_dir: str, max_bytes: int, max_label: str):
        super().__init__(max_bytes, max_label)
        self.upload_dir = Path(upload_dir)

    def ensure_upload_dir(self) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self.upload_dir

    def path_for(self, filename: str) -> Path:
        return self.upload_dir / filename

    async def _store(self, content: bytes, filename: Optional[str], ext: str) -> str:
        stored_name = f"{self.make_public_id(filename)}.{ext}"
        try:
            self.ensure_upload_dir()
            async with aiofiles.open(self.path_for(stored_name), 'wb') as f:
                await f.write(content)
        except OSError as e:
            Loggers.media.error(f"Failed to write upload: {e}", exc_info=True, filename=stored_name)
            raise InternalServerError("Image upload failed") from e

        Loggers.media.info("Image stored locally", filename=stored_name, size=len(content))
        return f"{self.URL_PREFIX}/{stored_name}"

    async def discard(self, url: str) -> None:
        stored_name = url.rsplit("/", 1)[-1]
        try:
            await aiofiles.os.remove(self.path_for(stored_name))
        except OSError as e:
            Loggers.media.warning(f"Could not remove orphaned image: {e}", filename=stored_name)
            return
        Loggers.media.info("Orphaned image removed", filename=stored_name)


class CloudinaryMediaStore(MediaStore):
    """Signed uploads to Cloudinary; images are converted to PNG in the target folder"""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str,
        http_client: httpx.AsyncClient,
        max_bytes: int,
        max_label: str
    ):
        super().__init__(max_bytes, max_label)
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.http_client = http_client

    @property
    def upload_url(self) -> str:
        return CLOUDINARY_UPLOAD_URL.format(cloud_name=self.cloud_name)

    def sign(self, params: dict) -> str:
        """SHA-1 over the sorted params joined as k=v&k=v, followed by the API secret"""
        to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
        return hashlib.sha1((to_sign + self.api_secret).encode()).hexdigest()

    async def _store(self, content: bytes, filename: Optional[str], ext: str) -> str:
        params = {
            "folder": self.folder,
            "format": "png",
            "public_id": self.make_public_id(filename),
            "timestamp": str(int(time.time())),
        }
        data = {**params, "api_key": self.api_key, "signature": self.sign(params)}

        try:
            response = await self.http_client.post(
                self.upload_url,
                data=data,
                files={"file": (filename or f"upload.{ext}", content)},
                timeout=30.0
            )
        except httpx.HTTPError as e:
            Loggers.media.error(f"Cloudinary upload failed: {type(e).__name__}: {e}")
            raise InternalServerError("Image upload failed") from e

        if response.status_code != 200:
            Loggers.media.error("Cloudinary rejected upload", status=response.status_code,
                                body=response.text[:200])
            raise InternalServerError("Image upload failed")

        url = response.json().get("secure_url")
        if not url:
            Loggers.media.error("Cloudinary response missing secure_url")
            raise InternalServerError("Image upload failed")

        Loggers.media.info("Image uploaded to Cloudinary", public_id=params["public_id"])
        return url


def create_media_store(settings: Settings, http_client: httpx.AsyncClient) -> MediaStore:
    """Build the configured media store; falls back to local storage if Cloudinary is incomplete"""
    if settings.media_backend == "cloudinary":
        if settings.cloudinary_configured():
            return CloudinaryMediaStore(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                folder=settings.cloudinary_folder,
                http_client=http_client,
                max_bytes=settings.max_upload_bytes,
                max_label=settings.max_upload_label,
            )
        Loggers.media.warning("MEDIA_BACKEND=cloudinary but credentials are missing; using local storage")

    return LocalMediaStore(
        upload_dir=settings.upload_dir,
        max_bytes=settings.max_upload_bytes,
        max_label=settings.max_upload_label,
    )
