"""
User Activity Logger - Records user actions on the tastybite.activity logger

Usage:
    from utils.activity_logger import log_action

    log_action(user, "recipe_created", request,
               target_type="recipe", target_id=recipe["id"],
               details={"name": recipe["name"]})
"""

import json
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger("tastybite.activity")


def log_user_activity(
    user_id: str,
    action: str,
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> bool:
    """
    Log one user action.

    Actions include:
    - register, login
    - recipe_created, recipe_updated, recipe_deleted
    - recipe_favorited, recipe_unfavorited, favorite_removed

    Returns:
        True if logged successfully, False otherwise
    """
    try:
        details_str = json.dumps(details, default=str) if details else "-"
        logger.info(
            f"ACTIVITY: user={user_id[:8]}... action={action} "
            f"target={target_type or '-'}:{target_id[:8] if target_id else '-'} "
            f"ip={ip_address or 'unknown'} details={details_str}"
        )
        return True
    except Exception as e:
        logger.error(f"Failed to log user activity: {e}")
        return False


def log_action(user: dict, action: str, request=None, **kwargs) -> bool:
    """
    Log an action from a user dict and an optional FastAPI request.

    Args:
        user: User dict from the get_current_user dependency
        action: The action performed
        request: FastAPI Request object (optional)
        **kwargs: Passed through to log_user_activity
    """
    ip_address = None
    if request is not None and request.client:
        ip_address = request.client.host

    return log_user_activity(
        user_id=str(user.get("id", "unknown")),
        action=action,
        ip_address=ip_address,
        **kwargs
    )
