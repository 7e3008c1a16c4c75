"""Shared API dependencies."""
import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException

from jobboard.config import settings

logger = logging.getLogger(__name__)


async def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """
    Admin actions require the X-Admin-Token header.

    Returns:
        None

    Raises:
        HTTPException(401): Header missing or not matching ADMIN_TOKEN
    """
    if not x_admin_token or not secrets.compare_digest(x_admin_token, settings.admin_token):
        logger.warning("Rejected admin request with missing or invalid token")
        raise HTTPException(status_code=401, detail="Admin token required")
