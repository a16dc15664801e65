"""
Admin API authentication using the X-API-KEY header.
"""

import secrets

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from src.config.settings import get_settings

api_key_header = APIKeyHeader(name="X-API-KEY", auto_error=False)


def _configured_keys() -> list[str]:
    settings = get_settings()
    return [k.strip() for k in settings.api_keys.split(",") if k.strip()]


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> str:
    """
    Verify the admin API key.

    Args:
        api_key: API key from header

    Returns:
        The validated API key, or "dev-mode" when no keys are configured

    Raises:
        HTTPException: If the key is missing or not configured
    """
    valid_keys = _configured_keys()

    # No keys configured: development mode, everything is allowed
    if not valid_keys:
        return "dev-mode"

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-KEY header.",
        )

    if not any(secrets.compare_digest(api_key, key) for key in valid_keys):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    return api_key
