"""Bearer API key authentication for the extraction endpoints."""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request

from indicator_system.config.logging import get_logger

logger = get_logger("api.auth")


def require_api_key(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> bool:
    """
    FastAPI dependency validating ``Authorization: Bearer <API_KEY>``.

    The expected key is read from ``request.app.state.settings`` so each
    application instance can be configured independently.

    Raises:
        HTTPException: 401 when the header is missing or not Bearer,
            500 when the server has no key configured, 403 on a wrong key
    """
    client_ip = request.client.host if request.client else None

    if not authorization:
        logger.warning("Missing Authorization header", ip=client_ip, path=request.url.path)
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer":
        logger.warning("Invalid Authorization scheme", ip=client_ip)
        raise HTTPException(
            status_code=401,
            detail="Authorization header must use Bearer scheme",
        )

    expected = request.app.state.settings.api_key
    if not expected:
        logger.error("API_KEY not configured on server")
        raise HTTPException(status_code=500, detail="Server configuration error")

    if not secrets.compare_digest(token.strip(), expected):
        logger.warning("Invalid API key attempt", ip=client_ip, path=request.url.path)
        raise HTTPException(status_code=403, detail="Invalid API key")

    return True
