"""Admin key guard for the JSON objectives API.

The Discord webhook is not guarded here; Discord reaches it directly.
"""

import logging
import secrets

from fastapi import Header, HTTPException, Request

from app.config import settings

logger = logging.getLogger(__name__)


def presented_key(x_api_key: str | None, authorization: str | None) -> str | None:
    """The key from X-API-Key, else from an `Authorization: Bearer` header."""
    if x_api_key is not None:
        return x_api_key
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


async def require_admin_key(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> None:
    """Reject JSON API calls without the configured API_KEY; open when unset."""
    expected = settings.api_key
    if expected is None:
        return

    key = presented_key(x_api_key, authorization)
    if key is None or not secrets.compare_digest(key.encode(), expected.encode()):
        logger.warning("rejected %s %s: bad or missing API key", request.method, request.url.path)
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
