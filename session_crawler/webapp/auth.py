"""Optional API key check for the crawler endpoints."""

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

API_KEY_HEADER = APIKeyHeader(name="X-API-KEY", auto_error=False)


def verify_api_key(request: Request, api_key: str | None = Depends(API_KEY_HEADER)) -> bool:
    """Reject requests without the configured key. Open when no key is configured."""
    expected = request.app.state.config.api_key
    if expected and not (api_key and secrets.compare_digest(api_key, expected)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API key")
    return True
