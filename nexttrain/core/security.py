from typing import Optional

from fastapi import Header, HTTPException, Request, status

from nexttrain.config.settings import settings as default_settings


def api_key_required(request: Request, x_api_key: Optional[str] = Header(None)):
    """Validate the `X-API-Key` header when an API key is configured.

    With no API key configured every request is allowed (development mode).
    """
    settings = getattr(request.app.state, "settings", None) or default_settings
    if settings.API_KEY is None:
        return True
    if x_api_key is None or x_api_key != settings.API_KEY:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API Key")
    return True
