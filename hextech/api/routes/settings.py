from typing import Literal, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter()


class ProviderUpdate(BaseModel):
    mode: Optional[Literal["online", "offline"]] = None
    provider: Optional[Literal["gemini", "openai", "claude"]] = None


class APIKeyUpdate(BaseModel):
    gemini: Optional[str] = None
    openai: Optional[str] = None
    claude: Optional[str] = None


def _mask(value: str) -> str:
    if not value:
        return value
    return value[:4] + "****" + value[-4:] if len(value) > 8 else "****"


@router.get("/")
async def get_settings(request: Request):
    """Get all current settings."""
    config = request.app.state.config_manager.config
    # Return settings without sensitive API keys (masked)
    data = config.model_dump()
    data["api_keys"] = {key: _mask(val) for key, val in data["api_keys"].items()}
    return data


@router.put("/provider")
async def update_provider(body: ProviderUpdate, request: Request):
    """Switch online/offline and select the cloud provider."""
    cm = request.app.state.config_manager
    updates = body.model_dump(exclude_none=True)
    if updates:
        cm.update(**updates)
    return {"mode": cm.config.mode, "provider": cm.config.provider, "status": "updated"}


@router.put("/api-keys")
async def update_api_keys(body: APIKeyUpdate, request: Request):
    """Update API keys for cloud providers."""
    cm = request.app.state.config_manager
    updates = body.model_dump(exclude_none=True)
    if updates:
        cm.update_nested("api_keys", **updates)
    return {"status": "updated"}
