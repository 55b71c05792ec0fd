"""
Ping Route

Connectivity check for the storefront widget. Reports which upstream the
designer is wired to without calling it.
"""

from datetime import datetime, timezone
from urllib.parse import urlparse

from fastapi import APIRouter
from pydantic import BaseModel

from common import global_config

router = APIRouter()


class PingResponse(BaseModel):
    message: str
    upstream_host: str
    api_key_configured: bool
    timestamp: str


@router.get("/ping", response_model=PingResponse)
async def ping() -> PingResponse:
    return PingResponse(
        message="pong",
        upstream_host=urlparse(global_config.pulse.api_base_url).hostname or "",
        api_key_configured=bool(global_config.PULSE_API_KEY),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
