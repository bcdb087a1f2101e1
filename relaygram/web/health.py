"""Health check endpoints for relaygram.

Provides liveness, Prometheus metrics, and a status summary. The running
bridge registers a snapshot provider with `bind_state`.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest

from ..metrics.registry import REGISTRY
from ..runtime.config import AppConfig

logger = logging.getLogger("relaygram.health")

app = FastAPI(title="Relaygram Health API", version="1.0.0")

_state_provider: Optional[Callable[[], Dict[str, Any]]] = None
_config: Optional[AppConfig] = None


def bind_state(provider: Callable[[], Dict[str, Any]], config: AppConfig) -> None:
    """Attach the running bridge so endpoints can report on it."""
    global _state_provider, _config
    _state_provider = provider
    _config = config


@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Bot Active"


@app.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint."""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "environment": {
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        },
    }
    if _state_provider is None:
        health_status["status"] = "starting"
        return health_status

    try:
        bridge = _state_provider()
    except Exception as e:
        logger.exception("Health check failed")
        raise HTTPException(status_code=500, detail=f"Health check failed: {str(e)}")

    health_status["bridge"] = bridge
    if not bridge.get("connected"):
        health_status["status"] = "degraded"
    return health_status


@app.get("/metrics")
async def metrics() -> PlainTextResponse:
    """Prometheus metrics endpoint."""
    return PlainTextResponse(content=generate_latest(REGISTRY).decode("utf-8"))


@app.get("/status")
async def detailed_status() -> Dict[str, Any]:
    """Configuration summary plus health."""
    status: Dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat()}
    if _config is not None:
        status["config"] = {
            "sources": _config.source_channels,
            "destination": _config.dest_channel,
            "responder": _config.translate_bot,
            "target_language": _config.target_language,
            "source_script_ranges": _config.source_script_ranges,
            "translation_timeout": f"{_config.translation_timeout_seconds}s",
            "album_debounce": f"{_config.album_debounce_seconds}s",
            "album_text_only_fallback": _config.album_text_only_fallback,
        }
    status["health"] = await health_check()
    return status
