"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app

from authgate.api.deps import json_response, timing, with_services
from authgate.core.extensions import Services
from authgate.services._shared.errors import CacheUnavailableError

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
@with_services
async def healthcheck(services: Services):
    """Return application and shared cache health information."""

    cache_status = "ok"
    try:
        if not await services.cache.ping():
            cache_status = "fail"
    except CacheUnavailableError:
        current_app.logger.warning("healthcheck.cache_error", exc_info=True)
        cache_status = "fail"
    version = current_app.config.get("APP_VERSION", "dev")
    payload = {
        "status": "ok" if cache_status == "ok" else "degraded",
        "cache": cache_status,
        "version": version,
    }
    return json_response(payload, status=200 if cache_status == "ok" else 503)
