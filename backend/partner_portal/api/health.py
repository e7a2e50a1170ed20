"""
Health check routes.
Probes for load-balancer readiness; the record store is never queried here.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from datetime import datetime, timezone
import time
import logging

from partner_portal.api.deps import get_settings
from partner_portal.core.config import Settings
from partner_portal.core.rate_limiting import limiter, HEALTH_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

# Track startup time for uptime reporting
_STARTUP_TIME = time.time()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _missing_settings(cfg: Settings) -> list:
    missing = []
    if not cfg.airtable_api_key.strip():
        missing.append("AIRTABLE_API_KEY")
    if not cfg.default_base_id:
        missing.append("AIRTABLE_BASE_ID")
    if not cfg.clerk_secret_key.strip():
        missing.append("CLERK_SECRET_KEY")
    return missing


@router.get("")
@limiter.limit(HEALTH_LIMIT)
def health_check(request: Request, cfg: Settings = Depends(get_settings)):
    """
    Configuration status, open record-store bases and uptime.
    Degraded when credentials are missing or the identity provider failed to start.
    """
    registry = getattr(request.app.state, "registry", None)
    identity = getattr(request.app.state, "identity", None)
    missing = _missing_settings(cfg)

    health = {
        "status": "healthy",
        "record_store": "configured" if cfg.airtable_api_key.strip() and cfg.default_base_id else "unconfigured",
        "identity": "available" if identity is not None else "unavailable",
        "open_bases": len(registry.open_bases()) if registry is not None else 0,
        "uptime_seconds": int(time.time() - _STARTUP_TIME),
        "timestamp": _now(),
    }
    if missing or identity is None:
        health["status"] = "degraded"
        health["missing"] = missing
    return health


@router.get("/ready")
@limiter.limit(HEALTH_LIMIT)
def readiness_check(request: Request, cfg: Settings = Depends(get_settings)):
    """Ready only when credentials are present and the identity provider started."""
    missing = _missing_settings(cfg)
    if missing or getattr(request.app.state, "identity", None) is None:
        logger.warning(f"Readiness check failed, missing settings: {missing}")
        return {"ready": False, "missing": missing, "timestamp": _now()}
    return {"ready": True, "timestamp": _now()}


@router.get("/live")
async def liveness_check():
    """Liveness probe. Returns 200 if service is running."""
    return {"alive": True, "uptime_seconds": int(time.time() - _STARTUP_TIME), "timestamp": _now()}


@router.get("/config")
@limiter.limit(HEALTH_LIMIT)
def config_check(request: Request, cfg: Settings = Depends(get_settings)):
    """Debug-only view of which credentials are set. Values are never echoed."""
    if not cfg.debug:
        raise HTTPException(status_code=404, detail="Not Found")
    return {
        "environment": cfg.environment,
        "has_airtable_api_key": bool(cfg.airtable_api_key.strip()),
        "base_id_prefix": cfg.base_id_prefix,
        "product_base_id_prefix": cfg.product_base_id[:7] + "...",
        "agency_base_id_prefix": cfg.agency_base_id[:7] + "...",
        "has_clerk_secret_key": bool(cfg.clerk_secret_key.strip()),
        "tables": {
            "products": [cfg.product_table, cfg.product_legacy_table],
            "agencies": cfg.agency_table,
            "mural": [cfg.mural_table, cfg.mural_legacy_table],
            "read_log": cfg.read_log_table,
            "reservations": cfg.reservation_table,
        },
    }
