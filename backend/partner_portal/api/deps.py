"""
FastAPI dependencies: registry, repositories, identity and agency context.
The registry and identity provider live on app.state (created in lifespan).
"""

from typing import Optional

from fastapi import Depends, Request

from partner_portal.core.config import Settings, settings as app_settings
from partner_portal.core.errors import ConfigurationError
from partner_portal.datastore.registry import RecordStoreRegistry
from partner_portal.datastore.repositories import (
    AgencyRepository,
    NoticeRepository,
    ProductRepository,
    ReadLogRepository,
    ReservationRepository,
)
from partner_portal.services.identity import (
    AgencyContext,
    CurrentUser,
    IdentityProvider,
    require_email,
    resolve_agency_context,
)
from partner_portal.services.notices import NoticeTracker

SESSION_COOKIE = "__session"


def get_settings() -> Settings:
    return app_settings


def get_registry(request: Request) -> RecordStoreRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise ConfigurationError("Record store registry is not initialized")
    return registry


def get_identity_provider(request: Request) -> IdentityProvider:
    provider = getattr(request.app.state, "identity", None)
    if provider is None:
        raise ConfigurationError("Identity provider is not configured")
    return provider


def get_session_token(request: Request) -> Optional[str]:
    """Bearer token first, then the session cookie."""
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE)


def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Optional[CurrentUser]:
    return identity.current_user(token)


def get_verified_user(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    """Raises UnauthorizedError before any record-store work happens."""
    require_email(user)
    return user


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

def get_product_repository(
    registry: RecordStoreRegistry = Depends(get_registry),
    cfg: Settings = Depends(get_settings),
) -> ProductRepository:
    return ProductRepository(registry.base(cfg.product_base_id), cfg.product_table, cfg.product_legacy_table)


def get_agency_repository(
    registry: RecordStoreRegistry = Depends(get_registry),
    cfg: Settings = Depends(get_settings),
) -> AgencyRepository:
    return AgencyRepository(registry.base(cfg.agency_base_id), cfg.agency_table)


def get_notice_repository(
    registry: RecordStoreRegistry = Depends(get_registry),
    cfg: Settings = Depends(get_settings),
) -> NoticeRepository:
    return NoticeRepository(registry.base(cfg.default_base_id), cfg.mural_table, cfg.mural_legacy_table)


def get_read_log_repository(
    registry: RecordStoreRegistry = Depends(get_registry),
    cfg: Settings = Depends(get_settings),
) -> ReadLogRepository:
    return ReadLogRepository(registry.base(cfg.default_base_id), cfg.read_log_table)


def get_reservation_repository(
    registry: RecordStoreRegistry = Depends(get_registry),
    cfg: Settings = Depends(get_settings),
) -> ReservationRepository:
    return ReservationRepository(registry.base(cfg.default_base_id), cfg.reservation_table)


def get_notice_tracker(
    notices: NoticeRepository = Depends(get_notice_repository),
    read_log: ReadLogRepository = Depends(get_read_log_repository),
) -> NoticeTracker:
    return NoticeTracker(notices, read_log)


def get_agency_context(
    user: CurrentUser = Depends(get_verified_user),
    agencies: AgencyRepository = Depends(get_agency_repository),
) -> AgencyContext:
    return resolve_agency_context(user, agencies)
