"""
Bulletin board (mural) routes.

Endpoints:
  GET  /mural                        -- notices with the viewer's read flag
  POST /mural/{notice_id}/confirm    -- confirm reading a notice
  GET  /mural/{notice_id}/readers    -- who has read it (agency-scoped unless admin)
  GET  /read-log?noticeId=...        -- reader log with structured request logging
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import List, Optional
import logging
import traceback

from partner_portal.api.deps import (
    get_agency_context,
    get_agency_repository,
    get_current_user,
    get_notice_tracker,
    get_settings,
)
from partner_portal.core.config import Settings
from partner_portal.core.errors import AgencyNotFoundError, PortalError
from partner_portal.core.monitoring import log_event
from partner_portal.core.rate_limiting import limiter, MURAL_LIMIT
from partner_portal.datastore.models import Notice, ReadReceipt
from partner_portal.datastore.repositories import AgencyRepository
from partner_portal.services.identity import AgencyContext, CurrentUser, resolve_agency_context
from partner_portal.services.notices import NoticeTracker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["mural"])


class NoticeListResponse(BaseModel):
    notices: List[Notice]
    unread: int


class ConfirmReadResponse(BaseModel):
    success: bool
    log_appended: bool
    column_updated: bool


class ReadersResponse(BaseModel):
    success: bool
    readers: List[ReadReceipt]
    error: Optional[str] = None


@router.get("/mural", response_model=NoticeListResponse)
@limiter.limit(MURAL_LIMIT)
def list_notices(
    request: Request,
    ctx: AgencyContext = Depends(get_agency_context),
    tracker: NoticeTracker = Depends(get_notice_tracker),
):
    """Raises 503 "Bulletin table not found" when no bulletin table answers."""
    notices = tracker.list_notices(ctx.email, ctx.display_name)
    return NoticeListResponse(notices=notices, unread=sum(1 for n in notices if not n.is_read))


@router.post("/mural/{notice_id}/confirm", response_model=ConfirmReadResponse)
@limiter.limit(MURAL_LIMIT)
def confirm_read(
    request: Request,
    notice_id: str,
    ctx: AgencyContext = Depends(get_agency_context),
    tracker: NoticeTracker = Depends(get_notice_tracker),
):
    if ctx.agency is None:
        raise AgencyNotFoundError()
    outcome = tracker.confirm_read(notice_id, ctx.email, ctx.display_name, ctx.agency_id)
    return ConfirmReadResponse(
        success=True,
        log_appended=outcome.log_appended,
        column_updated=outcome.column_updated,
    )


@router.get("/mural/{notice_id}/readers", response_model=ReadersResponse)
@limiter.limit(MURAL_LIMIT)
def list_readers(
    request: Request,
    notice_id: str,
    ctx: AgencyContext = Depends(get_agency_context),
    tracker: NoticeTracker = Depends(get_notice_tracker),
):
    """Viewers without an agency get an empty list rather than an error."""
    readers = tracker.list_readers(notice_id, ctx.agency_id, ctx.is_admin)
    return ReadersResponse(success=True, readers=readers)


@router.get("/read-log", response_model=ReadersResponse)
@limiter.limit(MURAL_LIMIT)
def read_log(
    request: Request,
    notice_id: Optional[str] = Query(None, alias="noticeId"),
    user: Optional[CurrentUser] = Depends(get_current_user),
    agencies: AgencyRepository = Depends(get_agency_repository),
    tracker: NoticeTracker = Depends(get_notice_tracker),
    cfg: Settings = Depends(get_settings),
):
    log_data = {
        "baseIdPrefix": cfg.base_id_prefix,
        "noticeId": notice_id,
        "returnedCount": 0,
        "errorStack": None,
    }

    if not notice_id:
        return JSONResponse(status_code=400, content={"success": False, "readers": [], "error": "Missing noticeId"})
    if user is None:
        return JSONResponse(status_code=401, content={"success": False, "readers": [], "error": "Unauthorized"})

    try:
        ctx = resolve_agency_context(user, agencies)
        if ctx.agency is None:
            raise AgencyNotFoundError()
        readers = tracker.list_readers(notice_id, ctx.agency_id, ctx.is_admin)
    except PortalError as e:
        log_data["errorStack"] = traceback.format_exc()
        log_event(logger, "read-log-request", log_data, level=logging.ERROR)
        return JSONResponse(status_code=500, content={"success": False, "readers": [], "error": e.message})

    log_data["returnedCount"] = len(readers)
    log_event(logger, "read-log-request", log_data)
    return ReadersResponse(success=True, readers=readers)
