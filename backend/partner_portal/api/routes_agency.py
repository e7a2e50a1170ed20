"""
Agency routes.

Endpoints:
  GET  /agency/me  -- the viewer's agency info (null when not registered)
  POST /agency     -- register an agency (admins only)
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from typing import List, Optional
import logging

from partner_portal.api.deps import get_agency_context, get_agency_repository
from partner_portal.core.errors import PortalError, STATUS_FORBIDDEN
from partner_portal.core.rate_limiting import limiter, CATALOG_LIMIT
from partner_portal.datastore.models import Agency
from partner_portal.datastore.repositories import AgencyRepository
from partner_portal.services.identity import AgencyContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agency", tags=["agency"])


class AgencyInfo(BaseModel):
    id: str
    name: Optional[str] = None
    commission_rate: float
    is_admin: bool
    is_internal: bool
    can_reserve: bool
    skills: List[str]


class ViewerResponse(BaseModel):
    email: str
    display_name: str
    agency: Optional[AgencyInfo] = None


class AgencyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    # Not clamped to [0, 1): see DESIGN.md open question on commission range.
    commission_rate: float = Field(0.0, description="Fraction, e.g. 0.10 for 10%")


class AdminRequiredError(PortalError):
    status_code = STATUS_FORBIDDEN
    error = "admin_required"


@router.get("/me", response_model=ViewerResponse)
@limiter.limit(CATALOG_LIMIT)
def get_viewer(request: Request, ctx: AgencyContext = Depends(get_agency_context)):
    agency = None
    if ctx.agency is not None:
        agency = AgencyInfo(**ctx.agency.model_dump(exclude={"email"}))
    return ViewerResponse(email=ctx.email, display_name=ctx.display_name, agency=agency)


@router.post("", response_model=Agency, status_code=201)
@limiter.limit(CATALOG_LIMIT)
def create_agency(
    request: Request,
    body: AgencyCreateRequest,
    ctx: AgencyContext = Depends(get_agency_context),
    agencies: AgencyRepository = Depends(get_agency_repository),
):
    if not ctx.is_admin:
        raise AdminRequiredError("Only administrators can register agencies")
    created = agencies.create(body.name.strip(), body.email.strip(), body.commission_rate)
    logger.info(f"Agency {created.id} registered by {ctx.email}")
    return created
