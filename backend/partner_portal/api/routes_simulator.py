"""
Sales simulator and pre-reservation routes.

Endpoints:
  POST /simulator/quote  -- price a product combination for given pax counts
  POST /reservations     -- submit a pre-reservation (agencies with canReserve)
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from typing import List, Optional
import logging

from partner_portal.api.deps import (
    get_agency_context,
    get_product_repository,
    get_reservation_repository,
)
from partner_portal.api.routes_products import load_products
from partner_portal.core.rate_limiting import limiter, SIMULATOR_LIMIT, RESERVATION_LIMIT
from partner_portal.datastore.models import Reservation
from partner_portal.datastore.repositories import ProductRepository, ReservationRepository
from partner_portal.services.identity import AgencyContext
from partner_portal.services.pricing import PaxCount, SimulationItem, simulate
from partner_portal.services.reservations import submit_reservation

logger = logging.getLogger(__name__)

router = APIRouter(tags=["simulator"])


# ---------------------------------------------------------------------------
# Request / Response Models
# ---------------------------------------------------------------------------

class QuoteItem(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=64)
    adults: int = Field(1, ge=0, le=99)
    children: int = Field(0, ge=0, le=99)
    infants: int = Field(0, ge=0, le=99)

    def to_simulation_item(self) -> SimulationItem:
        return SimulationItem(
            product_id=self.product_id,
            pax=PaxCount(adults=self.adults, children=self.children, infants=self.infants),
        )


class QuoteRequest(BaseModel):
    items: List[QuoteItem] = Field(..., min_length=1, max_length=20)


class QuoteLineResult(BaseModel):
    product_id: str
    tour_name: str
    destination: str
    adults: int
    children: int
    infants: int
    consumer_price: float
    consumer_price_minor: float
    consumer_price_infant: float
    total: float


class QuoteResponse(BaseModel):
    lines: List[QuoteLineResult]
    total: float
    commission: float
    commission_rate: float


class ReservationRequest(QuoteRequest):
    date: str = Field(..., min_length=1, max_length=32, description="Tour date")
    client_name: str = Field(..., min_length=1, max_length=200)
    pax_names: Optional[str] = Field(None, max_length=4000, description="Other passengers")


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------

@router.post("/simulator/quote", response_model=QuoteResponse)
@limiter.limit(SIMULATOR_LIMIT)
def quote(
    request: Request,
    body: QuoteRequest,
    ctx: AgencyContext = Depends(get_agency_context),
    repo: ProductRepository = Depends(get_product_repository),
):
    """Totals use consumer prices; commission is taken on the grand total."""
    catalog = {p.id: p for p in load_products(repo)}
    result = simulate([i.to_simulation_item() for i in body.items], catalog, ctx.commission_rate)
    return QuoteResponse(
        lines=[
            QuoteLineResult(
                product_id=line.product.id,
                tour_name=line.product.tour_name,
                destination=line.product.destination,
                adults=line.pax.adults,
                children=line.pax.children,
                infants=line.pax.infants,
                consumer_price=line.product.consumer_price,
                consumer_price_minor=line.product.consumer_price_minor,
                consumer_price_infant=line.product.consumer_price_infant,
                total=line.total,
            )
            for line in result.lines
        ],
        total=result.total,
        commission=result.commission,
        commission_rate=result.commission_rate,
    )


@router.post("/reservations", response_model=Reservation, status_code=201)
@limiter.limit(RESERVATION_LIMIT)
def create_reservation(
    request: Request,
    body: ReservationRequest,
    ctx: AgencyContext = Depends(get_agency_context),
    products: ProductRepository = Depends(get_product_repository),
    reservations: ReservationRepository = Depends(get_reservation_repository),
):
    return submit_reservation(
        ctx.agency,
        ctx.email,
        [i.to_simulation_item() for i in body.items],
        body.date,
        body.client_name,
        body.pax_names,
        {p.id: p for p in load_products(products)},
        reservations,
    )
