"""
Tariff sheet routes: the agency-priced product catalog.

Endpoints:
  GET /products               -- products with consumer prices for the viewer's agency
  GET /products/meta/filters  -- unique categories and destinations
"""

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from typing import List, Optional
import logging

from partner_portal.api.deps import get_agency_context, get_product_repository
from partner_portal.core.errors import ProductsUnavailableError
from partner_portal.core.rate_limiting import limiter, CATALOG_LIMIT
from partner_portal.datastore.fallback import FallbackExhaustedError
from partner_portal.datastore.models import AgencyProduct, Product
from partner_portal.datastore.repositories import ProductRepository
from partner_portal.services.identity import AgencyContext
from partner_portal.services.pricing import price_catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


class ProductListResponse(BaseModel):
    products: List[AgencyProduct]
    commission_rate: float
    error: Optional[str] = None


class FilterOptionsResponse(BaseModel):
    categories: List[str]
    destinations: List[str]


def load_products(repo: ProductRepository) -> List[Product]:
    try:
        return repo.get_all()
    except FallbackExhaustedError as e:
        cause = str(e.last_error) or "Unknown error"
        logger.error(f"Product fetch failed on every table: {e}")
        raise ProductsUnavailableError(
            f"Failed to load products: {cause}. Check your connection and credentials."
        ) from e


def filter_products(
    products: List[AgencyProduct],
    search: Optional[str] = None,
    category: Optional[str] = None,
    destination: Optional[str] = None,
) -> List[AgencyProduct]:
    """Search matches tour name or destination; category/destination are exact."""
    term = (search or "").strip().lower()
    result = []
    for p in products:
        if term and term not in p.tour_name.lower() and term not in p.destination.lower():
            continue
        if category and p.category != category:
            continue
        if destination and p.destination != destination:
            continue
        result.append(p)
    return result


@router.get("", response_model=ProductListResponse)
@limiter.limit(CATALOG_LIMIT)
def list_agency_products(
    request: Request,
    search: Optional[str] = Query(None, max_length=200, description="Tour name or destination"),
    category: Optional[str] = Query(None, max_length=200),
    destination: Optional[str] = Query(None, max_length=200),
    ctx: AgencyContext = Depends(get_agency_context),
    repo: ProductRepository = Depends(get_product_repository),
):
    """
    Tariff sheet priced for the viewer's agency.
    No agency match means commission 0: consumer price equals net price.
    """
    priced = price_catalog(load_products(repo), ctx.commission_rate)
    return ProductListResponse(
        products=filter_products(priced, search, category, destination),
        commission_rate=ctx.commission_rate,
    )


@router.get("/meta/filters", response_model=FilterOptionsResponse)
@limiter.limit(CATALOG_LIMIT)
def get_filter_options(
    request: Request,
    ctx: AgencyContext = Depends(get_agency_context),
    repo: ProductRepository = Depends(get_product_repository),
):
    products = load_products(repo)
    return FilterOptionsResponse(
        categories=sorted({p.category for p in products}),
        destinations=sorted({p.destination for p in products}),
    )
