"""
Pricing Engine
==============
Turns operator net prices into consumer prices for one agency.

  consumer = round2(net + net * commission_rate)
  round2(x) = floor(x * 100 + 0.5) / 100      (half-up at the cent)

The commission rate is applied as-is; rates outside [0, 1) are not clamped.

Multi-product simulations sum each product's already-rounded per-category
price times the requested pax, and the commission is taken once on that
consolidated total (never per line then summed).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import logging
import math

from partner_portal.core.errors import ProductNotFoundError
from partner_portal.datastore.models import AgencyProduct, Product

logger = logging.getLogger(__name__)


def round2(value: float) -> float:
    """Round half-up to the cent."""
    return math.floor(value * 100 + 0.5) / 100


def _safe(value: Optional[float]) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def consumer_price(base_price: Optional[float], commission_rate: Optional[float]) -> float:
    """Net price plus commission markup, rounded to the cent. Never raises."""
    base = _safe(base_price)
    rate = _safe(commission_rate)
    return round2(base + base * rate)


_CONSUMER_FIELDS = {"consumer_price", "consumer_price_minor", "consumer_price_infant"}


def price_product(product: Product, commission_rate: float) -> AgencyProduct:
    """Same rate for all three pax categories, each from its own net price."""
    return AgencyProduct(
        **product.model_dump(exclude=_CONSUMER_FIELDS),
        consumer_price=consumer_price(product.net_price.adult, commission_rate),
        consumer_price_minor=consumer_price(product.net_price.minor, commission_rate),
        consumer_price_infant=consumer_price(product.net_price.infant, commission_rate),
    )


def price_catalog(products: Iterable[Product], commission_rate: float) -> List[AgencyProduct]:
    return [price_product(p, commission_rate) for p in products]


# ---------------------------------------------------------------------------
# Sales simulation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PaxCount:
    adults: int = 1
    children: int = 0
    infants: int = 0

    @property
    def total(self) -> int:
        return self.adults + self.children + self.infants


@dataclass(frozen=True)
class SimulationItem:
    product_id: str
    pax: PaxCount = field(default_factory=PaxCount)


@dataclass
class QuoteLine:
    product: AgencyProduct
    pax: PaxCount
    total: float


@dataclass
class Quote:
    lines: List[QuoteLine]
    total: float
    commission: float
    commission_rate: float

    @property
    def pax(self) -> PaxCount:
        return PaxCount(
            adults=sum(line.pax.adults for line in self.lines),
            children=sum(line.pax.children for line in self.lines),
            infants=sum(line.pax.infants for line in self.lines),
        )


def line_total(product: AgencyProduct, pax: PaxCount) -> float:
    return (
        pax.adults * product.consumer_price
        + pax.children * product.consumer_price_minor
        + pax.infants * product.consumer_price_infant
    )


def simulate(items: Iterable[SimulationItem], catalog: Dict[str, Product], commission_rate: float) -> Quote:
    """
    Price a combination of products for the given pax counts.
    Raises ProductNotFoundError for an id missing from the catalog.
    """
    lines: List[QuoteLine] = []
    for item in items:
        product = catalog.get(item.product_id)
        if product is None:
            raise ProductNotFoundError(f"Product {item.product_id} not found")
        priced = price_product(product, commission_rate)
        lines.append(QuoteLine(product=priced, pax=item.pax, total=line_total(priced, item.pax)))

    total = sum(line.total for line in lines)
    commission = total * _safe(commission_rate)
    logger.debug(f"Simulated {len(lines)} lines: total={total:.2f} commission={commission:.2f}")
    return Quote(lines=lines, total=total, commission=commission, commission_rate=_safe(commission_rate))
