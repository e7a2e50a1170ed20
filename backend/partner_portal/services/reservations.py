"""Pre-reservation submission. Totals are always recomputed server-side."""

from typing import Dict, List, Optional, Sequence
import logging

from partner_portal.core.errors import ReservationNotAllowedError
from partner_portal.datastore.models import Agency, Product, Reservation
from partner_portal.datastore.repositories import ReservationRepository
from partner_portal.services.pricing import Quote, SimulationItem, simulate

logger = logging.getLogger(__name__)


def _unique(values: Sequence[str]) -> List[str]:
    seen: List[str] = []
    for v in values:
        if v and v not in seen:
            seen.append(v)
    return seen


def flatten_product_names(quote: Quote) -> str:
    """One descriptive string for the products of a (possibly combined) booking."""
    names = _unique([line.product.tour_name for line in quote.lines])
    return " + ".join(names)


def flatten_destinations(quote: Quote) -> str:
    return ", ".join(_unique([line.product.destination for line in quote.lines]))


def consolidate_pax_names(client_name: str, others: Optional[str]) -> str:
    client_name = client_name.strip()
    others = (others or "").strip()
    return f"{client_name}\n\nOutros: {others}" if others else client_name


def build_reservation(
    quote: Quote,
    date: str,
    client_name: str,
    pax_names: Optional[str] = None,
    agency_id: Optional[str] = None,
    created_by: Optional[str] = None,
) -> Reservation:
    pax = quote.pax
    return Reservation(
        product_name=flatten_product_names(quote),
        destination=flatten_destinations(quote),
        date=date,
        adults=pax.adults,
        children=pax.children,
        infants=pax.infants,
        pax_names=consolidate_pax_names(client_name, pax_names),
        total_amount=quote.total,
        commission_amount=quote.commission,
        agency_id=agency_id,
        created_by=created_by,
    )


def submit_reservation(
    agency: Optional[Agency],
    user_email: str,
    items: Sequence[SimulationItem],
    date: str,
    client_name: str,
    pax_names: Optional[str],
    catalog: Dict[str, Product],
    reservations: ReservationRepository,
) -> Reservation:
    """Create one pre-reservation row. Only agencies allowed to reserve may submit."""
    if agency is None or not agency.can_reserve:
        raise ReservationNotAllowedError("This agency is not enabled for pre-reservations")

    quote = simulate(items, catalog, agency.commission_rate)
    reservation = build_reservation(
        quote, date, client_name, pax_names, agency_id=agency.id, created_by=user_email,
    )
    created = reservations.create(reservation)
    logger.info(f"Pre-reservation {created.id} created by {user_email} "
                f"({created.product_name}, total {created.total_amount:.2f})")
    return created
