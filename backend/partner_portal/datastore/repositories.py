"""
Repository pattern for record-store access.
Each repository maps raw rows to domain models; schema drift between
tables is absorbed here by mapping missing fields to safe defaults.
"""

from typing import Any, List, Optional, Tuple
import logging
import math

from partner_portal.datastore.client import Record, RecordBase, RecordNotFoundError
from partner_portal.datastore.fallback import Candidate, FallbackResult, select_first_success
from partner_portal.datastore.models import (
    Agency,
    Attachment,
    NetPrice,
    Notice,
    Product,
    ReadReceipt,
    Reservation,
)
from partner_portal.datastore.query import ALL, Eq, SelectQuery, Sort, all_of
from partner_portal.datastore.schema import (
    AgencyFields,
    NoticeFields,
    ProductFields,
    ReadLogFields,
    ReservationFields,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Field coercion helpers
# ---------------------------------------------------------------------------

def as_number(value: Any) -> float:
    """Numeric field or 0 when absent, non-numeric or NaN."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return 0.0 if math.isnan(value) or math.isinf(value) else float(value)
    if isinstance(value, str):
        try:
            parsed = float(value.replace(",", "."))
        except ValueError:
            return 0.0
        return 0.0 if math.isnan(parsed) or math.isinf(parsed) else parsed
    return 0.0


def as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if v is not None) or None
    text = str(value).strip()
    return text or None


def as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "sim", "1", "x"}
    return bool(value)


def first_attachment_url(value: Any) -> Optional[str]:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0].get("url")
    return None


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------

def map_product(record: Record) -> Product:
    f = record.fields
    return Product(
        id=record.id,
        destination=as_text(f.get(ProductFields.DESTINATION)) or "General",
        tour_name=as_text(f.get(ProductFields.TOUR_NAME)) or "Unnamed Tour",
        category=as_text(f.get(ProductFields.CATEGORY)) or "Other",
        sub_category=as_text(f.get(ProductFields.SUB_CATEGORY)),
        net_price=NetPrice(
            adult=as_number(f.get(ProductFields.PRICE_ADULT)),
            minor=as_number(f.get(ProductFields.PRICE_MINOR)),
            infant=as_number(f.get(ProductFields.PRICE_INFANT)),
        ),
        pickup=as_text(f.get(ProductFields.PICKUP)),
        return_time=as_text(f.get(ProductFields.RETURN)),
        season=as_text(f.get(ProductFields.SEASON)),
        eligible_days=as_list(f.get(ProductFields.ELIGIBLE_DAYS)),
        description=as_text(f.get(ProductFields.DESCRIPTION)),
        inclusions=as_text(f.get(ProductFields.INCLUSIONS)),
        exclusions=as_text(f.get(ProductFields.EXCLUSIONS)),
        requirements=as_text(f.get(ProductFields.REQUIREMENTS)),
        extra_fees=as_text(f.get(ProductFields.EXTRA_FEES)),
        image_url=first_attachment_url(f.get(ProductFields.MEDIA)),
    )


def map_agency(record: Record) -> Agency:
    f = record.fields
    return Agency(
        id=record.id,
        name=as_text(f.get(AgencyFields.NAME)) or as_text(f.get(AgencyFields.NAME_LEGACY)),
        email=as_text(f.get(AgencyFields.EMAIL)) or "",
        commission_rate=as_number(f.get(AgencyFields.COMMISSION)),
        is_admin=as_bool(f.get(AgencyFields.IS_ADMIN)),
        is_internal=as_bool(f.get(AgencyFields.IS_INTERNAL)),
        can_reserve=as_bool(f.get(AgencyFields.CAN_RESERVE)),
        skills=as_list(f.get(AgencyFields.SKILLS)),
    )


def map_notice(record: Record, is_read: bool) -> Notice:
    f = record.fields
    attachments = []
    for item in f.get(NoticeFields.ATTACHMENTS) or []:
        if isinstance(item, dict) and item.get("url"):
            attachments.append(Attachment(url=item["url"], filename=item.get("filename")))
    return Notice(
        id=record.id,
        title=as_text(f.get(NoticeFields.TITLE)) or "",
        category=as_text(f.get(NoticeFields.CATEGORY)),
        content=as_text(f.get(NoticeFields.DETAILS)) or "",
        published_at=as_text(f.get(NoticeFields.PUBLISHED_AT)) or record.created_time,
        is_new=as_bool(f.get(NoticeFields.IS_NEW)),
        is_read=is_read,
        attachments=attachments,
        requires_confirmation=as_bool(f.get(NoticeFields.REQUIRES_CONFIRMATION)),
    )


def map_read_receipt(record: Record) -> ReadReceipt:
    f = record.fields
    return ReadReceipt(
        notice_id=as_text(f.get(ReadLogFields.NOTICE_ID)) or "",
        user_email=as_text(f.get(ReadLogFields.USER_EMAIL)) or "",
        user_name=as_text(f.get(ReadLogFields.USER_NAME)) or "",
        agency_id=as_text(f.get(ReadLogFields.AGENCY_ID)),
        agency_name=as_text(f.get(ReadLogFields.AGENCY_NAME)),
        timestamp=as_text(f.get(ReadLogFields.TIMESTAMP)) or record.created_time or "",
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

class ProductRepository:
    """Tariff sheet (primary table, then legacy-named fallback)."""

    def __init__(self, base: RecordBase, table: str, legacy_table: str):
        self.base = base
        self.candidates = [Candidate(table), Candidate(legacy_table)]

    def get_all(self) -> List[Product]:
        """Raises FallbackExhaustedError when neither table answers."""
        result = select_first_success(self.base, self.candidates, "fetch products")
        return [map_product(r) for r in result.records]


class AgencyRepository:
    """Agency table, keyed by the identity email."""

    def __init__(self, base: RecordBase, table: str):
        self.base = base
        self.table = table

    def get_by_email(self, email: str) -> Optional[Agency]:
        """Exact-match email lookup capped to one row. Failures degrade to None."""
        query = SelectQuery(where=Eq(AgencyFields.EMAIL, email), max_records=1)
        try:
            records = self.base.table(self.table).select(query)
        except Exception as e:
            logger.error(f"Agency lookup failed on {self.table}: {e}")
            return None
        if not records:
            return None
        return map_agency(records[0])

    def create(self, name: str, email: str, commission_rate: float) -> Agency:
        created = self.base.table(self.table).create([{
            AgencyFields.NAME: name,
            AgencyFields.EMAIL: email,
            AgencyFields.COMMISSION: commission_rate,
        }])
        return map_agency(created[0])


class NoticeRepository:
    """Bulletin board, split across its current and legacy table names."""

    def __init__(self, base: RecordBase, table: str, legacy_table: str):
        self.base = base
        self.tables = [table, legacy_table]
        by_date = (Sort(NoticeFields.PUBLISHED_AT, "desc"),)
        self.list_candidates = [
            Candidate(table, SelectQuery(sort=by_date), f"{table} (sorted)"),
            Candidate(legacy_table, SelectQuery(sort=by_date), f"{legacy_table} (sorted)"),
            Candidate(legacy_table, ALL, f"{legacy_table} (unsorted)"),
        ]

    def list_records(self) -> FallbackResult:
        return select_first_success(self.base, self.list_candidates, "fetch notices")

    def locate(self, notice_id: str) -> Optional[Tuple[str, Record]]:
        """First table holding the notice row, or None if neither does."""
        for table in self.tables:
            try:
                return table, self.base.table(table).find(notice_id)
            except RecordNotFoundError:
                logger.debug(f"Notice {notice_id} not in {table}")
            except Exception as e:
                logger.warning(f"Probe for notice {notice_id} in {table} failed: {e}")
        return None

    def update_read_by(self, table: str, notice_id: str, value: Any) -> Record:
        # "Lido por" is a multiple select in most bases; new readers are new options
        return self.base.table(table).update(notice_id, {NoticeFields.READ_BY: value}, typecast=True)


class ReadLogRepository:
    """Append-only detailed read log."""

    def __init__(self, base: RecordBase, table: str):
        self.base = base
        self.table = table

    def append(self, receipt: ReadReceipt) -> Record:
        row = {
            ReadLogFields.NOTICE_ID: receipt.notice_id,
            ReadLogFields.USER_EMAIL: receipt.user_email,
            ReadLogFields.USER_NAME: receipt.user_name,
            ReadLogFields.AGENCY_ID: receipt.agency_id or "",
            ReadLogFields.TIMESTAMP: receipt.timestamp,
        }
        return self.base.table(self.table).create([row])[0]

    def list_for_notice(self, notice_id: str, agency_id: Optional[str] = None) -> List[ReadReceipt]:
        clauses = [Eq(ReadLogFields.NOTICE_ID, notice_id)]
        if agency_id is not None:
            clauses.append(Eq(ReadLogFields.AGENCY_ID, agency_id))
        query = SelectQuery(where=all_of(*clauses), sort=(Sort(ReadLogFields.TIMESTAMP, "desc"),))
        return [map_read_receipt(r) for r in self.base.table(self.table).select(query)]


class ReservationRepository:
    def __init__(self, base: RecordBase, table: str):
        self.base = base
        self.table = table

    def create(self, reservation: Reservation) -> Reservation:
        row = {
            ReservationFields.PRODUCT: reservation.product_name,
            ReservationFields.DESTINATION: reservation.destination,
            ReservationFields.DATE: reservation.date,
            ReservationFields.ADULTS: reservation.adults,
            ReservationFields.CHILDREN: reservation.children,
            ReservationFields.INFANTS: reservation.infants,
            ReservationFields.PAX_NAMES: reservation.pax_names,
            ReservationFields.TOTAL: reservation.total_amount,
            ReservationFields.COMMISSION: reservation.commission_amount,
        }
        if reservation.agency_id:
            row[ReservationFields.AGENCY_ID] = reservation.agency_id
        if reservation.created_by:
            row[ReservationFields.CREATED_BY] = reservation.created_by
        created = self.base.table(self.table).create([row])
        return reservation.model_copy(update={"id": created[0].id})
