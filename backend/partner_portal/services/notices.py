"""
Notice Acknowledgment Tracker
=============================
Read state of bulletin-board notices per viewer.

  list_notices   -- all notices from whichever bulletin table answers,
                    with the viewer's is_read flag
  confirm_read   -- append to the detailed read log AND add the viewer to
                    the notice row's "read by" column (best-effort each)
  list_readers   -- read-log rows for a notice, scoped to one agency
                    unless the caller is an admin

Per (notice, user) the state only moves UNREAD -> READ. The read log is a
history and may hold repeated rows; the "read by" column never does.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional
import logging

from partner_portal.core.errors import BulletinTableNotFoundError
from partner_portal.core.monitoring import track_performance
from partner_portal.datastore.fallback import FallbackExhaustedError
from partner_portal.datastore.models import Notice, ReadReceipt
from partner_portal.datastore.repositories import NoticeRepository, ReadLogRepository, map_notice
from partner_portal.datastore.schema import NoticeFields
from partner_portal.services.read_by import add_reader, decode_read_by, is_read_by

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class ConfirmReadOutcome:
    log_appended: bool = False
    notice_table: Optional[str] = None
    column_updated: bool = False


class NoticeTracker:
    def __init__(
        self,
        notices: NoticeRepository,
        read_log: ReadLogRepository,
        clock: Callable[[], str] = utc_now_iso,
    ):
        self.notices = notices
        self.read_log = read_log
        self.clock = clock

    @track_performance("list notices")
    def list_notices(self, viewer_email: str, viewer_name: str) -> List[Notice]:
        """
        Raises BulletinTableNotFoundError when every table/query candidate
        fails; that case is surfaced so schema drift gets noticed.
        """
        try:
            result = self.notices.list_records()
        except FallbackExhaustedError as e:
            logger.error(f"Bulletin table not found: {e}")
            raise BulletinTableNotFoundError(detail=str(e.last_error)) from e

        notices = []
        for record in result.records:
            column = decode_read_by(record.fields.get(NoticeFields.READ_BY))
            notices.append(map_notice(record, is_read_by(column, viewer_email, viewer_name)))
        return notices

    def confirm_read(
        self,
        notice_id: str,
        user_email: str,
        user_name: str,
        agency_id: Optional[str],
    ) -> ConfirmReadOutcome:
        """
        Both writes are attempted independently; a failure in one is logged
        and does not stop the other. The column write is skipped when the
        reader is already listed.
        """
        outcome = ConfirmReadOutcome()
        receipt = ReadReceipt(
            notice_id=notice_id,
            user_email=user_email,
            user_name=user_name,
            agency_id=agency_id,
            timestamp=self.clock(),
        )

        try:
            self.read_log.append(receipt)
            outcome.log_appended = True
        except Exception as e:
            logger.warning(f"Read log append failed for notice {notice_id} "
                           f"on {self.read_log.table}: {e}")

        located = self.notices.locate(notice_id)
        if located is None:
            logger.info(f"Notice {notice_id} not found in any bulletin table; read-by column untouched")
            return outcome

        table, record = located
        outcome.notice_table = table
        column = decode_read_by(record.fields.get(NoticeFields.READ_BY))
        updated = add_reader(column, user_email, user_name)
        if updated is None:
            logger.debug(f"{user_email} already in read-by column of {notice_id}")
            return outcome

        try:
            self.notices.update_read_by(table, notice_id, updated.encode())
            outcome.column_updated = True
        except Exception as e:
            logger.warning(f"Read-by column update failed for notice {notice_id} on {table}: {e}")
        return outcome

    def list_readers(
        self,
        notice_id: str,
        agency_id: Optional[str] = None,
        is_admin: bool = False,
    ) -> List[ReadReceipt]:
        """Newest first. Non-admins without an agency see nothing."""
        if not is_admin and not agency_id:
            return []
        try:
            readers = self.read_log.list_for_notice(notice_id, None if is_admin else agency_id)
        except Exception as e:
            logger.warning(f"Read log unavailable for notice {notice_id} on {self.read_log.table}: {e}")
            return []
        # ISO-8601 timestamps sort lexicographically
        return sorted(readers, key=lambda r: r.timestamp, reverse=True)
