"""
Ordered first-success lookups across renamed tables.

Both the tariff sheet and the bulletin board live in tables that were
renamed at some point. Callers describe the candidates in priority order;
the first (table, query) pair that answers without raising wins and its
rows are returned whole. Rows are never merged across candidates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple
import logging

from partner_portal.datastore.client import Record, RecordBase, RecordStoreError
from partner_portal.datastore.query import ALL, SelectQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    table: str
    query: SelectQuery = ALL
    label: str = ""

    def describe(self) -> str:
        return self.label or self.table


class FallbackExhaustedError(RecordStoreError):
    """Every candidate raised."""

    def __init__(self, operation: str, failures: Sequence[Tuple[Candidate, Exception]]) -> None:
        tried = ", ".join(f"{c.describe()}: {e}" for c, e in failures)
        super().__init__(f"{operation}: all {len(failures)} candidates failed ({tried})")
        self.operation = operation
        self.failures: List[Tuple[Candidate, Exception]] = list(failures)

    @property
    def last_error(self) -> Exception:
        return self.failures[-1][1]


@dataclass
class FallbackResult:
    candidate: Candidate
    records: List[Record] = field(default_factory=list)


def select_first_success(base: RecordBase, candidates: Sequence[Candidate], operation: str) -> FallbackResult:
    """Try each candidate in order; return the first successful selection."""
    if not candidates:
        raise ValueError("select_first_success() needs at least one candidate")
    failures: List[Tuple[Candidate, Exception]] = []
    for candidate in candidates:
        try:
            records = base.table(candidate.table).select(candidate.query)
        except Exception as e:
            logger.warning(f"{operation}: {candidate.describe()} failed, trying next: {e}")
            failures.append((candidate, e))
            continue
        if failures:
            logger.info(f"{operation}: served by fallback {candidate.describe()} ({len(records)} rows)")
        return FallbackResult(candidate=candidate, records=records)
    raise FallbackExhaustedError(operation, failures)
