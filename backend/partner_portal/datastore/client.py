"""
Airtable REST client: lowest level, sends requests and classifies failures.

One `AirtableBase` wraps a single httpx.Client bound to a base id; tables
are lightweight views over it. Callers never see raw HTTP errors, only
RecordStoreError subclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence
import logging
from urllib.parse import quote

import httpx

from partner_portal.datastore.query import ALL, SelectQuery

logger = logging.getLogger(__name__)

# Airtable accepts at most 10 records per create request and 100 per page.
CREATE_BATCH_SIZE = 10
PAGE_SIZE = 100

_TABLE_MISSING_TYPES = {
    "TABLE_NOT_FOUND",
    "INVALID_PERMISSIONS_OR_MODEL_NOT_FOUND",
    "MODEL_ID_NOT_FOUND",
}
_INVALID_QUERY_TYPES = {
    "UNKNOWN_FIELD_NAME",
    "INVALID_FILTER_BY_FORMULA",
    "INVALID_SORT",
    "INVALID_REQUEST_UNKNOWN",
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class RecordStoreError(Exception):
    """Any failed record-store call."""

    def __init__(
        self,
        message: str,
        *,
        table: Optional[str] = None,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.table = table
        self.status_code = status_code
        self.error_type = error_type


class TableNotFoundError(RecordStoreError):
    pass


class RecordNotFoundError(RecordStoreError):
    pass


class InvalidQueryError(RecordStoreError):
    """The query referenced a field or sort the table does not have."""


# ---------------------------------------------------------------------------
# Records and the table contract
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Record:
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    created_time: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Record":
        return cls(
            id=payload.get("id", ""),
            fields=dict(payload.get("fields") or {}),
            created_time=payload.get("createdTime"),
        )


class RecordTable(Protocol):
    """What the portal needs from one table of the record store."""

    name: str

    def select(self, query: SelectQuery = ALL) -> List[Record]:
        ...

    def find(self, record_id: str) -> Record:
        ...

    def create(self, rows: Sequence[Dict[str, Any]]) -> List[Record]:
        ...

    def update(self, record_id: str, fields: Dict[str, Any], typecast: bool = False) -> Record:
        ...


class RecordBase(Protocol):
    base_id: str

    def table(self, name: str) -> RecordTable:
        ...


def _error_type(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        return err.get("type")
    if isinstance(err, str):
        return err
    return None


def classify_error(response: httpx.Response, table: str, *, finding: bool = False) -> RecordStoreError:
    """Map a failed HTTP response onto the error taxonomy."""
    status = response.status_code
    kind = _error_type(response)
    message = f"Airtable API error on '{table}': {status} {kind or ''}".strip()
    kwargs = {"table": table, "status_code": status, "error_type": kind}
    if kind in _TABLE_MISSING_TYPES:
        return TableNotFoundError(message, **kwargs)
    if status == 404:
        if finding:
            return RecordNotFoundError(message, **kwargs)
        return TableNotFoundError(message, **kwargs)
    if status == 422 and (kind in _INVALID_QUERY_TYPES or kind is None):
        return InvalidQueryError(message, **kwargs)
    return RecordStoreError(message, **kwargs)


# ---------------------------------------------------------------------------
# Airtable implementation
# ---------------------------------------------------------------------------

class AirtableTable:
    """One table of an Airtable base, addressed by name or table id."""

    def __init__(self, base: "AirtableBase", name: str) -> None:
        self._base = base
        self.name = name

    @property
    def _path(self) -> str:
        return "/" + quote(self.name, safe="")

    def _send(self, method: str, path: str, *, finding: bool = False, **kwargs: Any) -> Dict[str, Any]:
        try:
            r = self._base.http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RecordStoreError(f"Airtable request to '{self.name}' failed: {e}", table=self.name) from e
        if not r.is_success:
            raise classify_error(r, self.name, finding=finding)
        try:
            return r.json() if r.content else {}
        except ValueError as e:
            raise RecordStoreError(f"Airtable returned a non-JSON body for '{self.name}'", table=self.name) from e

    def select(self, query: SelectQuery = ALL) -> List[Record]:
        """List records matching the query, following pagination offsets."""
        records: List[Record] = []
        offset: Optional[str] = None
        while True:
            params = query.to_params()
            params.append(("pageSize", str(PAGE_SIZE)))
            if offset:
                params.append(("offset", offset))
            body = self._send("GET", self._path, params=params)
            records.extend(Record.from_api(r) for r in body.get("records") or [])
            offset = body.get("offset")
            if not offset:
                break
            if query.max_records is not None and len(records) >= query.max_records:
                break
        if query.max_records is not None:
            records = records[: query.max_records]
        logger.debug(f"select on {self.name} returned {len(records)} records")
        return records

    def find(self, record_id: str) -> Record:
        body = self._send("GET", f"{self._path}/{record_id}", finding=True)
        return Record.from_api(body)

    def create(self, rows: Sequence[Dict[str, Any]]) -> List[Record]:
        created: List[Record] = []
        for start in range(0, len(rows), CREATE_BATCH_SIZE):
            chunk = rows[start:start + CREATE_BATCH_SIZE]
            body = self._send("POST", self._path, json={"records": [{"fields": f} for f in chunk]})
            created.extend(Record.from_api(r) for r in body.get("records") or [])
        return created

    def update(self, record_id: str, fields: Dict[str, Any], typecast: bool = False) -> Record:
        """With typecast, Airtable creates select options that do not exist yet."""
        payload: Dict[str, Any] = {"fields": fields}
        if typecast:
            payload["typecast"] = True
        body = self._send("PATCH", f"{self._path}/{record_id}", finding=True, json=payload)
        return Record.from_api(body)


class AirtableBase:
    """Connection handle for one Airtable base. Owns an httpx.Client."""

    def __init__(
        self,
        base_id: str,
        api_key: str,
        *,
        api_url: str = "https://api.airtable.com/v0",
        timeout: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_id = base_id
        self.http = httpx.Client(
            base_url=f"{api_url.rstrip('/')}/{base_id}",
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    def table(self, name: str) -> AirtableTable:
        return AirtableTable(self, name)

    def close(self) -> None:
        self.http.close()
