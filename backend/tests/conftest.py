"""
Shared fixtures: an in-memory record store, a stub identity provider and
a TestClient wired to both through app.state and dependency overrides.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from fastapi.testclient import TestClient

from partner_portal.api.deps import get_settings
from partner_portal.core.config import Settings
from partner_portal.core.rate_limiting import limiter
from partner_portal.datastore.client import Record, RecordNotFoundError, TableNotFoundError
from partner_portal.datastore.query import ALL, And, Eq, IEq, SelectQuery
from partner_portal.datastore.registry import RecordStoreRegistry
from partner_portal.services.identity import CurrentUser

BASE_ID = "appTEST1234567"
CREATED = "2025-01-01T00:00:00.000Z"


# ---------------------------------------------------------------------------
# In-memory record store
# ---------------------------------------------------------------------------

def matches(predicate: Any, fields: Dict[str, Any]) -> bool:
    if predicate is None:
        return True
    if isinstance(predicate, Eq):
        return fields.get(predicate.field) == predicate.value
    if isinstance(predicate, IEq):
        return str(fields.get(predicate.field) or "").lower() == str(predicate.value).lower()
    if isinstance(predicate, And):
        return all(matches(c, fields) for c in predicate.clauses)
    raise TypeError(f"Unsupported predicate {predicate!r}")


class FakeTable:
    def __init__(self, base: "FakeBase", name: str) -> None:
        self.base = base
        self.name = name

    def _check(self, op: str) -> None:
        self.base.calls.append((self.name, op))
        error = self.base.failures.get((self.name, op)) or self.base.failures.get((self.name, "*"))
        if error is not None:
            raise error
        if self.name not in self.base.rows:
            raise TableNotFoundError(f"Table {self.name} not found", table=self.name, status_code=404)

    def select(self, query: SelectQuery = ALL) -> List[Record]:
        self._check("select")
        if query.sort and (self.name, "sort") in self.base.failures:
            raise self.base.failures[(self.name, "sort")]
        rows = [r for r in self.base.rows[self.name] if matches(query.where, r.fields)]
        for s in reversed(query.sort):
            rows.sort(key=lambda r: str(r.fields.get(s.field) or ""), reverse=s.direction == "desc")
        if query.max_records is not None:
            rows = rows[: query.max_records]
        return rows

    def find(self, record_id: str) -> Record:
        self._check("find")
        for r in self.base.rows[self.name]:
            if r.id == record_id:
                return r
        raise RecordNotFoundError(f"Record {record_id} not found", table=self.name, status_code=404)

    def create(self, rows: Sequence[Dict[str, Any]]) -> List[Record]:
        self._check("create")
        created = []
        for fields in rows:
            self.base.counter += 1
            record = Record(id=f"rec{self.base.counter:05d}", fields=dict(fields), created_time=CREATED)
            self.base.rows[self.name].append(record)
            created.append(record)
        return created

    def update(self, record_id: str, fields: Dict[str, Any], typecast: bool = False) -> Record:
        self._check("update")
        self.base.typecasts.append(typecast)
        table = self.base.rows[self.name]
        for i, r in enumerate(table):
            if r.id == record_id:
                table[i] = Record(id=r.id, fields={**r.fields, **fields}, created_time=r.created_time)
                self.base.updates.append((self.name, record_id, dict(fields)))
                return table[i]
        raise RecordNotFoundError(f"Record {record_id} not found", table=self.name, status_code=404)


class FakeBase:
    """
    Tables are lists of Record. A table missing from `rows` behaves like a
    renamed/deleted table; `failures[(table, op)]` injects an error for one
    operation ("*" for all, "sort" for sorted selects only).
    """

    def __init__(self, base_id: str = BASE_ID, rows: Optional[Dict[str, List[Record]]] = None) -> None:
        self.base_id = base_id
        self.rows: Dict[str, List[Record]] = rows or {}
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.calls: List[Tuple[str, str]] = []
        self.updates: List[Tuple[str, str, Dict[str, Any]]] = []
        self.typecasts: List[bool] = []
        self.counter = 0

    def table(self, name: str) -> FakeTable:
        return FakeTable(self, name)

    def add(self, table: str, record_id: str, **fields: Any) -> Record:
        record = Record(id=record_id, fields=fields, created_time=CREATED)
        self.rows.setdefault(table, []).append(record)
        return record

    def fail(self, table: str, op: str = "*", error: Optional[Exception] = None) -> None:
        self.failures[(table, op)] = error or TableNotFoundError(f"{table} unavailable", table=table)

    def fields_of(self, table: str, record_id: str) -> Dict[str, Any]:
        return next(r.fields for r in self.rows[table] if r.id == record_id)


@pytest.fixture
def fake_base() -> FakeBase:
    return FakeBase()


# ---------------------------------------------------------------------------
# Seeded portal data
# ---------------------------------------------------------------------------

AGENT = CurrentUser(id="user_agent", email_addresses=["agent@sol.com"], first_name="Ana", last_name="Lima")
ADMIN = CurrentUser(id="user_admin", email_addresses=["admin@portal.com"], first_name="Paulo")
STRANGER = CurrentUser(id="user_stranger", email_addresses=["nobody@elsewhere.com"], first_name="Nina")
NO_EMAIL = CurrentUser(id="user_noemail", first_name="Ghost")

TOKENS = {
    "tok-agent": AGENT,
    "tok-admin": ADMIN,
    "tok-stranger": STRANGER,
    "tok-noemail": NO_EMAIL,
}


def auth(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def portal_base() -> FakeBase:
    base = FakeBase(rows={
        "Passeios": [],
        "tblkVI2PX3jPgYKXF": [],
        "Mural": [],
        "Notice_read_log": [],
        "Reservas": [],
    })
    base.add("Passeios", "recP1", **{
        "Destino": "Rio de Janeiro", "Atividade": "Cristo Redentor", "Categoria do Serviço": "Tour",
        "INV26 ADU": 100, "INV26 CHD": 50, "INV26 INF": 0,
    })
    base.add("Passeios", "recP2", **{
        "Destino": "Paraty", "Atividade": "Passeio de Escuna", "Categoria do Serviço": "Boat",
        "INV26 ADU": 200, "INV26 CHD": 100, "INV26 INF": 10,
    })
    base.add("tblkVI2PX3jPgYKXF", "recAG1", **{
        "Agency": "Sol Viagens", "mail": "agent@sol.com", "Comision_base": 0.1, "Pode Reservar": True,
    })
    base.add("tblkVI2PX3jPgYKXF", "recADM", **{
        "Agency": "Portal", "mail": "admin@portal.com", "Comision_base": 0, "Admin": True,
    })
    base.add("Mural", "recN1", **{
        "Título": "Welcome", "Detalhes": "Hello partners", "Data de Publicação": "2025-01-02",
        "Lido por": ["Maria Souza"],
    })
    base.add("Mural", "recN2", **{
        "Título": "New rates", "Detalhes": "2026 tariff", "Data de Publicação": "2025-01-03",
        "Lido por": [{"email": "agent@sol.com"}],
    })
    base.add("Notice_read_log", "recL1", **{
        "Notice ID": "recN1", "User Email": "maria@sol.com", "User Name": "Maria Souza",
        "Agency ID": "recAG1", "Timestamp": "2025-01-02T10:00:00Z",
    })
    base.add("Notice_read_log", "recL2", **{
        "Notice ID": "recN1", "User Email": "joao@other.com", "User Name": "Joao",
        "Agency ID": "recAG2", "Timestamp": "2025-01-02T11:00:00Z",
    })
    return base


class FakeIdentity:
    def __init__(self, users: Dict[str, CurrentUser]) -> None:
        self.users = users

    def current_user(self, token: Optional[str]) -> Optional[CurrentUser]:
        return self.users.get(token or "")

    def close(self) -> None:
        pass


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        airtable_api_key="keyTEST",
        airtable_base_id=BASE_ID,
        airtable_product_base_id="",
        airtable_agency_base_id="",
        clerk_secret_key="sk_test",
        debug=True,
    )


@pytest.fixture
def client(portal_base: FakeBase, test_settings: Settings, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from partner_portal.main import app

    monkeypatch.setattr(limiter, "enabled", False)
    app.state.registry = RecordStoreRegistry(lambda base_id: portal_base)
    app.state.identity = FakeIdentity(TOKENS)
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()
