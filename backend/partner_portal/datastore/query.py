"""
Query predicates for the record store.

Only the subset the portal needs: equality, case-insensitive equality,
AND composition, a result cap and sort-by-field. Predicates render to
Airtable `filterByFormula` syntax.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union


def quote(value: Any) -> str:
    """Render a literal for a formula. Strings are single-quoted and escaped."""
    if isinstance(value, bool):
        return "TRUE()" if value else "FALSE()"
    if isinstance(value, (int, float)):
        return repr(value)
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


def field_ref(name: str) -> str:
    return "{" + name.replace("}", "\\}") + "}"


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any

    def to_formula(self) -> str:
        return f"{field_ref(self.field)} = {quote(self.value)}"


@dataclass(frozen=True)
class IEq:
    """Case-insensitive string equality."""
    field: str
    value: str

    def to_formula(self) -> str:
        return f"LOWER({field_ref(self.field)}) = LOWER({quote(self.value)})"


@dataclass(frozen=True)
class And:
    clauses: Tuple["Predicate", ...]

    def to_formula(self) -> str:
        if len(self.clauses) == 1:
            return self.clauses[0].to_formula()
        return "AND(" + ", ".join(c.to_formula() for c in self.clauses) + ")"


Predicate = Union[Eq, IEq, And]


def all_of(*clauses: Predicate) -> Predicate:
    """AND the given clauses; a single clause is returned unwrapped."""
    if not clauses:
        raise ValueError("all_of() needs at least one clause")
    if len(clauses) == 1:
        return clauses[0]
    return And(tuple(clauses))


@dataclass(frozen=True)
class Sort:
    field: str
    direction: str = "desc"


@dataclass(frozen=True)
class SelectQuery:
    where: Optional[Predicate] = None
    max_records: Optional[int] = None
    sort: Tuple[Sort, ...] = ()

    def to_params(self) -> List[Tuple[str, str]]:
        """Query-string parameters for the list-records endpoint."""
        params: List[Tuple[str, str]] = []
        if self.where is not None:
            params.append(("filterByFormula", self.where.to_formula()))
        if self.max_records is not None:
            params.append(("maxRecords", str(self.max_records)))
        for i, s in enumerate(self.sort):
            params.append((f"sort[{i}][field]", s.field))
            params.append((f"sort[{i}][direction]", s.direction))
        return params

    def describe(self) -> Dict[str, Any]:
        return {
            "filter": self.where.to_formula() if self.where is not None else None,
            "max_records": self.max_records,
            "sort": [f"{s.field} {s.direction}" for s in self.sort],
        }


ALL = SelectQuery()
