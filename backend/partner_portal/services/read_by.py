"""
The denormalized "read by" column on a notice row.

The column was configured inconsistently across environments: some bases
hold plain names/emails (multiple select or text), others hold
collaborator objects carrying an email. It is decoded once into a tagged
variant and every check goes through that variant; writes preserve the
shape the column already has.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union


def _norm(value: Any) -> str:
    return str(value or "").strip().casefold()


@dataclass(frozen=True)
class StringList:
    values: Tuple[str, ...] = ()
    # Long-text columns store the list as one comma-separated string.
    as_text: bool = False

    def matches_viewer(self, email: str, name: str) -> bool:
        wanted = {v for v in (_norm(email), _norm(name)) if v}
        return any(_norm(v) in wanted for v in self.values)

    def contains(self, email: str, name: str) -> bool:
        return self.matches_viewer(email, name)

    def with_reader(self, email: str, name: str) -> "StringList":
        return StringList(self.values + (name.strip() or email.strip(),), self.as_text)

    def encode(self) -> Any:
        if self.as_text:
            return ", ".join(self.values)
        return list(self.values)


@dataclass(frozen=True)
class ContactList:
    # Entries are collaborator objects; stray plain strings are kept as-is.
    contacts: Tuple[Any, ...] = ()

    def matches_viewer(self, email: str, name: str) -> bool:
        email_key, name_key = _norm(email), _norm(name)
        for contact in self.contacts:
            if isinstance(contact, dict):
                if email_key and _norm(contact.get("email")) == email_key:
                    return True
            elif _norm(contact) in {email_key, name_key} - {""}:
                return True
        return False

    def contains(self, email: str, name: str) -> bool:
        email_key, name_key = _norm(email), _norm(name)
        for contact in self.contacts:
            if not isinstance(contact, dict):
                contact = {"name": contact, "email": contact}
            if email_key and _norm(contact.get("email")) == email_key:
                return True
            if name_key and _norm(contact.get("name")) == name_key:
                return True
        return False

    def with_reader(self, email: str, name: str) -> "ContactList":
        return ContactList(self.contacts + ({"email": email.strip()},))

    def encode(self) -> Any:
        return [dict(c) if isinstance(c, dict) else c for c in self.contacts]


ReadByColumn = Union[StringList, ContactList]


def decode_read_by(raw: Any) -> ReadByColumn:
    """
    Decode the raw field value. The first element decides the shape; an
    empty or missing column is treated as a string list.
    """
    if raw is None or raw == "" or raw == []:
        return StringList()
    if isinstance(raw, str):
        return StringList(tuple(p.strip() for p in raw.split(",") if p.strip()), as_text=True)
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        return StringList((str(raw),))
    if isinstance(raw[0], dict):
        return ContactList(tuple(dict(c) if isinstance(c, dict) else c for c in raw if c is not None))
    return StringList(tuple(str(v) for v in raw if v is not None))


def is_read_by(column: ReadByColumn, email: str, name: str) -> bool:
    """
    String entries match the viewer's name or email, case-insensitively;
    object entries match on email.
    """
    return column.matches_viewer(email, name)


def add_reader(column: ReadByColumn, email: str, name: str) -> Optional[ReadByColumn]:
    """
    The column with the reader appended, or None when already present.
    Presence is checked against both name and email in either shape.
    """
    if not (email or name) or column.contains(email, name):
        return None
    if isinstance(column, ContactList) and not email.strip():
        return None
    return column.with_reader(email, name)
