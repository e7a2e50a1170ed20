"""Decoding and dedupe of the notice "read by" column in both shapes."""

import pytest

from partner_portal.services.read_by import (
    ContactList,
    StringList,
    add_reader,
    decode_read_by,
    is_read_by,
)


@pytest.mark.parametrize("raw", [None, "", []])
def test_empty_column_decodes_as_string_list(raw):
    assert decode_read_by(raw) == StringList()


def test_first_element_decides_shape():
    assert isinstance(decode_read_by(["Maria Souza"]), StringList)
    assert isinstance(decode_read_by([{"email": "a@x.com"}]), ContactList)


def test_long_text_column_is_split_and_rejoined():
    column = decode_read_by("Maria Souza, joao@x.com")
    assert column == StringList(("Maria Souza", "joao@x.com"), as_text=True)
    assert add_reader(column, "b@x.com", "Bia").encode() == "Maria Souza, joao@x.com, Bia"


def test_string_entry_matches_name_or_email_case_insensitively():
    column = decode_read_by(["MARIA SOUZA", "joao@x.com"])
    assert is_read_by(column, "maria@x.com", "maria souza")
    assert is_read_by(column, "JOAO@x.com", "Joao")
    assert not is_read_by(column, "ana@x.com", "Ana")


def test_contact_entry_matches_on_email_only():
    column = decode_read_by([{"email": "a@x.com", "name": "Ana"}])
    assert is_read_by(column, "A@X.com", "someone else")
    assert not is_read_by(column, "b@x.com", "Ana")


def test_reader_already_listed_by_name_leaves_column_unchanged():
    column = decode_read_by(["Maria Souza"])
    assert add_reader(column, "maria@x.com", "Maria Souza") is None


def test_contact_shape_is_preserved_when_adding():
    column = decode_read_by([{"email": "a@x.com"}])
    updated = add_reader(column, "b@x.com", "B")
    assert updated.encode() == [{"email": "a@x.com"}, {"email": "b@x.com"}]


def test_string_list_appends_name_or_falls_back_to_email():
    assert add_reader(StringList(), "b@x.com", "Bia").encode() == ["Bia"]
    assert add_reader(StringList(), "b@x.com", "").encode() == ["b@x.com"]


def test_reader_without_identity_is_not_added():
    assert add_reader(StringList(), "", "") is None
    assert add_reader(ContactList(({"email": "a@x.com"},)), "", "Bia") is None


def test_duplicate_contact_by_name_is_not_added():
    column = decode_read_by([{"email": "a@x.com", "name": "Bia"}])
    assert add_reader(column, "other@x.com", "bia") is None


def test_mixed_contact_column_keeps_plain_entries_on_write_back():
    column = decode_read_by([{"email": "a@x.com"}, "Maria Souza"])
    assert isinstance(column, ContactList)
    assert is_read_by(column, "maria@x.com", "maria souza")
    assert add_reader(column, "maria@x.com", "Maria Souza") is None
    updated = add_reader(column, "b@x.com", "B")
    assert updated.encode() == [{"email": "a@x.com"}, "Maria Souza", {"email": "b@x.com"}]
