"""Tests for the Django ORM stores.

Run with: pytest django-api/tests/test_stores.py -v
"""

from dataclasses import replace

import pytest
from django.db import OperationalError

from clubs.domain import Book, BookClub, BookStatus, User, Vote
from clubs.domain.errors import StaleStateError, UpstreamFailureError
from clubs.stores.django_store import (
    DjangoBookClubStore,
    DjangoClubStateStore,
    DjangoUserStore,
)
from clubs.stores.interfaces import DuplicateKeyError
from conftest import FIXED_NOW

pytestmark = pytest.mark.django_db


def _club(**overrides) -> BookClub:
    fields = {
        "id": "club-1",
        "name": "Readers",
        "owner_id": "u1",
        "members": ("u1",),
        "invite_code": "ABC123",
    }
    return BookClub(**{**fields, **overrides})


class TestDjangoUserStore:
    def test_insert_and_find(self):
        store = DjangoUserStore()
        user = User(id="u1", name="Ada", email="ada@example.com")
        store.insert(user)
        assert store.find_by_email("ada@example.com") == user
        assert store.find_by_id("u1") == user
        assert store.find_by_id("missing") is None
        assert store.list_users() == [user]

    def test_duplicate_email_rejected(self):
        store = DjangoUserStore()
        store.insert(User(id="u1", name="Ada", email="ada@example.com"))
        with pytest.raises(DuplicateKeyError):
            store.insert(User(id="u2", name="Ada Again", email="ada@example.com"))

    def test_driver_failure_becomes_upstream_error(self, monkeypatch):
        """Database errors surface as UpstreamFailureError."""

        class BrokenManager:
            def filter(self, **kwargs):
                raise OperationalError("connection refused")

        monkeypatch.setattr("clubs.stores.django_store.UserRecord.objects", BrokenManager())
        with pytest.raises(UpstreamFailureError):
            DjangoUserStore().find_by_email("ada@example.com")


class TestDjangoBookClubStore:
    def test_insert_and_lookup(self):
        store = DjangoBookClubStore()
        store.insert(_club())
        assert store.find_by_id("club-1") == _club()
        assert store.find_by_invite_code("ABC123") == _club()
        assert store.find_by_invite_code("ZZZZZZ") is None

    def test_duplicate_invite_code_rejected(self):
        store = DjangoBookClubStore()
        store.insert(_club())
        with pytest.raises(DuplicateKeyError):
            store.insert(_club(id="club-2"))

    def test_append_keeps_join_order_and_duplicates(self):
        """Members are appended in order and a rejoin is recorded twice."""
        store = DjangoBookClubStore()
        store.insert(_club())
        store.append_member("club-1", "u2")
        club = store.append_member("club-1", "u2")
        assert club.members == ("u1", "u2", "u2")
        assert store.list_for_member("u2") == [club]

    def test_append_to_missing_club(self):
        assert DjangoBookClubStore().append_member("missing", "u1") is None

    def test_update_replaces_fields(self):
        store = DjangoBookClubStore()
        store.insert(_club())
        club = store.update("club-1", {"name": "Night Readers", "members": ["u3", "u1"]})
        assert club.name == "Night Readers"
        assert club.members == ("u3", "u1")
        assert club.invite_code == "ABC123"
        assert store.update("missing", {"name": "X"}) is None


class TestDjangoClubStateStore:
    def _book(self, meeting) -> Book:
        return Book(
            id="b1",
            title="Piranesi",
            author="Susanna Clarke",
            selected_by="m1",
            status=BookStatus.READING,
            start_date=FIXED_NOW,
            ratings={"m2": 4},
            page_count=272,
            meetings=(meeting,),
            votes={"m2": Vote.APPROVE},
        )

    def test_insert_default_is_empty(self):
        state = DjangoClubStateStore().insert_default("club-1")
        assert state.current_book is None
        assert state.book_history == ()
        assert state.versions.get("book_history") == 0

    def test_insert_default_keeps_existing(self, members):
        store = DjangoClubStateStore()
        store.find_and_update("club-1", {"next_selector": members[0]})
        assert store.insert_default("club-1").next_selector == members[0]

    def test_round_trip_through_documents(self, meeting, members):
        """Books, meetings and members come back equal to what was stored."""
        store = DjangoClubStateStore()
        book = self._book(meeting)
        finished = replace(book, id="b0", status=BookStatus.COMPLETED, end_date=FIXED_NOW)
        store.find_and_update(
            "club-1",
            {"current_book": book, "book_history": (finished,), "next_selector": members[1]},
        )

        state = store.find("club-1")
        assert state.current_book == book
        assert state.book_history == (finished,)
        assert state.next_selector == members[1]
        assert state.versions.get("current_book") == 1

    def test_stale_versions_write_nothing(self, meeting, members):
        store = DjangoClubStateStore()
        store.find_and_update("club-1", {"current_book": self._book(meeting)})
        with pytest.raises(StaleStateError):
            store.find_and_update("club-1", {"current_book": None}, {"current_book": 0})
        assert store.find("club-1").current_book is not None

        state = store.find_and_update("club-1", {"current_book": None}, {"current_book": 1})
        assert state.current_book is None
        assert state.versions.get("current_book") == 2
