"""Pytest configuration and shared fixtures."""

from datetime import UTC, date, datetime, time
from itertools import count

import pytest
from rest_framework.test import APIClient

from clubs.domain import BookClubState, BookDraft, Meeting, Member
from clubs.domain.lifecycle import BookLifecycle
from clubs.services.container import build_services, reset_services
from clubs.stores.memory_store import (
    InMemoryBookClubStore,
    InMemoryClubStateStore,
    InMemoryUserStore,
)

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def fresh_services():
    reset_services()
    yield
    reset_services()


@pytest.fixture
def lifecycle() -> BookLifecycle:
    ids = count(1)
    return BookLifecycle(clock=lambda: FIXED_NOW, id_factory=lambda: f"id-{next(ids)}")


@pytest.fixture
def members() -> list[Member]:
    return [
        Member(id=f"m{i}", name=name, email=f"{name.lower()}@example.com")
        for i, name in enumerate(["Ada", "Ben", "Cleo", "Dev", "Eve"], start=1)
    ]


@pytest.fixture
def draft() -> BookDraft:
    return BookDraft(title="Piranesi", author="Susanna Clarke", page_count=272)


@pytest.fixture
def meeting() -> Meeting:
    return Meeting(
        date=date(2024, 5, 20),
        start_time=time(19, 0),
        end_time=time(21, 0),
        target_page=120,
        location="Library",
    )


@pytest.fixture
def empty_state() -> BookClubState:
    return BookClubState(book_club_id="club-1")


@pytest.fixture
def memory_services():
    return build_services(InMemoryUserStore(), InMemoryBookClubStore(), InMemoryClubStateStore())


@pytest.fixture
def seeded_club(memory_services):
    """A club owned by Ada with Ben, Cleo and Dev joined through the invite code."""
    identity = memory_services.identity
    users = {
        name: identity.find_or_create_user(f"{name.lower()}@example.com", name)[0]
        for name in ("Ada", "Ben", "Cleo", "Dev")
    }
    club = identity.create_club("Thursday Readers", users["Ada"].id)
    for name in ("Ben", "Cleo", "Dev"):
        club = identity.join_club(club.invite_code, users[name].id)
    return club, users
