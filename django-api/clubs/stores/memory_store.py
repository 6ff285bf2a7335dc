"""In-memory implementation of the store interfaces.

Used by unit tests and by local runs with ``BOOKCLUB_STORE_BACKEND=memory``.
Domain models are immutable, so they are stored as-is.
"""

import threading
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from clubs.domain import BookClub, BookClubState, User
from clubs.domain.errors import StaleStateError
from clubs.stores.interfaces import BookClubStore, ClubStateStore, DuplicateKeyError, UserStore


class InMemoryUserStore(UserStore):
    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> User | None:
        return next((user for user in self._users.values() if user.email == email), None)

    def find_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def list_users(self) -> list[User]:
        return list(self._users.values())

    def insert(self, user: User) -> User:
        with self._lock:
            if user.id in self._users or self.find_by_email(user.email) is not None:
                raise DuplicateKeyError(user.email)
            self._users[user.id] = user
        return user


class InMemoryBookClubStore(BookClubStore):
    def __init__(self) -> None:
        self._clubs: dict[str, BookClub] = {}
        self._lock = threading.Lock()

    def find_by_id(self, club_id: str) -> BookClub | None:
        return self._clubs.get(club_id)

    def find_by_invite_code(self, invite_code: str) -> BookClub | None:
        return next(
            (club for club in self._clubs.values() if club.invite_code == invite_code), None
        )

    def list_for_member(self, user_id: str) -> list[BookClub]:
        return [club for club in self._clubs.values() if user_id in club.members]

    def insert(self, club: BookClub) -> BookClub:
        with self._lock:
            if club.id in self._clubs or self.find_by_invite_code(club.invite_code) is not None:
                raise DuplicateKeyError(club.invite_code)
            self._clubs[club.id] = club
        return club

    def append_member(self, club_id: str, user_id: str) -> BookClub | None:
        with self._lock:
            club = self._clubs.get(club_id)
            if club is None:
                return None
            club = replace(club, members=(*club.members, user_id))
            self._clubs[club_id] = club
        return club

    def update(self, club_id: str, fields: Mapping[str, Any]) -> BookClub | None:
        with self._lock:
            club = self._clubs.get(club_id)
            if club is None:
                return None
            if "members" in fields:
                fields = {**fields, "members": tuple(fields["members"])}
            club = replace(club, **fields)
            self._clubs[club_id] = club
        return club


class InMemoryClubStateStore(ClubStateStore):
    def __init__(self) -> None:
        self._states: dict[str, BookClubState] = {}
        self._lock = threading.Lock()

    def find(self, club_id: str) -> BookClubState | None:
        return self._states.get(club_id)

    def insert_default(self, club_id: str) -> BookClubState:
        with self._lock:
            return self._states.setdefault(club_id, BookClubState(book_club_id=club_id))

    def find_and_update(
        self,
        club_id: str,
        changes: Mapping[str, Any],
        expected_versions: Mapping[str, int] | None = None,
    ) -> BookClubState:
        with self._lock:
            state = self._states.get(club_id) or BookClubState(book_club_id=club_id)
            stale = tuple(
                name
                for name, version in (expected_versions or {}).items()
                if name in changes and state.versions.get(name) != version
            )
            if stale:
                raise StaleStateError(stale)

            versions = replace(
                state.versions,
                **{name: state.versions.get(name) + 1 for name in changes},
            )
            state = replace(state, **changes, versions=versions)
            self._states[club_id] = state
        return state
