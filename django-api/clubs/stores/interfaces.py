"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Each store wraps one
collection of the document store: ``users``, ``bookclubs`` and
``bookclub_states``.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from clubs.domain import BookClub, BookClubState, User


class DuplicateKeyError(Exception):
    """Raised by ``insert`` when the natural key is already taken."""


class UserStore(ABC):
    """Interface for the ``users`` collection, keyed by email."""

    @abstractmethod
    def find_by_email(self, email: str) -> User | None:
        ...

    @abstractmethod
    def find_by_id(self, user_id: str) -> User | None:
        ...

    @abstractmethod
    def list_users(self) -> list[User]:
        """Return all users in creation order."""
        ...

    @abstractmethod
    def insert(self, user: User) -> User:
        """Insert a new user.

        Raises:
            DuplicateKeyError: If a user with the same email or id exists.
        """
        ...


class BookClubStore(ABC):
    """Interface for the ``bookclubs`` collection, keyed by invite code."""

    @abstractmethod
    def find_by_id(self, club_id: str) -> BookClub | None:
        ...

    @abstractmethod
    def find_by_invite_code(self, invite_code: str) -> BookClub | None:
        ...

    @abstractmethod
    def list_for_member(self, user_id: str) -> list[BookClub]:
        """Return every club whose member list contains ``user_id``."""
        ...

    @abstractmethod
    def insert(self, club: BookClub) -> BookClub:
        """Insert a new club.

        Raises:
            DuplicateKeyError: If the id or invite code is taken.
        """
        ...

    @abstractmethod
    def append_member(self, club_id: str, user_id: str) -> BookClub | None:
        """Append ``user_id`` to the member list, or return None if the club is missing."""
        ...

    @abstractmethod
    def update(self, club_id: str, fields: Mapping[str, Any]) -> BookClub | None:
        """Overwrite ``name``, ``owner_id`` and/or ``members``; None if the club is missing."""
        ...


class ClubStateStore(ABC):
    """Interface for the ``bookclub_states`` collection, keyed by club id."""

    @abstractmethod
    def find(self, club_id: str) -> BookClubState | None:
        ...

    @abstractmethod
    def insert_default(self, club_id: str) -> BookClubState:
        """Atomically insert the empty state unless one exists; return the stored state."""
        ...

    @abstractmethod
    def find_and_update(
        self,
        club_id: str,
        changes: Mapping[str, Any],
        expected_versions: Mapping[str, int] | None = None,
    ) -> BookClubState:
        """Overwrite the given state fields wholesale, creating the document if needed.

        ``changes`` maps field names from ``STATE_FIELDS`` to new values.
        Each written field's version is bumped by one.

        Raises:
            StaleStateError: If a field in ``expected_versions`` was written
                by someone else since that version. Nothing is written.
        """
        ...
