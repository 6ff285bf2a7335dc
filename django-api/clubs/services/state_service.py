"""Club state service - fetch-or-default and merge-patch persistence.

Each of ``current_book``, ``book_history`` and ``next_selector`` is written
wholesale when supplied and kept as stored when omitted. An explicit
``None`` is a value, not an omission: ``current_book=None`` clears the book.
"""

import logging
from collections.abc import Mapping

from clubs.domain import BookClubState
from clubs.domain.errors import InvalidInputError
from clubs.domain.models import STATE_FIELDS
from clubs.stores.interfaces import ClubStateStore

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


class ClubStateService:
    """Service for the per-club state document."""

    def __init__(self, store: ClubStateStore) -> None:
        self._store = store

    def load(self, club_id: str) -> BookClubState:
        """Return the club's state, inserting the empty default on first read.

        Raises:
            InvalidInputError: If the club id is blank.
        """
        if not club_id:
            raise InvalidInputError("Book club ID is required")
        state = self._store.find(club_id)
        if state is None:
            logger.info("No state for book club %s, inserting default", club_id)
            state = self._store.insert_default(club_id)
        return state

    def save(
        self,
        club_id: str,
        *,
        current_book=UNSET,
        book_history=UNSET,
        next_selector=UNSET,
        expected_versions: Mapping[str, int] | None = None,
    ) -> BookClubState:
        """Overwrite the supplied fields and keep the rest; upserts.

        Args:
            expected_versions: Optional field name to version map. Only
                versions of fields being written are checked.

        Raises:
            InvalidInputError: If the club id is blank or a version names an unknown field.
            StaleStateError: If a checked field was written since its expected version.
        """
        if not club_id:
            raise InvalidInputError("Book club ID is required")
        unknown = set(expected_versions or {}) - set(STATE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Unknown state fields: {', '.join(sorted(unknown))}")

        supplied = {
            "current_book": current_book,
            "book_history": book_history,
            "next_selector": next_selector,
        }
        changes = {name: value for name, value in supplied.items() if value is not UNSET}
        if "book_history" in changes:
            changes["book_history"] = tuple(changes["book_history"] or ())

        if not changes:
            return self.load(club_id)

        state = self._store.find_and_update(club_id, changes, expected_versions)
        logger.info(
            "Saved %s for book club %s (versions %s)",
            ", ".join(changes),
            club_id,
            state.versions,
        )
        return state
