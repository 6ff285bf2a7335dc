"""Lifecycle service - runs engine operations against the stored club state.

Every operation follows the same synchronization routine:

1. load the club, its resolved members and its state document
2. compute the next state with ``BookLifecycle``
3. save only the fields the operation changed, guarded by their versions
4. reload and return the reconciled snapshot

A rejected operation raises the matching domain error and writes nothing.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from clubs.domain import BookClub, BookClubState, BookDraft, Meeting, Member, Vote
from clubs.domain.errors import UnauthorizedError
from clubs.domain.lifecycle import BookLifecycle, Rejected, TransitionResult
from clubs.domain.statistics import ClubStats, compute_club_stats
from clubs.services.identity_service import IdentityService
from clubs.services.state_service import ClubStateService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClubSnapshot:
    """Everything a client renders for one club."""

    club: BookClub
    members: tuple[Member, ...]
    state: BookClubState


class LifecycleService:
    """Service for book lifecycle operations of a club."""

    def __init__(
        self,
        identity: IdentityService,
        states: ClubStateService,
        lifecycle: BookLifecycle | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._identity = identity
        self._states = states
        self._lifecycle = lifecycle or BookLifecycle()
        self._clock = clock or (lambda: datetime.now(UTC))

    def snapshot(self, club_id: str) -> ClubSnapshot:
        """Load a club with its members and state.

        Raises:
            ClubNotFoundError: If the club does not exist.
        """
        club = self._identity.get_club(club_id)
        members = tuple(self._identity.resolve_members(club))
        return ClubSnapshot(club=club, members=members, state=self._states.load(club_id))

    def statistics(self, club_id: str) -> ClubStats:
        snap = self.snapshot(club_id)
        return compute_club_stats(
            snap.state.current_book, snap.state.book_history, snap.members, self._clock()
        )

    # Selection

    def spin_wheel(self, club_id: str, actor_id: str) -> ClubSnapshot:
        def run(snap: ClubSnapshot) -> TransitionResult:
            self._require_member(snap.members, actor_id)
            return self._lifecycle.spin_wheel(snap.state, snap.members)

        return self._apply(club_id, "spin_wheel", run)

    def select_next_reader(self, club_id: str, actor_id: str, member_id: str) -> ClubSnapshot:
        """Owner-only explicit pick of the next selector."""

        def run(snap: ClubSnapshot) -> TransitionResult:
            if actor_id != snap.club.owner_id:
                raise UnauthorizedError("Only the club owner can pick the next reader", "not_owner")
            return self._lifecycle.select_next_reader(snap.state, snap.members, member_id)

        return self._apply(club_id, "select_next_reader", run)

    # Proposal and voting

    def propose_book(self, club_id: str, actor_id: str, draft: BookDraft) -> ClubSnapshot:
        return self._apply(
            club_id,
            "propose_book",
            lambda snap: self._lifecycle.propose_book(snap.state, snap.members, actor_id, draft),
        )

    def vote_on_book(self, club_id: str, actor_id: str, vote: Vote) -> ClubSnapshot:
        return self._apply(
            club_id,
            "vote_on_book",
            lambda snap: self._lifecycle.vote_on_book(snap.state, snap.members, actor_id, vote),
        )

    # Setup and reading

    def update_book_setup(
        self, club_id: str, actor_id: str, book_id: str, meetings: Sequence[Meeting]
    ) -> ClubSnapshot:
        return self._apply(
            club_id,
            "update_book_setup",
            lambda snap: self._lifecycle.update_book_setup(snap.state, actor_id, book_id, meetings),
        )

    def start_reading(self, club_id: str, actor_id: str) -> ClubSnapshot:
        return self._apply(
            club_id,
            "start_reading",
            lambda snap: self._lifecycle.start_reading(snap.state, actor_id),
        )

    def add_discussion_topic(self, club_id: str, actor_id: str, text: str) -> ClubSnapshot:
        return self._apply(
            club_id,
            "add_discussion_topic",
            lambda snap: self._lifecycle.add_discussion_topic(
                snap.state, snap.members, actor_id, text
            ),
        )

    def clear_discussion_topics(self, club_id: str, actor_id: str) -> ClubSnapshot:
        return self._apply(
            club_id,
            "clear_discussion_topics",
            lambda snap: self._lifecycle.clear_discussion_topics(snap.state, actor_id),
        )

    def add_discussion(self, club_id: str, actor_id: str, content: str) -> ClubSnapshot:
        return self._apply(
            club_id,
            "add_discussion",
            lambda snap: self._lifecycle.add_discussion(snap.state, snap.members, actor_id, content),
        )

    def update_reading_progress(self, club_id: str, actor_id: str, page: int) -> ClubSnapshot:
        return self._apply(
            club_id,
            "update_reading_progress",
            lambda snap: self._lifecycle.update_reading_progress(
                snap.state, snap.members, actor_id, page
            ),
        )

    def stop_reading(self, club_id: str, actor_id: str) -> ClubSnapshot:
        return self._apply(
            club_id,
            "stop_reading",
            lambda snap: self._lifecycle.stop_reading(snap.state, actor_id),
        )

    def rate_book(self, club_id: str, actor_id: str, book_id: str, rating: int) -> ClubSnapshot:
        return self._apply(
            club_id,
            "rate_book",
            lambda snap: self._lifecycle.rate_book(
                snap.state, snap.members, book_id, actor_id, rating
            ),
        )

    # Synchronization

    def _apply(
        self,
        club_id: str,
        action: str,
        operation: Callable[[ClubSnapshot], TransitionResult],
    ) -> ClubSnapshot:
        before = self.snapshot(club_id)
        result = operation(before)
        if isinstance(result, Rejected):
            logger.info(
                "Rejected %s on book club %s: %s", action, club_id, result.reason.slug
            )
            raise result.to_error()

        changed = result.state.changed_fields(before.state)
        if changed:
            self._states.save(
                club_id,
                **{name: getattr(result.state, name) for name in changed},
                expected_versions={name: before.state.versions.get(name) for name in changed},
            )
        return replace(before, state=self._states.load(club_id))

    @staticmethod
    def _require_member(members: Sequence[Member], actor_id: str) -> None:
        if not any(member.id == actor_id for member in members):
            raise UnauthorizedError("Only club members can do this", "not_a_member")
