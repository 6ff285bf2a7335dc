"""Book lifecycle engine.

Pure state transitions over a club's ``BookClubState``:

    (no book) -> proposed -> setup -> reading -> completed
                        \\-> vetoed -> proposed ...

Every operation returns ``Accepted`` with the next state or ``Rejected``
with the reason, and never mutates its input. Persisting the result is
the caller's job (see ``clubs.services.lifecycle_service``).
"""

import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from clubs.domain.errors import (
    BookNotFoundError,
    DomainError,
    InvalidInputError,
    InvalidTransitionError,
    MemberNotFoundError,
    UnauthorizedError,
)
from clubs.domain.models import (
    Book,
    BookClubState,
    BookDraft,
    Discussion,
    DiscussionTopic,
    Meeting,
    Member,
)
from clubs.domain.selection import find_member, pick_random_member
from clubs.domain.value_objects import BookStatus, Rating, Vote


class RejectionKind(Enum):
    UNAUTHORIZED = "unauthorized"
    INVALID_TRANSITION = "invalid_transition"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"


class RejectionReason(Enum):
    """Why an operation was refused."""

    NOT_A_MEMBER = ("not_a_member", RejectionKind.UNAUTHORIZED)
    NOT_NEXT_SELECTOR = ("not_next_selector", RejectionKind.UNAUTHORIZED)
    NOT_BOOK_SELECTOR = ("not_book_selector", RejectionKind.UNAUTHORIZED)
    SELF_VOTE = ("self_vote", RejectionKind.UNAUTHORIZED)
    SELECTOR_RATING = ("selector_rating", RejectionKind.UNAUTHORIZED)
    NO_NEXT_SELECTOR = ("no_next_selector", RejectionKind.INVALID_TRANSITION)
    NO_CURRENT_BOOK = ("no_current_book", RejectionKind.INVALID_TRANSITION)
    BOOK_IN_PROGRESS = ("book_in_progress", RejectionKind.INVALID_TRANSITION)
    WRONG_STATUS = ("wrong_status", RejectionKind.INVALID_TRANSITION)
    ALREADY_VOTED = ("already_voted", RejectionKind.INVALID_TRANSITION)
    NO_MEETINGS = ("no_meetings", RejectionKind.INVALID_TRANSITION)
    NO_MEMBERS = ("no_members", RejectionKind.INVALID_TRANSITION)
    BOOK_NOT_FOUND = ("book_not_found", RejectionKind.NOT_FOUND)
    MEMBER_NOT_FOUND = ("member_not_found", RejectionKind.NOT_FOUND)
    INVALID_RATING = ("invalid_rating", RejectionKind.INVALID_INPUT)
    INVALID_PAGE = ("invalid_page", RejectionKind.INVALID_INPUT)
    INVALID_MEETING = ("invalid_meeting", RejectionKind.INVALID_INPUT)
    EMPTY_TEXT = ("empty_text", RejectionKind.INVALID_INPUT)

    def __init__(self, slug: str, kind: RejectionKind) -> None:
        self.slug = slug
        self.kind = kind


@dataclass(frozen=True)
class Accepted:
    state: BookClubState


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    detail: str
    subject: str | None = None

    def to_error(self) -> DomainError:
        """Domain error matching the rejection, for callers that raise."""
        kind = self.reason.kind
        if kind is RejectionKind.UNAUTHORIZED:
            return UnauthorizedError(self.detail, reason=self.reason.slug)
        if kind is RejectionKind.INVALID_TRANSITION:
            return InvalidTransitionError(self.detail, reason=self.reason.slug)
        if self.reason is RejectionReason.BOOK_NOT_FOUND:
            return BookNotFoundError(self.subject or "")
        if self.reason is RejectionReason.MEMBER_NOT_FOUND:
            return MemberNotFoundError(self.subject or "")
        return InvalidInputError(self.detail)


TransitionResult = Accepted | Rejected


@dataclass(frozen=True)
class LifecyclePolicy:
    """Club rules the original behaviour leaves open.

    selector_may_rate: whether the member who proposed a book may rate it.
    reselect_after_veto: whether a veto clears the next selector, forcing
        a new wheel spin or owner pick before the next proposal.
    """

    selector_may_rate: bool = True
    reselect_after_veto: bool = False


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return str(uuid4())


class BookLifecycle:
    """State machine for a club's current book, history and next selector."""

    def __init__(
        self,
        policy: LifecyclePolicy | None = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.policy = policy or LifecyclePolicy()
        self._clock = clock or _utcnow
        self._new_id = id_factory or _new_id
        self._rng = rng

    # Selection

    def spin_wheel(self, state: BookClubState, members: Sequence[Member]) -> TransitionResult:
        """Pick the next selector uniformly at random."""
        if (rejected := self._check_selection_open(state)) is not None:
            return rejected
        if not members:
            return Rejected(RejectionReason.NO_MEMBERS, "The club has no members to pick from")
        return Accepted(replace(state, next_selector=pick_random_member(members, self._rng)))

    def select_next_reader(
        self, state: BookClubState, members: Sequence[Member], member_id: str
    ) -> TransitionResult:
        """Pick the next selector explicitly."""
        if (rejected := self._check_selection_open(state)) is not None:
            return rejected
        member = find_member(members, member_id)
        if member is None:
            return Rejected(
                RejectionReason.MEMBER_NOT_FOUND,
                "Member is not part of this club",
                subject=member_id,
            )
        return Accepted(replace(state, next_selector=member))

    # Proposal and voting

    def propose_book(
        self,
        state: BookClubState,
        members: Sequence[Member],
        proposer_id: str,
        draft: BookDraft,
    ) -> TransitionResult:
        current = state.current_book
        if current is not None and current.status is not BookStatus.VETOED:
            return Rejected(
                RejectionReason.BOOK_IN_PROGRESS,
                f"A book is already {current.status.value}",
            )
        if state.next_selector is None:
            return Rejected(
                RejectionReason.NO_NEXT_SELECTOR,
                "Nobody has been selected to propose the next book",
            )
        if state.next_selector.id != proposer_id:
            return Rejected(
                RejectionReason.NOT_NEXT_SELECTOR,
                "Only the selected member can propose a book",
            )
        if not draft.title.strip() or not draft.author.strip():
            return Rejected(RejectionReason.EMPTY_TEXT, "Title and author are required")

        book = Book(
            id=self._new_id(),
            title=draft.title.strip(),
            author=draft.author.strip(),
            selected_by=proposer_id,
            status=BookStatus.PROPOSED,
            start_date=draft.start_date,
            end_date=draft.end_date,
            cover_url=draft.cover_url,
            page_count=draft.page_count,
            current_page=draft.current_page,
            description=draft.description,
            category=draft.category,
        )
        # A club with nobody else to vote approves immediately.
        return Accepted(self._tally(replace(state, current_book=book), members))

    def vote_on_book(
        self,
        state: BookClubState,
        members: Sequence[Member],
        voter_id: str,
        vote: Vote,
    ) -> TransitionResult:
        book = state.current_book
        if book is None:
            return Rejected(RejectionReason.NO_CURRENT_BOOK, "There is no book to vote on")
        if book.status is not BookStatus.PROPOSED:
            return Rejected(
                RejectionReason.WRONG_STATUS,
                f"Voting is closed, the book is {book.status.value}",
            )
        if voter_id == book.selected_by:
            return Rejected(RejectionReason.SELF_VOTE, "You cannot vote on your own proposal")
        if find_member(members, voter_id) is None:
            return Rejected(RejectionReason.NOT_A_MEMBER, "Only club members can vote")
        if voter_id in book.votes:
            return Rejected(RejectionReason.ALREADY_VOTED, "You already voted on this book")

        voted = replace(book, votes={**book.votes, voter_id: Vote(vote)})
        return Accepted(self._tally(replace(state, current_book=voted), members))

    def _tally(self, state: BookClubState, members: Sequence[Member]) -> BookClubState:
        book = state.current_book
        eligible = {member.id for member in members} - {book.selected_by}
        cast = [vote for voter, vote in book.votes.items() if voter in eligible]
        if len(cast) < len(eligible):
            return state

        veto_count = sum(1 for vote in cast if vote is Vote.VETO)
        # Ties favour approval: exactly half vetoing is not a rejection.
        if veto_count * 2 <= len(eligible):
            return replace(
                state,
                current_book=replace(book, status=BookStatus.SETUP),
                next_selector=None,
            )
        next_selector = None if self.policy.reselect_after_veto else state.next_selector
        return replace(
            state,
            current_book=replace(book, status=BookStatus.VETOED),
            next_selector=next_selector,
        )

    # Setup

    def update_book_setup(
        self,
        state: BookClubState,
        actor_id: str,
        book_id: str,
        meetings: Sequence[Meeting],
    ) -> TransitionResult:
        """Replace the meeting schedule of an approved book."""
        book = state.current_book
        if book is None:
            return Rejected(RejectionReason.NO_CURRENT_BOOK, "There is no book to set up")
        if book.id != book_id:
            return Rejected(
                RejectionReason.BOOK_NOT_FOUND,
                "Only the current book can be set up",
                subject=book_id,
            )
        if book.status not in (BookStatus.APPROVED, BookStatus.SETUP):
            return Rejected(
                RejectionReason.WRONG_STATUS,
                f"Meetings cannot be changed while the book is {book.status.value}",
            )
        if actor_id != book.selected_by:
            return Rejected(
                RejectionReason.NOT_BOOK_SELECTOR,
                "Only the member who picked the book can schedule meetings",
            )
        for meeting in meetings:
            if meeting.end_time < meeting.start_time or meeting.target_page < 0:
                return Rejected(RejectionReason.INVALID_MEETING, "Meeting times or target page are invalid")

        ordered = tuple(sorted(meetings, key=lambda m: (m.date, m.start_time)))
        return Accepted(
            replace(state, current_book=replace(book, meetings=ordered, status=BookStatus.SETUP))
        )

    def start_reading(self, state: BookClubState, actor_id: str) -> TransitionResult:
        book = state.current_book
        if book is None:
            return Rejected(RejectionReason.NO_CURRENT_BOOK, "There is no book to start")
        if book.status is not BookStatus.SETUP:
            return Rejected(
                RejectionReason.WRONG_STATUS,
                f"Reading can only start from setup, the book is {book.status.value}",
            )
        if actor_id != book.selected_by:
            return Rejected(
                RejectionReason.NOT_BOOK_SELECTOR,
                "Only the member who picked the book can start reading",
            )
        if not book.meetings:
            return Rejected(RejectionReason.NO_MEETINGS, "Schedule at least one meeting first")

        started = replace(book, status=BookStatus.READING, start_date=self._clock())
        return Accepted(replace(state, current_book=started))

    # Reading

    def add_discussion_topic(
        self, state: BookClubState, members: Sequence[Member], actor_id: str, text: str
    ) -> TransitionResult:
        book, rejected = self._reading_book(state, members, actor_id)
        if rejected is not None:
            return rejected
        if not text.strip():
            return Rejected(RejectionReason.EMPTY_TEXT, "Topic text is required")

        topic = DiscussionTopic(id=self._new_id(), text=text.strip(), created_at=self._clock())
        updated = replace(book, discussion_topics=(*book.discussion_topics, topic))
        return Accepted(replace(state, current_book=updated))

    def clear_discussion_topics(self, state: BookClubState, actor_id: str) -> TransitionResult:
        book = state.current_book
        if book is None:
            return Rejected(RejectionReason.NO_CURRENT_BOOK, "There is no current book")
        if book.status is not BookStatus.READING:
            return Rejected(
                RejectionReason.WRONG_STATUS,
                f"Topics can only be cleared while reading, the book is {book.status.value}",
            )
        if actor_id != book.selected_by:
            return Rejected(
                RejectionReason.NOT_BOOK_SELECTOR,
                "Only the member who picked the book can clear topics",
            )
        return Accepted(replace(state, current_book=replace(book, discussion_topics=())))

    def add_discussion(
        self, state: BookClubState, members: Sequence[Member], actor_id: str, content: str
    ) -> TransitionResult:
        book, rejected = self._reading_book(state, members, actor_id)
        if rejected is not None:
            return rejected
        if not content.strip():
            return Rejected(RejectionReason.EMPTY_TEXT, "Discussion content is required")

        entry = Discussion(
            id=self._new_id(),
            user_id=actor_id,
            content=content.strip(),
            timestamp=self._clock(),
        )
        updated = replace(book, discussions=(*book.discussions, entry))
        return Accepted(replace(state, current_book=updated))

    def update_reading_progress(
        self, state: BookClubState, members: Sequence[Member], actor_id: str, page: int
    ) -> TransitionResult:
        book, rejected = self._reading_book(state, members, actor_id)
        if rejected is not None:
            return rejected
        if page < 0 or (book.page_count and page > book.page_count):
            return Rejected(RejectionReason.INVALID_PAGE, "Page is outside the book")
        return Accepted(replace(state, current_book=replace(book, current_page=page)))

    def stop_reading(self, state: BookClubState, actor_id: str) -> TransitionResult:
        """Complete the current book and move it into the history."""
        book = state.current_book
        if book is None:
            return Rejected(RejectionReason.NO_CURRENT_BOOK, "There is no book to finish")
        if book.status is not BookStatus.READING:
            return Rejected(
                RejectionReason.WRONG_STATUS,
                f"Only a book being read can be finished, the book is {book.status.value}",
            )
        if actor_id != book.selected_by:
            return Rejected(
                RejectionReason.NOT_BOOK_SELECTOR,
                "Only the member who picked the book can finish it",
            )

        completed = replace(book, status=BookStatus.COMPLETED, end_date=self._clock())
        return Accepted(
            replace(state, current_book=None, book_history=(*state.book_history, completed))
        )

    # Rating

    def rate_book(
        self,
        state: BookClubState,
        members: Sequence[Member],
        book_id: str,
        user_id: str,
        rating: int,
    ) -> TransitionResult:
        """Set ``user_id``'s rating on the current book or a past one."""
        try:
            value = Rating(rating).value
        except ValueError as exc:
            return Rejected(RejectionReason.INVALID_RATING, str(exc))
        book = state.find_book(book_id)
        if book is None:
            return Rejected(RejectionReason.BOOK_NOT_FOUND, "Book not found", subject=book_id)
        if find_member(members, user_id) is None:
            return Rejected(RejectionReason.NOT_A_MEMBER, "Only club members can rate books")
        if not self.policy.selector_may_rate and user_id == book.selected_by:
            return Rejected(RejectionReason.SELECTOR_RATING, "You cannot rate a book you picked")

        rated = replace(book, ratings={**book.ratings, user_id: value})
        if state.current_book is not None and state.current_book.id == book_id:
            return Accepted(replace(state, current_book=rated))
        history = tuple(rated if past.id == book_id else past for past in state.book_history)
        return Accepted(replace(state, book_history=history))

    # Guards

    def _check_selection_open(self, state: BookClubState) -> Rejected | None:
        book = state.current_book
        if book is not None and not book.status.is_terminal:
            return Rejected(
                RejectionReason.BOOK_IN_PROGRESS,
                f"The next reader is chosen once the current book is done, it is {book.status.value}",
            )
        return None

    def _reading_book(
        self, state: BookClubState, members: Sequence[Member], actor_id: str
    ) -> tuple[Book | None, Rejected | None]:
        book = state.current_book
        if book is None:
            return None, Rejected(RejectionReason.NO_CURRENT_BOOK, "There is no current book")
        if book.status is not BookStatus.READING:
            return None, Rejected(
                RejectionReason.WRONG_STATUS,
                f"The book is {book.status.value}, not being read",
            )
        if find_member(members, actor_id) is None:
            return None, Rejected(RejectionReason.NOT_A_MEMBER, "Only club members can do this")
        return book, None
