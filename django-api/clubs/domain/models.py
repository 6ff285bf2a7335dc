"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in clubs/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time

from clubs.domain.value_objects import BookStatus, StateVersions, Vote

STATE_FIELDS = ("current_book", "book_history", "next_selector")


@dataclass(frozen=True)
class User:
    """Domain representation of a User."""

    id: str
    name: str
    email: str


@dataclass(frozen=True)
class BookClub:
    """Domain representation of a BookClub.

    ``members`` keeps join order and may contain an id more than once
    when a user joined twice with the invite code.
    """

    id: str
    name: str
    owner_id: str
    members: tuple[str, ...]
    invite_code: str

    def member_ids(self) -> tuple[str, ...]:
        """Member ids in join order without repeats."""
        return tuple(dict.fromkeys(self.members))


@dataclass(frozen=True)
class Member:
    """A user as seen from inside a club."""

    id: str
    name: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "Member":
        return cls(id=user.id, name=user.name, email=user.email)


@dataclass(frozen=True)
class Meeting:
    """A scheduled meeting of the club for the current book."""

    date: date
    start_time: time
    end_time: time
    target_page: int
    location: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DiscussionTopic:
    id: str
    text: str
    created_at: datetime


@dataclass(frozen=True)
class Discussion:
    id: str
    user_id: str
    content: str
    timestamp: datetime


@dataclass(frozen=True)
class BookDraft:
    """What a selector submits when proposing a book."""

    title: str
    author: str
    page_count: int = 0
    current_page: int = 0
    cover_url: str | None = None
    description: str | None = None
    category: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


@dataclass(frozen=True)
class Book:
    """Domain representation of a Book moving through the club lifecycle."""

    id: str
    title: str
    author: str
    selected_by: str
    status: BookStatus
    start_date: datetime | None = None
    end_date: datetime | None = None
    ratings: dict[str, int] = field(default_factory=dict)
    cover_url: str | None = None
    page_count: int = 0
    current_page: int = 0
    meetings: tuple[Meeting, ...] = ()
    discussions: tuple[Discussion, ...] = ()
    discussion_topics: tuple[DiscussionTopic, ...] = ()
    votes: dict[str, Vote] = field(default_factory=dict)
    description: str | None = None
    category: str | None = None

    def average_rating(self) -> float:
        """Mean of the ratings given so far, 0 when unrated."""
        if not self.ratings:
            return 0.0
        return sum(self.ratings.values()) / len(self.ratings)


@dataclass(frozen=True)
class BookClubState:
    """Persistence aggregate: one per club."""

    book_club_id: str
    current_book: Book | None = None
    book_history: tuple[Book, ...] = ()
    next_selector: Member | None = None
    versions: StateVersions = StateVersions()

    def find_book(self, book_id: str) -> Book | None:
        if self.current_book is not None and self.current_book.id == book_id:
            return self.current_book
        for book in self.book_history:
            if book.id == book_id:
                return book
        return None

    def changed_fields(self, other: "BookClubState") -> tuple[str, ...]:
        """Names of the state fields whose values differ from ``other``."""
        return tuple(
            name for name in STATE_FIELDS if getattr(self, name) != getattr(other, name)
        )
