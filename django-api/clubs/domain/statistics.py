"""Club statistics derived from the current book, the history and the members."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from clubs.domain.models import Book, Member
from clubs.domain.value_objects import BookStatus

DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class MemberStats:
    member_id: str
    name: str
    books_selected: int
    average_book_rating: float
    average_given_rating: float


@dataclass(frozen=True)
class HighestRatedBook:
    title: str
    rating: float


@dataclass(frozen=True)
class ClubStats:
    total_books: int
    completed_books: int
    average_rating: float
    total_pages: int
    completed_pages: int
    average_book_length: int
    days_since_start: int
    books_per_month: float
    pages_per_month: int
    total_discussions: int
    average_discussions_per_book: float
    highest_rated_book: HighestRatedBook | None
    member_stats: tuple[MemberStats, ...]


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _mean_of_book_means(books: Sequence[Book]) -> float:
    # Unrated books count as 0 and stay in the denominator.
    return _ratio(sum(book.average_rating() for book in books), len(books))


def compute_club_stats(
    current_book: Book | None,
    book_history: Sequence[Book],
    members: Sequence[Member],
    now: datetime,
) -> ClubStats:
    """Compute dashboard statistics.

    Every division by zero yields 0. Ratings and per-book averages are rounded
    to one decimal, pages and days to whole numbers.
    """
    books = [*([current_book] if current_book is not None else []), *book_history]
    completed = [book for book in books if book.status is BookStatus.COMPLETED]

    total_pages = sum(book.page_count or 0 for book in books)
    completed_pages = sum(book.page_count or 0 for book in completed)

    started = [book.start_date for book in books if book.start_date is not None]
    days_since_start = max(0, round((now - min(started)).total_seconds() / 86400)) if started else 0

    total_discussions = sum(len(book.discussions) for book in books)

    highest = None
    if books:
        # The first of equally rated books wins; unrated books rate 0.
        best = max(books, key=lambda book: book.average_rating())
        highest = HighestRatedBook(title=best.title, rating=round(best.average_rating(), 1))

    member_stats = []
    for member in members:
        selected = [book for book in books if book.selected_by == member.id]
        given = [book.ratings[member.id] for book in books if member.id in book.ratings]
        member_stats.append(
            MemberStats(
                member_id=member.id,
                name=member.name,
                books_selected=len(selected),
                average_book_rating=round(_mean_of_book_means(selected), 1),
                average_given_rating=round(_ratio(sum(given), len(given)), 1),
            )
        )

    return ClubStats(
        total_books=len(books),
        completed_books=len(completed),
        average_rating=round(_mean_of_book_means(books), 1),
        total_pages=total_pages,
        completed_pages=completed_pages,
        average_book_length=round(_ratio(total_pages, len(books))),
        days_since_start=days_since_start,
        books_per_month=round(_ratio(len(books) * DAYS_PER_MONTH, days_since_start), 1),
        pages_per_month=round(_ratio(completed_pages * DAYS_PER_MONTH, days_since_start)),
        total_discussions=total_discussions,
        average_discussions_per_book=round(_ratio(total_discussions, len(books)), 1),
        highest_rated_book=highest,
        member_stats=tuple(member_stats),
    )
