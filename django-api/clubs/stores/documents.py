"""Conversion between domain models and stored JSON documents.

Documents keep the camelCase layout the web client reads and writes, so a
``bookclub_states`` row holds exactly what ``GET /bookclub-state`` returns.
"""

from datetime import UTC, date, datetime, time
from typing import Any

from clubs.domain import (
    Book,
    BookStatus,
    Discussion,
    DiscussionTopic,
    Meeting,
    Member,
    Vote,
)


def _datetime_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _datetime_from_str(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def member_to_document(member: Member | None) -> dict[str, Any] | None:
    if member is None:
        return None
    return {"id": member.id, "name": member.name, "email": member.email}


def member_from_document(doc: dict[str, Any] | None) -> Member | None:
    if not doc:
        return None
    return Member(id=doc["id"], name=doc.get("name", ""), email=doc.get("email", ""))


def meeting_to_document(meeting: Meeting) -> dict[str, Any]:
    return {
        "date": meeting.date.isoformat(),
        "startTime": meeting.start_time.strftime("%H:%M"),
        "endTime": meeting.end_time.strftime("%H:%M"),
        "location": meeting.location,
        "notes": meeting.notes,
        "targetPage": meeting.target_page,
    }


def meeting_from_document(doc: dict[str, Any]) -> Meeting:
    return Meeting(
        date=date.fromisoformat(doc["date"]),
        start_time=time.fromisoformat(doc["startTime"]),
        end_time=time.fromisoformat(doc["endTime"]),
        target_page=int(doc.get("targetPage") or 0),
        location=doc.get("location"),
        notes=doc.get("notes"),
    )


def book_to_document(book: Book | None) -> dict[str, Any] | None:
    if book is None:
        return None
    return {
        "id": book.id,
        "title": book.title,
        "author": book.author,
        "selectedBy": book.selected_by,
        "status": book.status.value,
        "startDate": _datetime_to_str(book.start_date),
        "endDate": _datetime_to_str(book.end_date),
        "ratings": dict(book.ratings),
        "coverUrl": book.cover_url,
        "pageCount": book.page_count,
        "currentPage": book.current_page,
        "meetings": [meeting_to_document(meeting) for meeting in book.meetings],
        "discussions": [
            {
                "id": entry.id,
                "userId": entry.user_id,
                "content": entry.content,
                "timestamp": _datetime_to_str(entry.timestamp),
            }
            for entry in book.discussions
        ],
        "discussionTopics": [
            {"id": topic.id, "text": topic.text, "createdAt": _datetime_to_str(topic.created_at)}
            for topic in book.discussion_topics
        ],
        "votes": {voter: vote.value for voter, vote in book.votes.items()},
        "description": book.description,
        "category": book.category,
    }


def book_from_document(doc: dict[str, Any] | None) -> Book | None:
    if not doc:
        return None
    return Book(
        id=doc["id"],
        title=doc.get("title", ""),
        author=doc.get("author", ""),
        selected_by=doc.get("selectedBy", ""),
        status=BookStatus(doc.get("status", BookStatus.PROPOSED.value)),
        start_date=_datetime_from_str(doc.get("startDate")),
        end_date=_datetime_from_str(doc.get("endDate")),
        ratings={user_id: int(value) for user_id, value in (doc.get("ratings") or {}).items()},
        cover_url=doc.get("coverUrl"),
        page_count=int(doc.get("pageCount") or 0),
        current_page=int(doc.get("currentPage") or 0),
        meetings=tuple(meeting_from_document(m) for m in doc.get("meetings") or []),
        discussions=tuple(
            Discussion(
                id=entry["id"],
                user_id=entry.get("userId", ""),
                content=entry.get("content", ""),
                timestamp=_datetime_from_str(entry.get("timestamp")),
            )
            for entry in doc.get("discussions") or []
        ),
        discussion_topics=tuple(
            DiscussionTopic(
                id=topic["id"],
                text=topic.get("text", ""),
                created_at=_datetime_from_str(topic.get("createdAt")),
            )
            for topic in doc.get("discussionTopics") or []
        ),
        votes={voter: Vote(value) for voter, value in (doc.get("votes") or {}).items()},
        description=doc.get("description"),
        category=doc.get("category"),
    )


def history_to_documents(books: tuple[Book, ...]) -> list[dict[str, Any]]:
    return [book_to_document(book) for book in books]


def history_from_documents(docs: list[dict[str, Any]] | None) -> tuple[Book, ...]:
    return tuple(book_from_document(doc) for doc in docs or [])


STATE_FIELD_CODECS = {
    "current_book": (book_to_document, book_from_document),
    "book_history": (history_to_documents, history_from_documents),
    "next_selector": (member_to_document, member_from_document),
}
