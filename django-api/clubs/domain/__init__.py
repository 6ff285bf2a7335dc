from clubs.domain.models import (
    Book,
    BookClub,
    BookClubState,
    BookDraft,
    Discussion,
    DiscussionTopic,
    Meeting,
    Member,
    User,
)
from clubs.domain.value_objects import BookStatus, InviteCode, Rating, StateVersions, Vote

__all__ = [
    "Book",
    "BookClub",
    "BookClubState",
    "BookDraft",
    "Discussion",
    "DiscussionTopic",
    "Meeting",
    "Member",
    "User",
    "BookStatus",
    "InviteCode",
    "Rating",
    "StateVersions",
    "Vote",
]
