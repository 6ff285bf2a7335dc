"""Serializers for transforming domain models to API payloads and back.

Field names follow the camelCase wire format; ``source`` points at the
snake_case attribute of the domain dataclass, so ``validated_data`` keys
line up with domain constructor arguments.
"""

from rest_framework import serializers

from clubs.domain import (
    Book,
    BookDraft,
    BookStatus,
    Discussion,
    DiscussionTopic,
    Meeting,
    Member,
    Vote,
)

BOOK_STATUS_CHOICES = [status.value for status in BookStatus]
VOTE_CHOICES = [vote.value for vote in Vote]


def _optional_text(**kwargs) -> serializers.CharField:
    return serializers.CharField(allow_null=True, allow_blank=True, default=None, **kwargs)


class UserSerializer(serializers.Serializer):
    """Serializer for User domain model."""

    id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    email = serializers.CharField(read_only=True)


class CreateUserSerializer(serializers.Serializer):
    email = serializers.EmailField()
    name = _optional_text()


class BookClubSerializer(serializers.Serializer):
    """Serializer for BookClub domain model."""

    id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    ownerId = serializers.CharField(source="owner_id", read_only=True)
    members = serializers.ListField(child=serializers.CharField(), read_only=True)
    inviteCode = serializers.CharField(source="invite_code", read_only=True)


class CreateBookClubSerializer(serializers.Serializer):
    name = serializers.CharField()
    ownerId = serializers.CharField()


class PatchBookClubSerializer(serializers.Serializer):
    id = serializers.CharField()
    updates = serializers.DictField()


class JoinBookClubSerializer(serializers.Serializer):
    inviteCode = serializers.CharField()
    userId = serializers.CharField()


class MemberSerializer(serializers.Serializer):
    """Serializer for Member domain model."""

    id = serializers.CharField()
    name = serializers.CharField(allow_blank=True, default="")
    email = serializers.CharField(allow_blank=True, default="")


class MeetingSerializer(serializers.Serializer):
    """Serializer for Meeting domain model."""

    date = serializers.DateField()
    startTime = serializers.TimeField(source="start_time", format="%H:%M")
    endTime = serializers.TimeField(source="end_time", format="%H:%M")
    location = _optional_text()
    notes = _optional_text()
    targetPage = serializers.IntegerField(source="target_page", min_value=0, default=0)


class DiscussionSerializer(serializers.Serializer):
    id = serializers.CharField()
    userId = serializers.CharField(source="user_id")
    content = serializers.CharField()
    timestamp = serializers.DateTimeField(allow_null=True, default=None)


class DiscussionTopicSerializer(serializers.Serializer):
    id = serializers.CharField()
    text = serializers.CharField()
    createdAt = serializers.DateTimeField(source="created_at", allow_null=True, default=None)


class BookSerializer(serializers.Serializer):
    """Serializer for Book domain model."""

    id = serializers.CharField()
    title = serializers.CharField()
    author = serializers.CharField()
    selectedBy = serializers.CharField(source="selected_by")
    status = serializers.ChoiceField(choices=BOOK_STATUS_CHOICES)
    startDate = serializers.DateTimeField(source="start_date", allow_null=True, default=None)
    endDate = serializers.DateTimeField(source="end_date", allow_null=True, default=None)
    ratings = serializers.DictField(
        child=serializers.IntegerField(min_value=1, max_value=5), default=dict
    )
    coverUrl = _optional_text(source="cover_url")
    pageCount = serializers.IntegerField(source="page_count", min_value=0, default=0)
    currentPage = serializers.IntegerField(source="current_page", min_value=0, default=0)
    meetings = MeetingSerializer(many=True, default=list)
    discussions = DiscussionSerializer(many=True, default=list)
    discussionTopics = DiscussionTopicSerializer(
        source="discussion_topics", many=True, default=list
    )
    votes = serializers.DictField(child=serializers.ChoiceField(choices=VOTE_CHOICES), default=dict)
    description = _optional_text()
    category = _optional_text()


def book_from_validated(data) -> Book:
    """Build a Book from ``BookSerializer`` validated data."""
    nested = ("status", "meetings", "discussions", "discussion_topics", "votes", "ratings")
    scalars = {key: value for key, value in data.items() if key not in nested}
    return Book(
        **scalars,
        status=BookStatus(data["status"]),
        ratings=dict(data.get("ratings", {})),
        meetings=tuple(Meeting(**meeting) for meeting in data.get("meetings", [])),
        discussions=tuple(Discussion(**entry) for entry in data.get("discussions", [])),
        discussion_topics=tuple(
            DiscussionTopic(**topic) for topic in data.get("discussion_topics", [])
        ),
        votes={voter: Vote(vote) for voter, vote in data.get("votes", {}).items()},
    )


class StateVersionsSerializer(serializers.Serializer):
    currentBook = serializers.IntegerField(source="current_book", min_value=0, required=False)
    bookHistory = serializers.IntegerField(source="book_history", min_value=0, required=False)
    nextSelector = serializers.IntegerField(source="next_selector", min_value=0, required=False)


class BookClubStateSerializer(serializers.Serializer):
    """Serializer for the BookClubState aggregate."""

    bookClubId = serializers.CharField(source="book_club_id", read_only=True)
    currentBook = BookSerializer(source="current_book", allow_null=True, read_only=True)
    bookHistory = BookSerializer(source="book_history", many=True, read_only=True)
    nextSelector = MemberSerializer(source="next_selector", allow_null=True, read_only=True)
    versions = StateVersionsSerializer(read_only=True)


class StatePatchSerializer(serializers.Serializer):
    """PATCH body for the state document. Omitted fields are left untouched."""

    currentBook = BookSerializer(allow_null=True, required=False)
    bookHistory = BookSerializer(many=True, required=False)
    nextSelector = MemberSerializer(allow_null=True, required=False)
    versions = StateVersionsSerializer(required=False)

    def to_changes(self) -> dict:
        """Keyword arguments for ``ClubStateService.save``."""
        data = self.validated_data
        changes = {}
        if "currentBook" in data:
            book = data["currentBook"]
            changes["current_book"] = book_from_validated(book) if book is not None else None
        if "bookHistory" in data:
            changes["book_history"] = tuple(book_from_validated(book) for book in data["bookHistory"])
        if "nextSelector" in data:
            member = data["nextSelector"]
            changes["next_selector"] = Member(**member) if member is not None else None
        if "versions" in data:
            changes["expected_versions"] = dict(data["versions"])
        return changes


# Lifecycle actions


class ActorSerializer(serializers.Serializer):
    actorId = serializers.CharField()


class BookDraftSerializer(serializers.Serializer):
    title = serializers.CharField()
    author = serializers.CharField()
    pageCount = serializers.IntegerField(source="page_count", min_value=0, default=0)
    currentPage = serializers.IntegerField(source="current_page", min_value=0, default=0)
    coverUrl = _optional_text(source="cover_url")
    description = _optional_text()
    category = _optional_text()
    startDate = serializers.DateTimeField(source="start_date", allow_null=True, default=None)
    endDate = serializers.DateTimeField(source="end_date", allow_null=True, default=None)


class ProposeBookSerializer(ActorSerializer):
    book = BookDraftSerializer()


class VoteSerializer(ActorSerializer):
    vote = serializers.ChoiceField(choices=VOTE_CHOICES)


class SelectReaderSerializer(ActorSerializer):
    memberId = serializers.CharField()


class BookSetupSerializer(ActorSerializer):
    bookId = serializers.CharField()
    meetings = MeetingSerializer(many=True)


class TextSerializer(ActorSerializer):
    text = serializers.CharField(allow_blank=True)


class ProgressSerializer(ActorSerializer):
    currentPage = serializers.IntegerField()


class RateBookSerializer(ActorSerializer):
    bookId = serializers.CharField()
    rating = serializers.IntegerField()


# Statistics


class MemberStatsSerializer(serializers.Serializer):
    memberId = serializers.CharField(source="member_id")
    name = serializers.CharField()
    booksSelected = serializers.IntegerField(source="books_selected")
    averageBookRating = serializers.FloatField(source="average_book_rating")
    averageGivenRating = serializers.FloatField(source="average_given_rating")


class HighestRatedBookSerializer(serializers.Serializer):
    title = serializers.CharField()
    rating = serializers.FloatField()


class ClubStatsSerializer(serializers.Serializer):
    totalBooks = serializers.IntegerField(source="total_books")
    completedBooks = serializers.IntegerField(source="completed_books")
    averageRating = serializers.FloatField(source="average_rating")
    totalPages = serializers.IntegerField(source="total_pages")
    completedPages = serializers.IntegerField(source="completed_pages")
    averageBookLength = serializers.IntegerField(source="average_book_length")
    daysSinceStart = serializers.IntegerField(source="days_since_start")
    booksPerMonth = serializers.FloatField(source="books_per_month")
    pagesPerMonth = serializers.IntegerField(source="pages_per_month")
    totalDiscussions = serializers.IntegerField(source="total_discussions")
    averageDiscussionsPerBook = serializers.FloatField(source="average_discussions_per_book")
    highestRatedBook = HighestRatedBookSerializer(source="highest_rated_book", allow_null=True)
    memberStats = MemberStatsSerializer(source="member_stats", many=True)
