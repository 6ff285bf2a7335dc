"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

from django.db import models


class UserRecord(models.Model):
    """Persistence model for the ``users`` collection."""

    id = models.CharField(primary_key=True, max_length=64, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=320, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "users"
        ordering = ["created_at"]

    def __str__(self) -> str:
        return self.email


class BookClubRecord(models.Model):
    """Persistence model for the ``bookclubs`` collection."""

    id = models.CharField(primary_key=True, max_length=64, editable=False)
    name = models.CharField(max_length=255)
    owner_id = models.CharField(max_length=64)
    invite_code = models.CharField(max_length=6, unique=True, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "bookclubs"
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.name} ({self.invite_code})"


class ClubMembership(models.Model):
    """One entry of a club's ordered member list.

    Not unique per (club, user): joining twice records the id twice.
    """

    club = models.ForeignKey(BookClubRecord, on_delete=models.CASCADE, related_name="memberships")
    user_id = models.CharField(max_length=64)
    position = models.PositiveIntegerField()
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "bookclub_members"
        ordering = ["position"]
        indexes = [
            models.Index(fields=["user_id"], name="bookclub_member_user_idx"),
            models.Index(fields=["club", "position"], name="bookclub_member_pos_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} in {self.club_id}"


class BookClubStateRecord(models.Model):
    """Persistence model for the ``bookclub_states`` collection."""

    book_club_id = models.CharField(max_length=64, unique=True)
    current_book = models.JSONField(null=True, blank=True)
    book_history = models.JSONField(default=list, blank=True)
    next_selector = models.JSONField(null=True, blank=True)
    current_book_version = models.PositiveIntegerField(default=0)
    book_history_version = models.PositiveIntegerField(default=0)
    next_selector_version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "bookclub_states"

    def __str__(self) -> str:
        return f"State of {self.book_club_id}"
