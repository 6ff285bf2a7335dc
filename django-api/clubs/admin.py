from django.contrib import admin

from clubs.models import BookClubRecord, BookClubStateRecord, ClubMembership, UserRecord


class ClubMembershipInline(admin.TabularInline):
    model = ClubMembership
    extra = 0


@admin.register(UserRecord)
class UserRecordAdmin(admin.ModelAdmin):
    list_display = ["email", "name", "created_at"]
    search_fields = ["email", "name"]


@admin.register(BookClubRecord)
class BookClubRecordAdmin(admin.ModelAdmin):
    list_display = ["name", "invite_code", "owner_id", "created_at"]
    search_fields = ["name", "invite_code"]
    inlines = [ClubMembershipInline]


@admin.register(BookClubStateRecord)
class BookClubStateRecordAdmin(admin.ModelAdmin):
    list_display = [
        "book_club_id",
        "current_book_version",
        "book_history_version",
        "next_selector_version",
        "updated_at",
    ]
    search_fields = ["book_club_id"]
