from django.urls import path

from clubs.handlers import (
    BookClubActionView,
    BookClubMembersView,
    BookClubStateView,
    BookClubStatsView,
    BookClubView,
    JoinBookClubView,
    UserView,
)

urlpatterns = [
    path("users", UserView.as_view(), name="users"),
    path("bookclubs", BookClubView.as_view(), name="bookclubs"),
    path("bookclubs/join", JoinBookClubView.as_view(), name="bookclub-join"),
    path(
        "bookclubs/<str:club_id>/members",
        BookClubMembersView.as_view(),
        name="bookclub-members",
    ),
    path("bookclub-state", BookClubStateView.as_view(), name="bookclub-state-missing-id"),
    path("bookclub-state/<str:club_id>", BookClubStateView.as_view(), name="bookclub-state"),
    path(
        "bookclub-state/<str:club_id>/stats",
        BookClubStatsView.as_view(),
        name="bookclub-stats",
    ),
    path(
        "bookclub-state/<str:club_id>/actions/<str:action>",
        BookClubActionView.as_view(),
        name="bookclub-action",
    ),
]
