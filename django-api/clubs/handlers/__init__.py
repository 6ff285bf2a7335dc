from clubs.handlers.views import (
    BookClubActionView,
    BookClubMembersView,
    BookClubStateView,
    BookClubStatsView,
    BookClubView,
    JoinBookClubView,
    UserView,
)

__all__ = [
    "BookClubActionView",
    "BookClubMembersView",
    "BookClubStateView",
    "BookClubStatsView",
    "BookClubView",
    "JoinBookClubView",
    "UserView",
]
