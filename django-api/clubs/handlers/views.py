"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses (see handlers/exceptions.py)
- Never contain business logic
- Never expose internal error details
"""

from django.http import JsonResponse
from rest_framework import serializers, status
from rest_framework.exceptions import NotFound
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from clubs.domain import BookDraft, Meeting, Vote
from clubs.domain.errors import InvalidInputError
from clubs.handlers.serializers import (
    ActorSerializer,
    BookClubSerializer,
    BookClubStateSerializer,
    BookSetupSerializer,
    ClubStatsSerializer,
    CreateBookClubSerializer,
    CreateUserSerializer,
    JoinBookClubSerializer,
    MemberSerializer,
    PatchBookClubSerializer,
    ProgressSerializer,
    ProposeBookSerializer,
    RateBookSerializer,
    SelectReaderSerializer,
    StatePatchSerializer,
    TextSerializer,
    UserSerializer,
    VoteSerializer,
)
from clubs.services.container import ClubServices, get_services


def _validated(serializer_class, request: Request) -> serializers.Serializer:
    serializer = serializer_class(data=request.data)
    serializer.is_valid(raise_exception=True)
    return serializer


def _one_or_null(serializer_class, instance):
    """Serialized instance, or a JSON null body when there is none."""
    if instance is None:
        return JsonResponse(None, safe=False)
    return Response(serializer_class(instance).data)


class ClubAPIView(APIView):
    @property
    def services(self) -> ClubServices:
        return get_services()


class UserView(ClubAPIView):
    """Handler for GET/POST /api/users"""

    def get(self, request: Request) -> Response:
        identity = self.services.identity
        email = request.query_params.get("email")
        user_id = request.query_params.get("id")
        if email:
            user = identity.find_user_by_email(email)
            return _one_or_null(UserSerializer, user)
        if user_id:
            user = identity.find_user(user_id)
            return _one_or_null(UserSerializer, user)
        return Response(UserSerializer(identity.list_users(), many=True).data)

    def post(self, request: Request) -> Response:
        data = _validated(CreateUserSerializer, request).validated_data
        user, created = self.services.identity.find_or_create_user(data["email"], data["name"])
        return Response(
            UserSerializer(user).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class BookClubView(ClubAPIView):
    """Handler for GET/POST/PATCH /api/bookclubs"""

    def get(self, request: Request) -> Response:
        identity = self.services.identity
        invite_code = request.query_params.get("inviteCode")
        user_id = request.query_params.get("userId")
        if invite_code:
            club = identity.find_club_by_invite_code(invite_code)
            return _one_or_null(BookClubSerializer, club)
        if user_id:
            clubs = identity.list_clubs_for_user(user_id)
            return Response(BookClubSerializer(clubs, many=True).data)
        raise InvalidInputError("Either inviteCode or userId is required")

    def post(self, request: Request) -> Response:
        data = _validated(CreateBookClubSerializer, request).validated_data
        club = self.services.identity.create_club(data["name"], data["ownerId"])
        return Response(BookClubSerializer(club).data, status=status.HTTP_201_CREATED)

    def patch(self, request: Request) -> Response:
        data = _validated(PatchBookClubSerializer, request).validated_data
        club = self.services.identity.update_club(data["id"], data["updates"])
        return Response(BookClubSerializer(club).data)


class JoinBookClubView(ClubAPIView):
    """Handler for POST /api/bookclubs/join"""

    def post(self, request: Request) -> Response:
        data = _validated(JoinBookClubSerializer, request).validated_data
        club = self.services.identity.join_club(data["inviteCode"], data["userId"])
        return Response(BookClubSerializer(club).data)


class BookClubMembersView(ClubAPIView):
    """Handler for GET /api/bookclubs/{club_id}/members"""

    def get(self, request: Request, club_id: str) -> Response:
        identity = self.services.identity
        members = identity.resolve_members(identity.get_club(club_id))
        return Response(MemberSerializer(members, many=True).data)


class BookClubStateView(ClubAPIView):
    """Handler for GET/PATCH /api/bookclub-state/{club_id}"""

    def get(self, request: Request, club_id: str | None = None) -> Response:
        state = self.services.states.load(club_id)
        return Response(BookClubStateSerializer(state).data)

    def patch(self, request: Request, club_id: str | None = None) -> Response:
        if not club_id:
            raise InvalidInputError("Book club ID is required")
        serializer = _validated(StatePatchSerializer, request)
        state = self.services.states.save(club_id, **serializer.to_changes())
        return Response(BookClubStateSerializer(state).data)


class BookClubStatsView(ClubAPIView):
    """Handler for GET /api/bookclub-state/{club_id}/stats"""

    def get(self, request: Request, club_id: str) -> Response:
        stats = self.services.lifecycle.statistics(club_id)
        return Response(ClubStatsSerializer(stats).data)


class BookClubActionView(ClubAPIView):
    """Handler for POST /api/bookclub-state/{club_id}/actions/{action}"""

    actions = {
        "propose": "propose",
        "vote": "vote",
        "spin": "spin",
        "select-reader": "select_reader",
        "setup": "setup",
        "start-reading": "start_reading",
        "add-topic": "add_topic",
        "clear-topics": "clear_topics",
        "add-discussion": "add_discussion",
        "progress": "progress",
        "stop-reading": "stop_reading",
        "rate": "rate",
    }

    def post(self, request: Request, club_id: str, action: str) -> Response:
        handler_name = self.actions.get(action)
        if handler_name is None:
            raise NotFound("Unknown action")
        snapshot = getattr(self, f"_{handler_name}")(request, club_id)
        return Response(BookClubStateSerializer(snapshot.state).data)

    def _propose(self, request: Request, club_id: str):
        data = _validated(ProposeBookSerializer, request).validated_data
        return self.services.lifecycle.propose_book(
            club_id, data["actorId"], BookDraft(**data["book"])
        )

    def _vote(self, request: Request, club_id: str):
        data = _validated(VoteSerializer, request).validated_data
        return self.services.lifecycle.vote_on_book(club_id, data["actorId"], Vote(data["vote"]))

    def _spin(self, request: Request, club_id: str):
        data = _validated(ActorSerializer, request).validated_data
        return self.services.lifecycle.spin_wheel(club_id, data["actorId"])

    def _select_reader(self, request: Request, club_id: str):
        data = _validated(SelectReaderSerializer, request).validated_data
        return self.services.lifecycle.select_next_reader(
            club_id, data["actorId"], data["memberId"]
        )

    def _setup(self, request: Request, club_id: str):
        data = _validated(BookSetupSerializer, request).validated_data
        meetings = [Meeting(**meeting) for meeting in data["meetings"]]
        return self.services.lifecycle.update_book_setup(
            club_id, data["actorId"], data["bookId"], meetings
        )

    def _start_reading(self, request: Request, club_id: str):
        data = _validated(ActorSerializer, request).validated_data
        return self.services.lifecycle.start_reading(club_id, data["actorId"])

    def _add_topic(self, request: Request, club_id: str):
        data = _validated(TextSerializer, request).validated_data
        return self.services.lifecycle.add_discussion_topic(club_id, data["actorId"], data["text"])

    def _clear_topics(self, request: Request, club_id: str):
        data = _validated(ActorSerializer, request).validated_data
        return self.services.lifecycle.clear_discussion_topics(club_id, data["actorId"])

    def _add_discussion(self, request: Request, club_id: str):
        data = _validated(TextSerializer, request).validated_data
        return self.services.lifecycle.add_discussion(club_id, data["actorId"], data["text"])

    def _progress(self, request: Request, club_id: str):
        data = _validated(ProgressSerializer, request).validated_data
        return self.services.lifecycle.update_reading_progress(
            club_id, data["actorId"], data["currentPage"]
        )

    def _stop_reading(self, request: Request, club_id: str):
        data = _validated(ActorSerializer, request).validated_data
        return self.services.lifecycle.stop_reading(club_id, data["actorId"])

    def _rate(self, request: Request, club_id: str):
        data = _validated(RateBookSerializer, request).validated_data
        return self.services.lifecycle.rate_book(
            club_id, data["actorId"], data["bookId"], data["rating"]
        )
