"""Identity service - users, clubs and membership.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging
from collections.abc import Mapping
from typing import Any

from clubs.domain import BookClub, InviteCode, Member, User
from clubs.domain.errors import ClubNotFoundError, InvalidInputError, UserNotFoundError
from clubs.services.ids import IdGenerator, RandomIdGenerator
from clubs.stores.interfaces import BookClubStore, DuplicateKeyError, UserStore

logger = logging.getLogger(__name__)

# Wire names accepted by ``update_club`` mapped to domain field names.
PATCHABLE_CLUB_FIELDS = {"name": "name", "ownerId": "owner_id", "members": "members"}
WIRE_CLUB_FIELDS = {field: key for key, field in PATCHABLE_CLUB_FIELDS.items()}
IMMUTABLE_CLUB_FIELDS = ("id", "inviteCode")


class IdentityService:
    """Service for user and club identity operations."""

    def __init__(
        self,
        users: UserStore,
        clubs: BookClubStore,
        ids: IdGenerator | None = None,
        max_invite_code_attempts: int = 10,
    ) -> None:
        self._users = users
        self._clubs = clubs
        self._ids = ids or RandomIdGenerator()
        self._max_invite_code_attempts = max_invite_code_attempts

    # Users

    def find_or_create_user(self, email: str, name: str | None = None) -> tuple[User, bool]:
        """Return the user with ``email``, creating it first if needed.

        Returns:
            The user and whether it was created by this call.

        Raises:
            InvalidInputError: If the email is blank.
        """
        email = (email or "").strip()
        if not email:
            raise InvalidInputError("Email is required")

        existing = self._users.find_by_email(email)
        if existing is not None:
            return existing, False

        user = User(
            id=self._ids.new_id(),
            name=(name or "").strip() or email.split("@")[0],
            email=email,
        )
        try:
            self._users.insert(user)
        except DuplicateKeyError:
            # Lost a race with a concurrent create for the same email.
            return self._users.find_by_email(email), False
        logger.info("Created user %s", user.id)
        return user, True

    def get_user(self, user_id: str) -> User:
        """Return a user by ID.

        Raises:
            UserNotFoundError: If no user has this id.
        """
        user = self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def find_user(self, user_id: str) -> User | None:
        return self._users.find_by_id(user_id)

    def find_user_by_email(self, email: str) -> User | None:
        return self._users.find_by_email(email)

    def list_users(self) -> list[User]:
        return self._users.list_users()

    # Clubs

    def create_club(self, name: str, owner_id: str) -> BookClub:
        """Create a club owned by ``owner_id`` with a fresh invite code.

        Raises:
            InvalidInputError: If name or owner is missing.
        """
        name = (name or "").strip()
        if not name or not owner_id:
            raise InvalidInputError("Name and ownerId are required")

        for attempt in range(1, self._max_invite_code_attempts + 1):
            code = self._ids.new_invite_code()
            if self._clubs.find_by_invite_code(code) is not None:
                logger.warning("Invite code collision on attempt %d", attempt)
                continue
            club = BookClub(
                id=self._ids.new_id(),
                name=name,
                owner_id=owner_id,
                members=(owner_id,),
                invite_code=code,
            )
            try:
                self._clubs.insert(club)
            except DuplicateKeyError:
                logger.warning("Invite code taken concurrently on attempt %d", attempt)
                continue
            logger.info("Created book club %s owned by %s", club.id, owner_id)
            return club
        raise InvalidInputError("Could not allocate a unique invite code")

    def get_club(self, club_id: str) -> BookClub:
        """Return a club by ID.

        Raises:
            InvalidInputError: If the id is blank.
            ClubNotFoundError: If no club has this id.
        """
        if not club_id:
            raise InvalidInputError("Book club ID is required")
        club = self._clubs.find_by_id(club_id)
        if club is None:
            raise ClubNotFoundError(club_id=club_id)
        return club

    def find_club_by_invite_code(self, invite_code: str) -> BookClub | None:
        try:
            code = InviteCode.from_string(invite_code)
        except ValueError:
            return None
        return self._clubs.find_by_invite_code(code.value)

    def list_clubs_for_user(self, user_id: str) -> list[BookClub]:
        return self._clubs.list_for_member(user_id)

    def join_club(self, invite_code: str, user_id: str) -> BookClub:
        """Append ``user_id`` to the club that owns ``invite_code``.

        Joining twice appends the id twice; member lists are de-duplicated
        when they are resolved.

        Raises:
            InvalidInputError: If the user id is blank.
            ClubNotFoundError: If no club has this invite code.
        """
        if not user_id:
            raise InvalidInputError("userId is required")
        club = self.find_club_by_invite_code(invite_code)
        if club is None:
            raise ClubNotFoundError(invite_code=invite_code)
        if user_id in club.members:
            logger.warning("User %s joined book club %s again", user_id, club.id)

        joined = self._clubs.append_member(club.id, user_id)
        if joined is None:
            raise ClubNotFoundError(club_id=club.id)
        return joined

    def update_club(self, club_id: str, updates: Mapping[str, Any]) -> BookClub:
        """Patch owner-editable club fields.

        Raises:
            InvalidInputError: If the id is missing, an immutable or unknown field is
                patched, or a value has the wrong shape.
            ClubNotFoundError: If no club has this id.
        """
        if not club_id:
            raise InvalidInputError("Book club ID is required")
        fields: dict[str, Any] = {}
        for key, value in (updates or {}).items():
            if key in IMMUTABLE_CLUB_FIELDS:
                raise InvalidInputError(f"{key} cannot be changed")
            if key not in PATCHABLE_CLUB_FIELDS:
                raise InvalidInputError(f"Unknown field {key}")
            fields[PATCHABLE_CLUB_FIELDS[key]] = value

        for name in ("name", "owner_id"):
            if name in fields:
                if not isinstance(fields[name], str) or not fields[name].strip():
                    raise InvalidInputError(f"{WIRE_CLUB_FIELDS[name]} must be a non-empty string")
                fields[name] = fields[name].strip()
        if "members" in fields:
            members = fields["members"]
            if not isinstance(members, (list, tuple)) or not all(
                isinstance(member, str) and member for member in members
            ):
                raise InvalidInputError("members must be a list of user ids")

        club = self._clubs.update(club_id, fields)
        if club is None:
            raise ClubNotFoundError(club_id=club_id)
        return club

    def resolve_members(self, club: BookClub) -> list[Member]:
        """Member views in join order, skipping ids without a user record."""
        members = []
        for member_id in club.member_ids():
            user = self._users.find_by_id(member_id)
            if user is None:
                logger.warning("Book club %s lists unknown member %s", club.id, member_id)
                continue
            members.append(Member.from_user(user))
        return members
