"""Django ORM implementation of the store interfaces."""

import functools
import logging
from collections.abc import Mapping
from typing import Any

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Max

from clubs.domain import BookClub, BookClubState, StateVersions, User
from clubs.domain.errors import StaleStateError, UpstreamFailureError
from clubs.models import BookClubRecord, BookClubStateRecord, ClubMembership, UserRecord
from clubs.stores.documents import STATE_FIELD_CODECS
from clubs.stores.interfaces import BookClubStore, ClubStateStore, DuplicateKeyError, UserStore

logger = logging.getLogger(__name__)


def translate_db_errors(method):
    """Turn driver failures into ``UpstreamFailureError`` after logging them."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except DatabaseError as exc:
            logger.exception("Document store call %s failed", method.__qualname__)
            raise UpstreamFailureError() from exc

    return wrapper


def _user_from_record(record: UserRecord) -> User:
    return User(id=record.id, name=record.name, email=record.email)


def _club_from_record(record: BookClubRecord) -> BookClub:
    return BookClub(
        id=record.id,
        name=record.name,
        owner_id=record.owner_id,
        members=tuple(membership.user_id for membership in record.memberships.all()),
        invite_code=record.invite_code,
    )


def _state_from_record(record: BookClubStateRecord) -> BookClubState:
    values = {
        name: decode(getattr(record, name)) for name, (_, decode) in STATE_FIELD_CODECS.items()
    }
    versions = StateVersions(
        **{name: getattr(record, f"{name}_version") for name in STATE_FIELD_CODECS}
    )
    return BookClubState(book_club_id=record.book_club_id, versions=versions, **values)


class DjangoUserStore(UserStore):
    """Relational ``users`` collection."""

    @translate_db_errors
    def find_by_email(self, email: str) -> User | None:
        record = UserRecord.objects.filter(email=email).first()
        return _user_from_record(record) if record else None

    @translate_db_errors
    def find_by_id(self, user_id: str) -> User | None:
        record = UserRecord.objects.filter(id=user_id).first()
        return _user_from_record(record) if record else None

    @translate_db_errors
    def list_users(self) -> list[User]:
        return [_user_from_record(record) for record in UserRecord.objects.all()]

    @translate_db_errors
    def insert(self, user: User) -> User:
        try:
            with transaction.atomic():
                UserRecord.objects.create(id=user.id, name=user.name, email=user.email)
        except IntegrityError as exc:
            raise DuplicateKeyError(user.email) from exc
        return user


class DjangoBookClubStore(BookClubStore):
    """Relational ``bookclubs`` collection with an ordered membership table."""

    def _records(self):
        return BookClubRecord.objects.prefetch_related("memberships")

    @translate_db_errors
    def find_by_id(self, club_id: str) -> BookClub | None:
        record = self._records().filter(id=club_id).first()
        return _club_from_record(record) if record else None

    @translate_db_errors
    def find_by_invite_code(self, invite_code: str) -> BookClub | None:
        record = self._records().filter(invite_code=invite_code).first()
        return _club_from_record(record) if record else None

    @translate_db_errors
    def list_for_member(self, user_id: str) -> list[BookClub]:
        records = self._records().filter(memberships__user_id=user_id).distinct()
        return [_club_from_record(record) for record in records]

    @translate_db_errors
    def insert(self, club: BookClub) -> BookClub:
        try:
            with transaction.atomic():
                record = BookClubRecord.objects.create(
                    id=club.id,
                    name=club.name,
                    owner_id=club.owner_id,
                    invite_code=club.invite_code,
                )
                ClubMembership.objects.bulk_create(
                    ClubMembership(club=record, user_id=user_id, position=position)
                    for position, user_id in enumerate(club.members)
                )
        except IntegrityError as exc:
            raise DuplicateKeyError(club.invite_code) from exc
        return club

    @translate_db_errors
    def append_member(self, club_id: str, user_id: str) -> BookClub | None:
        with transaction.atomic():
            record = BookClubRecord.objects.select_for_update().filter(id=club_id).first()
            if record is None:
                return None
            last = record.memberships.aggregate(last=Max("position"))["last"]
            ClubMembership.objects.create(
                club=record,
                user_id=user_id,
                position=0 if last is None else last + 1,
            )
        return self.find_by_id(club_id)

    @translate_db_errors
    def update(self, club_id: str, fields: Mapping[str, Any]) -> BookClub | None:
        with transaction.atomic():
            record = BookClubRecord.objects.select_for_update().filter(id=club_id).first()
            if record is None:
                return None
            for name in ("name", "owner_id"):
                if name in fields:
                    setattr(record, name, fields[name])
            record.save()
            if "members" in fields:
                record.memberships.all().delete()
                ClubMembership.objects.bulk_create(
                    ClubMembership(club=record, user_id=user_id, position=position)
                    for position, user_id in enumerate(fields["members"])
                )
        return self.find_by_id(club_id)


class DjangoClubStateStore(ClubStateStore):
    """``bookclub_states`` rows holding JSON documents and per-field versions."""

    @translate_db_errors
    def find(self, club_id: str) -> BookClubState | None:
        record = BookClubStateRecord.objects.filter(book_club_id=club_id).first()
        return _state_from_record(record) if record else None

    @translate_db_errors
    def insert_default(self, club_id: str) -> BookClubState:
        record, created = BookClubStateRecord.objects.get_or_create(book_club_id=club_id)
        if created:
            logger.info("Created default state for book club %s", club_id)
        return _state_from_record(record)

    @translate_db_errors
    def find_and_update(
        self,
        club_id: str,
        changes: Mapping[str, Any],
        expected_versions: Mapping[str, int] | None = None,
    ) -> BookClubState:
        with transaction.atomic():
            record, _ = BookClubStateRecord.objects.select_for_update().get_or_create(
                book_club_id=club_id
            )
            stale = tuple(
                name
                for name, version in (expected_versions or {}).items()
                if name in changes and getattr(record, f"{name}_version") != version
            )
            if stale:
                raise StaleStateError(stale)

            for name, value in changes.items():
                encode, _ = STATE_FIELD_CODECS[name]
                setattr(record, name, encode(value))
                version_field = f"{name}_version"
                setattr(record, version_field, getattr(record, version_field) + 1)
            record.save()
        return _state_from_record(record)
