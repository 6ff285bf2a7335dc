"""Domain error codes for the clubs module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    CLUB_NOT_FOUND = "CLUB_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    BOOK_NOT_FOUND = "BOOK_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    STALE_STATE = "STALE_STATE"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidInputError(DomainError):
    """Raised when required input is missing or malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message)


class UserNotFoundError(DomainError):
    """Raised when a user is not found."""

    def __init__(self, user_id: str) -> None:
        super().__init__(code=ErrorCode.USER_NOT_FOUND, message="User not found")
        self.user_id = user_id


class ClubNotFoundError(DomainError):
    """Raised when a book club is not found by id or invite code."""

    def __init__(self, club_id: str | None = None, invite_code: str | None = None) -> None:
        super().__init__(code=ErrorCode.CLUB_NOT_FOUND, message="Book club not found")
        self.club_id = club_id
        self.invite_code = invite_code


class MemberNotFoundError(DomainError):
    """Raised when a member id is not part of the club."""

    def __init__(self, member_id: str) -> None:
        super().__init__(code=ErrorCode.MEMBER_NOT_FOUND, message="Member not found")
        self.member_id = member_id


class BookNotFoundError(DomainError):
    """Raised when a book is neither the current book nor in the history."""

    def __init__(self, book_id: str) -> None:
        super().__init__(code=ErrorCode.BOOK_NOT_FOUND, message="Book not found")
        self.book_id = book_id


class UnauthorizedError(DomainError):
    """Raised when the acting member may not perform the operation."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message)
        self.reason = reason


class InvalidTransitionError(DomainError):
    """Raised when an operation does not apply to the current lifecycle state."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(code=ErrorCode.INVALID_TRANSITION, message=message)
        self.reason = reason


class StaleStateError(DomainError):
    """Raised when a versioned save lost the race against another writer."""

    def __init__(self, fields: tuple[str, ...]) -> None:
        super().__init__(
            code=ErrorCode.STALE_STATE,
            message="Book club state changed since it was loaded",
        )
        self.fields = fields


class UpstreamFailureError(DomainError):
    """Raised when the document store cannot be reached or fails."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.UPSTREAM_FAILURE,
            message="Internal server error",
        )
