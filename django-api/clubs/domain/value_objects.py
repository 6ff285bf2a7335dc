"""Domain primitives that enforce validity at creation time."""

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Self

INVITE_CODE_LENGTH = 6
MIN_RATING = 1
MAX_RATING = 5

_INVITE_CODE_RE = re.compile(rf"^[0-9A-Z]{{{INVITE_CODE_LENGTH}}}$")


class BookStatus(StrEnum):
    """Lifecycle status of a book."""

    PROPOSED = "proposed"
    APPROVED = "approved"
    SETUP = "setup"
    READING = "reading"
    COMPLETED = "completed"
    VETOED = "vetoed"

    @property
    def is_terminal(self) -> bool:
        return self in (BookStatus.COMPLETED, BookStatus.VETOED)


class Vote(StrEnum):
    """A member's vote on a proposal."""

    APPROVE = "approve"
    VETO = "veto"


@dataclass(frozen=True)
class Rating:
    """Integer rating between 1 and 5 inclusive."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError("Rating must be an integer")
        if not MIN_RATING <= self.value <= MAX_RATING:
            raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")


@dataclass(frozen=True)
class InviteCode:
    """Six character base-36 token granting join access to a club."""

    value: str

    def __post_init__(self) -> None:
        if not _INVITE_CODE_RE.match(self.value):
            raise ValueError("Invite code must be 6 characters of 0-9 and A-Z")

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=value.strip().upper())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class StateVersions:
    """Write counters for the three independently saved state fields."""

    current_book: int = 0
    book_history: int = 0
    next_selector: int = 0

    def get(self, field_name: str) -> int:
        return getattr(self, field_name)
