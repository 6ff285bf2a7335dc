"""Identifier generation for users, clubs and invite codes."""

import random
import string
from typing import Protocol
from uuid import UUID

from clubs.domain.value_objects import INVITE_CODE_LENGTH

INVITE_CODE_ALPHABET = string.digits + string.ascii_uppercase


class IdGenerator(Protocol):
    def new_id(self) -> str:
        ...

    def new_invite_code(self) -> str:
        ...


class RandomIdGenerator:
    """UUID4 entity ids and 6 character base-36 invite codes."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.SystemRandom()

    def new_id(self) -> str:
        return str(UUID(int=self._rng.getrandbits(128), version=4))

    def new_invite_code(self) -> str:
        return "".join(self._rng.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))
