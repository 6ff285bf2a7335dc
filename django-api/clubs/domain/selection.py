"""Picking whose turn it is to propose the next book."""

import random
from collections.abc import Sequence

from clubs.domain.models import Member


def pick_random_member(members: Sequence[Member], rng: random.Random | None = None) -> Member:
    """Uniform random pick among ``members``.

    Raises:
        ValueError: If ``members`` is empty.
    """
    if not members:
        raise ValueError("Cannot pick from an empty member list")
    return (rng or random).choice(list(members))


def find_member(members: Sequence[Member], member_id: str) -> Member | None:
    for member in members:
        if member.id == member_id:
            return member
    return None
