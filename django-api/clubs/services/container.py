"""Process-wide service wiring.

Stores and services are built once, on first use, from Django settings and
shared by every request. ``reset_services`` disposes of them (tests, shutdown)
and ``install_services`` swaps in a prebuilt container.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings

from clubs.domain.lifecycle import BookLifecycle, LifecyclePolicy
from clubs.services.identity_service import IdentityService
from clubs.services.ids import IdGenerator
from clubs.services.lifecycle_service import LifecycleService
from clubs.services.state_service import ClubStateService
from clubs.services.sync import ClubSession
from clubs.stores.interfaces import BookClubStore, ClubStateStore, UserStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClubServices:
    identity: IdentityService
    states: ClubStateService
    lifecycle: LifecycleService
    poll_interval: timedelta = timedelta(seconds=60)

    def open_session(self, club_id: str) -> ClubSession:
        return ClubSession(self.lifecycle, club_id, poll_interval=self.poll_interval)


def build_services(
    users: UserStore,
    clubs: BookClubStore,
    states: ClubStateStore,
    *,
    policy: LifecyclePolicy | None = None,
    ids: IdGenerator | None = None,
    poll_interval: timedelta = timedelta(seconds=60),
) -> ClubServices:
    identity = IdentityService(users, clubs, ids=ids)
    state_service = ClubStateService(states)
    lifecycle = LifecycleService(identity, state_service, BookLifecycle(policy=policy))
    return ClubServices(
        identity=identity,
        states=state_service,
        lifecycle=lifecycle,
        poll_interval=poll_interval,
    )


def _stores_for_backend(backend: str) -> tuple[UserStore, BookClubStore, ClubStateStore]:
    if backend == "memory":
        from clubs.stores.memory_store import (
            InMemoryBookClubStore,
            InMemoryClubStateStore,
            InMemoryUserStore,
        )

        return InMemoryUserStore(), InMemoryBookClubStore(), InMemoryClubStateStore()
    if backend == "django":
        from clubs.stores.django_store import (
            DjangoBookClubStore,
            DjangoClubStateStore,
            DjangoUserStore,
        )

        return DjangoUserStore(), DjangoBookClubStore(), DjangoClubStateStore()
    raise ValueError(f"Unknown BOOKCLUB_STORE_BACKEND {backend!r}")


def services_from_settings() -> ClubServices:
    users, clubs, states = _stores_for_backend(settings.BOOKCLUB_STORE_BACKEND)
    policy = LifecyclePolicy(
        selector_may_rate=settings.BOOKCLUB_SELECTOR_MAY_RATE,
        reselect_after_veto=settings.BOOKCLUB_RESELECT_AFTER_VETO,
    )
    logger.info(
        "Building book club services on %s store (%s)",
        settings.BOOKCLUB_STORE_BACKEND,
        policy,
    )
    return build_services(
        users,
        clubs,
        states,
        policy=policy,
        poll_interval=timedelta(seconds=settings.BOOKCLUB_POLL_INTERVAL_SECONDS),
    )


_services: ClubServices | None = None
_lock = threading.Lock()


def get_services() -> ClubServices:
    global _services
    if _services is None:
        with _lock:
            if _services is None:
                _services = services_from_settings()
    return _services


def install_services(services: ClubServices) -> None:
    global _services
    with _lock:
        _services = services


def reset_services() -> None:
    global _services
    with _lock:
        _services = None
