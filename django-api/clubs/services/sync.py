"""Client-side view of a club kept fresh by polling.

Stale in-memory state is corrected by reloading on a fixed interval and
whenever the client becomes visible again. Operations go through
``LifecycleService`` and the reconciled snapshot replaces the cached one.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from clubs.services.lifecycle_service import ClubSnapshot, LifecycleService

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = timedelta(seconds=60)


class ClubSession:
    def __init__(
        self,
        service: LifecycleService,
        club_id: str,
        poll_interval: timedelta = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._service = service
        self.club_id = club_id
        self.poll_interval = poll_interval
        self._clock = clock or (lambda: datetime.now(UTC))
        self.snapshot: ClubSnapshot | None = None
        self.loaded_at: datetime | None = None

    def refresh(self) -> ClubSnapshot:
        self.snapshot = self._service.snapshot(self.club_id)
        self.loaded_at = self._clock()
        return self.snapshot

    def is_due(self) -> bool:
        if self.loaded_at is None:
            return True
        return self._clock() - self.loaded_at >= self.poll_interval

    def refresh_if_due(self) -> ClubSnapshot:
        """Reload when the poll interval has elapsed, else return the cached snapshot."""
        if self.is_due():
            return self.refresh()
        return self.snapshot

    def on_visible(self) -> ClubSnapshot:
        logger.debug("Club %s visible again, reloading", self.club_id)
        return self.refresh()

    def dispatch(self, operation: Callable[..., ClubSnapshot], *args, **kwargs) -> ClubSnapshot:
        """Run a ``LifecycleService`` operation for this club and keep its result.

        Domain errors propagate and the cached snapshot is left unchanged.
        """
        self.snapshot = operation(self.club_id, *args, **kwargs)
        self.loaded_at = self._clock()
        return self.snapshot
