"""
Monthly usage accounting for search providers.
"""

import threading
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional
import logging

from ..models import ProviderQuota
from ..utils import PersistenceError
from .settings_store import SettingsStore

logger = logging.getLogger(__name__)

MONTH_KEY = "websearch.month"


def month_stamp(moment: datetime) -> str:
    """Format a timestamp as its YYYY-MM accounting month."""
    return moment.strftime("%Y-%m")


class QuotaLedger:
    """
    Per-provider usage counters that reset when the calendar month changes.

    All counters share a single month stamp. Every public operation runs
    the rollover check first, inside the same lock as the counter update,
    so a use recorded across a month boundary is counted exactly once in
    the new month.
    """

    def __init__(
        self,
        store: SettingsStore,
        providers: Iterable[str] = ("brave", "searxng"),
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize the ledger.

        Args:
            store: Settings store holding the persisted counters
            providers: Provider ids tracked from the start
            clock: Wall clock, injectable for tests
        """
        self.store = store
        self._clock = clock
        self._lock = threading.RLock()
        self._current_month = month_stamp(clock())
        self._monthly: Dict[str, int] = {p: 0 for p in providers}
        self._totals: Dict[str, int] = {p: 0 for p in providers}

    @staticmethod
    def _count_key(provider_id: str) -> str:
        return f"websearch.{provider_id}.count"

    @staticmethod
    def _total_key(provider_id: str) -> str:
        return f"websearch.{provider_id}.total"

    def load(self) -> None:
        """Read month stamp and counters from the store (startup)."""
        with self._lock:
            stored_month = self.store.get(MONTH_KEY)
            if stored_month:
                try:
                    datetime.strptime(stored_month, "%Y-%m")
                    self._current_month = stored_month
                except ValueError:
                    logger.warning(f"Could not parse stored quota month: {stored_month!r}")

            for provider_id in list(self._monthly):
                self._monthly[provider_id] = self._read_int(self._count_key(provider_id))
                self._totals[provider_id] = self._read_int(self._total_key(provider_id))

            logger.info(
                f"Quota ledger loaded for {self._current_month}: "
                + ", ".join(f"{p}={c}" for p, c in self._monthly.items())
            )
            self._check_rollover_locked()

    def _read_int(self, key: str) -> int:
        raw = self.store.get(key)
        if raw is None:
            return 0
        try:
            return max(0, int(raw))
        except ValueError:
            logger.warning(f"Ignoring non-numeric quota value {key}={raw!r}")
            return 0

    def check_rollover(self) -> bool:
        """
        Reset all monthly counters if the wall-clock month has advanced.

        Returns:
            True if a rollover happened
        """
        with self._lock:
            return self._check_rollover_locked()

    def _check_rollover_locked(self) -> bool:
        now = month_stamp(self._clock())
        if now == self._current_month:
            return False

        logger.info(f"New accounting month {now} (was {self._current_month}) - counters reset")
        self._current_month = now
        for provider_id in self._monthly:
            self._monthly[provider_id] = 0

        self._persist(MONTH_KEY, now)
        for provider_id in self._monthly:
            self._persist(self._count_key(provider_id), "0")
        return True

    def record_use(self, provider_id: str) -> int:
        """
        Count one use of a provider and persist it.

        Returns:
            The provider's count for the current month
        """
        with self._lock:
            self._check_rollover_locked()
            self._monthly[provider_id] = self._monthly.get(provider_id, 0) + 1
            self._totals[provider_id] = self._totals.get(provider_id, 0) + 1
            count = self._monthly[provider_id]

            self._persist(self._count_key(provider_id), str(count))
            self._persist(self._total_key(provider_id), str(self._totals[provider_id]))
            self._persist(MONTH_KEY, self._current_month)
            return count

    def reserve(self, provider_id: str, limit: int) -> Optional[str]:
        """
        Count one use up front if the monthly limit allows it.

        Check and increment happen under one lock, so concurrent callers
        can never push the count past ``limit``.

        Returns:
            The month the use was booked in, or None if the limit is reached
        """
        with self._lock:
            self._check_rollover_locked()
            if self._monthly.get(provider_id, 0) >= limit:
                return None
            self.record_use(provider_id)
            return self._current_month

    def release(self, provider_id: str, month: str) -> None:
        """Undo a reservation whose search produced nothing."""
        with self._lock:
            self._check_rollover_locked()
            if month == self._current_month and self._monthly.get(provider_id, 0) > 0:
                self._monthly[provider_id] -= 1
                self._persist(self._count_key(provider_id), str(self._monthly[provider_id]))
            if self._totals.get(provider_id, 0) > 0:
                self._totals[provider_id] -= 1
                self._persist(self._total_key(provider_id), str(self._totals[provider_id]))

    def count(self, provider_id: str) -> int:
        with self._lock:
            self._check_rollover_locked()
            return self._monthly.get(provider_id, 0)

    def total(self, provider_id: str) -> int:
        with self._lock:
            self._check_rollover_locked()
            return self._totals.get(provider_id, 0)

    def remaining(self, provider_id: str, limit: int) -> int:
        """Uses left this month: ``max(0, limit - count)``."""
        with self._lock:
            self._check_rollover_locked()
            return max(0, limit - self._monthly.get(provider_id, 0))

    @property
    def current_month(self) -> str:
        with self._lock:
            self._check_rollover_locked()
            return self._current_month

    def get_quota(self, provider_id: str) -> ProviderQuota:
        """Snapshot of one provider's counters."""
        with self._lock:
            self._check_rollover_locked()
            return ProviderQuota(
                provider_id=provider_id,
                count_this_month=self._monthly.get(provider_id, 0),
                total_count=self._totals.get(provider_id, 0),
                current_month=self._current_month
            )

    def _persist(self, key: str, value: str) -> None:
        # Quota tracking is best effort; a failing store never blocks a search.
        try:
            self.store.set(key, value)
        except PersistenceError as e:
            logger.error(f"Failed to persist quota counter {key}: {e}")
