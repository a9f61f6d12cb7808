from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from game_ratings.core.logging import get_logger
from game_ratings.domain.entities import Competition, CompetitionDetails, Period
from game_ratings.domain.interfaces import DataSource
from game_ratings.ingestion.providers.base.errors import ProviderRateLimited, ProviderRequestError

logger = get_logger(component="retry")

T = TypeVar("T")


@dataclass
class BackoffPolicy:
    """Exponential backoff for transient provider failures.

    `ProviderRateLimited` waits a full `rate_limit_cooldown_s` bucket since no reset
    header is guaranteed; other `ProviderRequestError`s back off exponentially.
    """

    max_attempts: int = 4
    base_delay_s: float = 1.0
    max_delay_s: float = 30.0
    rate_limit_cooldown_s: float = 60.0

    _sleep: Any = field(default=time.sleep, repr=False)

    def delay_for(self, attempt: int, error: Exception) -> float:
        if isinstance(error, ProviderRateLimited):
            return self.rate_limit_cooldown_s
        return min(self.max_delay_s, self.base_delay_s * (2 ** (attempt - 1)))

    def call(self, fn: Callable[[], T], *, op: str) -> T:
        attempts = 0
        while True:
            attempts += 1
            try:
                return fn()
            except ProviderRequestError as e:
                if attempts >= self.max_attempts:
                    raise
                delay = self.delay_for(attempts, e)
                logger.warning(
                    "provider_call_retry",
                    op=op,
                    attempt=attempts,
                    delay_s=delay,
                    error=str(e),
                )
                self._sleep(delay)


@dataclass
class RetryingDataSource:
    """Wrap any `DataSource` so every call goes through a `BackoffPolicy`."""

    inner: DataSource
    policy: BackoffPolicy = field(default_factory=BackoffPolicy)

    def get_latest_period(self, sport: str) -> Period | None:
        return self.policy.call(lambda: self.inner.get_latest_period(sport), op="get_latest_period")

    def get_competitions(self, sport: str, period: Period) -> list[Competition]:
        return self.policy.call(
            lambda: self.inner.get_competitions(sport, period), op="get_competitions"
        )

    def get_competition_details(self, external_id: str) -> CompetitionDetails | None:
        return self.policy.call(
            lambda: self.inner.get_competition_details(external_id),
            op="get_competition_details",
        )
