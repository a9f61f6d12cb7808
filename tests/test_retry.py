from __future__ import annotations

import pytest
from fakes import FakeDataSource

from game_ratings.db.enums import PeriodTypeEnum
from game_ratings.domain.entities import Period
from game_ratings.ingestion.providers.base.errors import (
    ProviderRateLimited,
    ProviderRequestError,
    ProviderResponseError,
)
from game_ratings.ingestion.retry import BackoffPolicy, RetryingDataSource


def _flaky(errors: list[Exception], value: str = "ok"):
    calls = {"n": 0}

    def fn() -> str:
        calls["n"] += 1
        if errors:
            raise errors.pop(0)
        return value

    return fn, calls


def test_retries_transient_errors_with_exponential_backoff() -> None:
    sleeps: list[float] = []
    policy = BackoffPolicy(base_delay_s=1.0, _sleep=sleeps.append)
    fn, calls = _flaky([ProviderRequestError("timeout"), ProviderRequestError("reset")])

    assert policy.call(fn, op="test") == "ok"
    assert calls["n"] == 3
    assert sleeps == [1.0, 2.0]


def test_rate_limit_waits_full_cooldown() -> None:
    sleeps: list[float] = []
    policy = BackoffPolicy(rate_limit_cooldown_s=60.0, _sleep=sleeps.append)
    fn, _ = _flaky([ProviderRateLimited("429")])

    assert policy.call(fn, op="test") == "ok"
    assert sleeps == [60.0]


def test_gives_up_after_max_attempts() -> None:
    sleeps: list[float] = []
    policy = BackoffPolicy(max_attempts=3, base_delay_s=10.0, max_delay_s=15.0, _sleep=sleeps.append)
    fn, calls = _flaky([ProviderRequestError(str(i)) for i in range(5)])

    with pytest.raises(ProviderRequestError):
        policy.call(fn, op="test")
    assert calls["n"] == 3
    assert sleeps == [10.0, 15.0]


def test_response_errors_are_not_retried() -> None:
    policy = BackoffPolicy(_sleep=lambda s: None)
    fn, calls = _flaky([ProviderResponseError("bad body")])

    with pytest.raises(ProviderResponseError):
        policy.call(fn, op="test")
    assert calls["n"] == 1


def test_retrying_data_source_wraps_calls() -> None:
    week = Period("2024", "1", PeriodTypeEnum.REGULAR)
    ds = FakeDataSource(fail_periods={("regular", "1")})
    sleeps: list[float] = []
    wrapped = RetryingDataSource(ds, BackoffPolicy(max_attempts=2, _sleep=sleeps.append))

    with pytest.raises(ProviderRequestError):
        wrapped.get_competitions("nfl", week)
    assert len(ds.fetched) == 2

    ds.fail_periods.clear()
    ds.add("regular", "1", 2)
    assert len(wrapped.get_competitions("nfl", week)) == 2
    assert wrapped.get_competition_details("r1-0") is not None
