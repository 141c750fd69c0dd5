"""Deterministic clock used for audit timestamps."""

from datetime import date, datetime, timedelta, timezone

import pytest

from catering_kernel.domain.clock import DEFAULT_TEST_TIME, DeterministicClock


class TestDeterministicClock:

    def test_stable_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now() == DEFAULT_TEST_TIME
        assert clock.advance(90) == DEFAULT_TEST_TIME + timedelta(seconds=90)
        assert clock.today() == date(2024, 1, 1)

    def test_start_normalized_to_utc(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        clock = DeterministicClock(datetime(2024, 3, 15, 1, 0, tzinfo=ist))
        assert clock.now().tzinfo == timezone.utc
        assert clock.today() == date(2024, 3, 14)

    def test_naive_start_rejected(self):
        with pytest.raises(ValueError):
            DeterministicClock(datetime(2024, 1, 1))

    def test_cannot_go_backwards(self):
        with pytest.raises(ValueError):
            DeterministicClock().advance(-1)
