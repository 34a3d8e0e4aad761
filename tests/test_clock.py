from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

from vaccination_tracker.utils.clock import FixedClock, SystemClock


def test_system_clock_today_follows_utc_now():
    """Test that today() and now() share the UTC basis near midnight."""
    late_evening = datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc)
    with patch.object(SystemClock, "now", return_value=late_evening):
        clock = SystemClock()
        assert clock.today() == date(2024, 1, 1)
        assert clock.today() == clock.now().date()


def test_system_clock_now_is_aware_utc():
    assert SystemClock().now().tzinfo == timezone.utc


def test_fixed_clock_set_and_advance():
    clock = FixedClock(date(2023, 6, 20))
    assert clock.now() == datetime(2023, 6, 20, tzinfo=timezone.utc)

    clock.advance(timedelta(days=1, hours=2))
    assert clock.today() == date(2023, 6, 21)

    clock.set(datetime(2024, 2, 29, 8, 0))
    assert clock.now().tzinfo == timezone.utc
    assert clock.today() == date(2024, 2, 29)
