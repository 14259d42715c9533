from datetime import timedelta

from elite_dashboard.formatting import format_compact_number, format_elapsed_time


def test_format_elapsed_time_basic() -> None:
    assert format_elapsed_time(None) == "00:00:00"
    assert format_elapsed_time(0) == "00:00:00"
    assert format_elapsed_time(59.9) == "00:00:59"
    assert format_elapsed_time(61) == "00:01:01"
    assert format_elapsed_time(timedelta(hours=1, minutes=2, seconds=3)) == "01:02:03"


def test_format_elapsed_time_does_not_wrap_hours() -> None:
    assert format_elapsed_time(timedelta(hours=25, seconds=5)) == "25:00:05"
    assert format_elapsed_time(-30) == "00:00:00"


def test_format_compact_number_basic() -> None:
    assert format_compact_number(None) == "--"
    assert format_compact_number(0) == "0"
    assert format_compact_number(999) == "999"
    assert format_compact_number(1500) == "1.5K"
    assert format_compact_number(4_300_000) == "4.3M"
    assert format_compact_number(-1250) == "-1.2K"
