from datetime import datetime, timedelta, timezone

from app.utils.time_utils import parse_since, to_wire, utc_now


def test_utc_now_has_millisecond_precision():
    assert utc_now().microsecond % 1000 == 0
    assert utc_now().tzinfo is None


def test_to_wire_marks_utc():
    assert to_wire(datetime(2024, 6, 10, 8, 26, 41, 88000)) == "2024-06-10T08:26:41.088Z"

    plus_two = timezone(timedelta(hours=2))
    assert to_wire(datetime(2024, 6, 10, 10, 26, 41, tzinfo=plus_two)) == "2024-06-10T08:26:41.000Z"


def test_parse_since_forms_agree():
    expected = datetime(2024, 6, 10, 8, 26, 41, 88000)

    assert parse_since("1718008001088") == expected
    assert parse_since("2024-06-10T08:26:41.088Z") == expected
    assert parse_since("2024-06-10T10:26:41.088+02:00") == expected


def test_parse_since_ignores_garbage():
    assert parse_since(None) is None
    assert parse_since("  ") is None
    assert parse_since("yesterday") is None
    assert parse_since("9" * 30) is None
