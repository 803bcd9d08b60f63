from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from omnicot.ingestion.normalize import clip_for_log, parse_cot_time, safe_float, safe_str


def test_safe_float_parses_numbers_and_strings() -> None:
    assert safe_float("38.8977") == 38.8977
    assert safe_float("  -77.0365 ") == -77.0365
    assert safe_float(5) == 5.0


def test_safe_float_rejects_non_finite_and_garbage() -> None:
    for value in (None, "", "  ", "abc", "nan", "inf", "-inf", object()):
        assert safe_float(value) is None


def test_safe_float_accepts_only_plain_numeric_text() -> None:
    assert safe_float("1e3") == 1000.0
    assert safe_float("+.5") == 0.5
    assert safe_float("10.") == 10.0
    for value in ("1_0", "0x10", "1e", "--1", "1.2.3", "\u0661"):
        assert safe_float(value) is None


def test_safe_str_strips_and_drops_empty() -> None:
    assert safe_str("  ALPHA-1 ") == "ALPHA-1"
    assert safe_str("   ") is None
    assert safe_str(None) is None


def test_parse_cot_time_zulu() -> None:
    assert parse_cot_time("2026-01-01T12:00:00.000Z") == datetime(2026, 1, 1, 12, tzinfo=UTC)


def test_parse_cot_time_offset_is_converted_to_utc() -> None:
    parsed = parse_cot_time("2026-01-01T14:00:00+02:00")

    assert parsed == datetime(2026, 1, 1, 12, tzinfo=UTC)
    assert parsed is not None and parsed.utcoffset() == timedelta(0)


def test_parse_cot_time_naive_is_assumed_utc() -> None:
    parsed = parse_cot_time("2026-01-01T12:00:00")

    assert parsed == datetime(2026, 1, 1, 12, tzinfo=timezone.utc)


def test_parse_cot_time_rejects_garbage() -> None:
    assert parse_cot_time("yesterday") is None
    assert parse_cot_time("") is None
    assert parse_cot_time(None) is None


def test_clip_for_log_collapses_whitespace_and_truncates() -> None:
    assert clip_for_log("<event>\n   <point/>\n</event>") == "<event> <point/> </event>"
    clipped = clip_for_log("x" * 50, max_chars=10)
    assert clipped.startswith("x" * 10)
    assert clipped.endswith("<truncated>")
    assert clip_for_log(b"<event/>") == "<event/>"
