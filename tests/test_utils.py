from datetime import datetime, timedelta, timezone

from kaken.utils import (
    build_url,
    clean_text,
    first_string,
    parse_iso_datetime,
    pick_localized,
    pick_localized_text,
    number_to_int,
    to_int,
)


def test_pick_localized_text_prefers_requested_language() -> None:
    values = [{"lang": "en", "text": "X"}, {"lang": "ja", "text": "Y"}]
    assert pick_localized_text(values, "ja") == "Y"


def test_pick_localized_text_falls_back_to_first_candidate() -> None:
    values = [{"lang": "en", "text": "X"}, {"lang": "fr", "text": "Z"}]
    assert pick_localized_text(values, "ja") == "X"


def test_pick_localized_text_without_fallback() -> None:
    values = [{"lang": "ja", "text": "山田"}]
    assert pick_localized_text(values, "ja-Kana", fallback=False) is None
    assert pick_localized_text(values, "en", fallback=False) is None


def test_pick_localized_text_handles_absent_values() -> None:
    assert pick_localized_text(None, "ja") is None
    assert pick_localized_text([], "ja") is None
    assert pick_localized_text("not a list", "ja") is None
    assert pick_localized_text([{"lang": "ja", "text": 3}], "ja") is None


def test_pick_localized_uses_custom_language_key() -> None:
    summaries = [{"@xml:lang": "en", "title": "E"}, {"@xml:lang": "ja", "title": "J"}]
    assert pick_localized(summaries, "ja", lang_key="@xml:lang")["title"] == "J"


def test_first_string_respects_key_order() -> None:
    data = {"b": "second", "a": 1, "c": "third"}
    assert first_string(data, ("a", "b", "c")) == "second"
    assert first_string(data, ("x", "y")) is None


def test_build_url_skips_null_parameters() -> None:
    url = build_url("https://example.org/search/", {"kw": "人工 知能", "rw": 20, "qa": None})
    assert url == "https://example.org/search/?kw=%E4%BA%BA%E5%B7%A5+%E7%9F%A5%E8%83%BD&rw=20"
    assert build_url("https://example.org/", {"qa": None}) == "https://example.org/"


def test_clean_text_collapses_whitespace() -> None:
    assert clean_text("  a\n   b\tc ") == "a b c"
    assert clean_text(None) is None


def test_parse_iso_datetime_variants() -> None:
    assert parse_iso_datetime("2021-04-01") == datetime(2021, 4, 1)
    assert parse_iso_datetime("2024-03-01T08:00:00Z") == datetime(2024, 3, 1, 8, tzinfo=timezone.utc)
    assert parse_iso_datetime("2021-04-28T10:15:00+09:00") == datetime(
        2021, 4, 28, 10, 15, tzinfo=timezone(timedelta(hours=9))
    )
    assert parse_iso_datetime("not a date") is None
    assert parse_iso_datetime(2021) is None


def test_to_int_accepts_numeric_strings() -> None:
    assert to_int("2021") == 2021
    assert to_int(7) == 7
    assert to_int("abc") is None
    assert to_int(None) is None


def test_to_int_rejects_non_integral_and_overflowing_strings() -> None:
    assert to_int("1.5") is None
    assert to_int("2021.0") == 2021
    assert to_int("1e999") is None
    assert to_int("nan") is None
    assert to_int(float("inf")) is None


def test_number_to_int_only_accepts_finite_numbers() -> None:
    assert number_to_int(10_000_000_000) == 10_000_000_000
    assert number_to_int(3.0) == 3
    assert number_to_int(float("inf")) is None
    assert number_to_int(float("nan")) is None
    assert number_to_int("3") is None
    assert number_to_int(True) is None
