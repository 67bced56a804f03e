"""Tests for the Cypher text helpers."""

import base64
from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from threatgraph.features.graph.repositories.query_utils import (
    Interval,
    bucket_count,
    check_identifier,
    coerce_id,
    cypher_literal,
    cypher_map,
    decode_cursor,
    dollar_quote,
    encode_cursor,
    fill_time_series,
    prepare_date,
    prepare_string,
    timestamp_properties,
    to_utc,
)


class TestSanitizers:
    """Escaping and normalization of values placed in queries."""

    def test_prepare_string_escapes_quotes_and_backslashes(self):
        assert prepare_string("O'Brien") == "O\\'Brien"
        assert prepare_string("a\\b") == "a\\\\b"
        assert prepare_string(None) == ""

    def test_backslash_is_escaped_before_quote(self):
        # A trailing backslash must not swallow the closing quote.
        assert cypher_literal("x\\") == "'x\\\\'"
        assert cypher_literal("\\'") == "'\\\\\\''"

    def test_cypher_literal_scalars(self):
        assert cypher_literal(None) == "null"
        assert cypher_literal(True) == "true"
        assert cypher_literal(False) == "false"
        assert cypher_literal(42) == "42"
        assert cypher_literal(1.5) == "1.5"

    def test_cypher_literal_rejects_unsupported_values(self):
        with pytest.raises(TypeError):
            _ = cypher_literal(["a"])
        with pytest.raises(ValueError):
            _ = cypher_literal(float("nan"))

    def test_cypher_map_validates_keys(self):
        assert cypher_map({"name": "x", "revoked": False}) == "{name: 'x', revoked: false}"
        with pytest.raises(ValueError):
            _ = cypher_map({"bad key": "x"})

    def test_check_identifier(self):
        assert check_identifier("Campaign") == "Campaign"
        for bad in ("", "1abc", "a-b", "n) DETACH DELETE (m"):
            with pytest.raises(ValueError):
                _ = check_identifier(bad)

    def test_coerce_id(self):
        assert coerce_id("12") == 12
        assert coerce_id(7) == 7
        for bad in ("1 OR 1=1", None, True, "abc"):
            with pytest.raises(ValueError):
                _ = coerce_id(bad)

    def test_dollar_quote_avoids_tag_collision(self):
        assert dollar_quote("MATCH (n) RETURN n") == "$q$MATCH (n) RETURN n$q$"
        quoted = dollar_quote("RETURN '$q$'")
        assert quoted.startswith("$q1$")
        assert quoted.endswith("$q1$")


class TestDates:
    """Timestamp normalization and derived fields."""

    def test_naive_datetime_is_taken_as_utc(self):
        assert to_utc(datetime(2024, 1, 2, 3, 4, 5)) == datetime(
            2024, 1, 2, 3, 4, 5, tzinfo=UTC
        )

    def test_aware_datetime_is_converted_to_utc(self):
        value = datetime(2024, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        assert prepare_date(value) == "2023-12-31T23:00:00.000+00:00"

    def test_date_and_iso_string_inputs(self):
        assert prepare_date(date(2024, 5, 6)) == "2024-05-06T00:00:00.000+00:00"
        assert prepare_date("2024-05-06T10:11:12Z") == "2024-05-06T10:11:12.000+00:00"

    def test_invalid_string_raises(self):
        with pytest.raises(ValueError):
            _ = prepare_date("not a date")

    def test_timestamp_properties(self):
        props = timestamp_properties("first_seen", datetime(2023, 3, 9, tzinfo=UTC))
        assert props == {
            "first_seen": "2023-03-09T00:00:00.000+00:00",
            "first_seen_day": "2023-03-09",
            "first_seen_month": "2023-03",
            "first_seen_year": "2023",
        }

    def test_early_years_are_zero_padded(self):
        props = timestamp_properties("first_seen", datetime(999, 1, 2, tzinfo=UTC))
        assert props["first_seen"].startswith("0999-01-02T")
        assert props["first_seen_day"] == "0999-01-02"
        assert props["first_seen_month"] == "0999-01"
        assert props["first_seen_year"] == "0999"

    def test_conversion_past_max_year_raises(self):
        value = datetime(9999, 12, 31, 23, tzinfo=timezone(timedelta(hours=-5)))
        with pytest.raises(ValueError):
            _ = to_utc(value)


class TestCursors:
    def test_cursor_round_trip_and_start(self):
        assert decode_cursor(encode_cursor(25)) == 25
        assert decode_cursor(None) == 0
        assert decode_cursor("") == 0

    def test_invalid_cursor(self):
        with pytest.raises(ValueError):
            _ = decode_cursor("!!!")
        with pytest.raises(ValueError):
            _ = decode_cursor(base64.urlsafe_b64encode(b"page:1").decode())
        with pytest.raises(ValueError):
            _ = decode_cursor(base64.urlsafe_b64encode(b"offset:-1").decode())


class TestFillTimeSeries:
    """Expansion of sparse bucket counts to a dense series."""

    def test_days_are_filled_with_zeros(self):
        series = fill_time_series(
            {"2024-01-02": 3},
            datetime(2024, 1, 1, 12, tzinfo=UTC),
            datetime(2024, 1, 3, tzinfo=UTC),
            Interval.DAY,
        )
        assert series == [("2024-01-01", 0), ("2024-01-02", 3), ("2024-01-03", 0)]

    def test_months_wrap_over_year_end(self):
        series = fill_time_series(
            {"2024-01": 1},
            datetime(2023, 11, 15, tzinfo=UTC),
            datetime(2024, 2, 1, tzinfo=UTC),
            Interval.MONTH,
        )
        assert [key for key, _ in series] == ["2023-11", "2023-12", "2024-01", "2024-02"]
        assert dict(series)["2024-01"] == 1

    def test_years(self):
        series = fill_time_series(
            {}, datetime(2020, 6, 1), datetime(2022, 1, 1), Interval.YEAR
        )
        assert series == [("2020", 0), ("2021", 0), ("2022", 0)]

    @pytest.mark.parametrize(
        "interval,expected",
        [
            (Interval.DAY, ("9999-12-30", "9999-12-31")),
            (Interval.MONTH, ("9999-11", "9999-12")),
            (Interval.YEAR, ("9998", "9999")),
        ],
    )
    def test_window_ending_in_last_year(
        self, interval: Interval, expected: tuple[str, str]
    ):
        series = fill_time_series(
            {},
            datetime(9998, 12, 30, tzinfo=UTC),
            datetime(9999, 12, 31, 23, 59, tzinfo=UTC),
            interval,
        )
        assert series[-2:] == [(expected[0], 0), (expected[1], 0)]

    def test_window_crossing_into_year_1000(self):
        series = fill_time_series(
            {"0999-12-31": 2},
            datetime(999, 12, 30, tzinfo=UTC),
            datetime(1000, 1, 2, tzinfo=UTC),
            Interval.DAY,
        )
        assert series == [
            ("0999-12-30", 0),
            ("0999-12-31", 2),
            ("1000-01-01", 0),
            ("1000-01-02", 0),
        ]

    def test_end_before_start_is_empty(self):
        assert (
            fill_time_series(
                {}, datetime(2024, 2, 1), datetime(2024, 1, 1), Interval.MONTH
            )
            == []
        )


class TestBucketCount:
    def test_counts_per_interval(self):
        start = datetime(2023, 11, 30, 18, tzinfo=UTC)
        end = datetime(2024, 2, 1, tzinfo=UTC)
        assert bucket_count(start, end, Interval.DAY) == 64
        assert bucket_count(start, end, Interval.MONTH) == 4
        assert bucket_count(start, end, Interval.YEAR) == 2

    def test_single_bucket(self):
        moment = datetime(2024, 5, 5, 12, tzinfo=UTC)
        assert bucket_count(moment, moment, Interval.DAY) == 1
