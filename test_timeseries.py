"""Unit tests for converting Plausible result rows into plausible_timeseries records."""

import pytest
import pytz

from timeseries import (
    TABLE_NAME,
    parse_dimension_datetime,
    record_from_result,
    table_schema,
    to_utc_timestamp,
)

BERLIN = pytz.timezone("Europe/Berlin")


class TestToUtcTimestamp:
    def test_winter_time(self):
        assert to_utc_timestamp("2024-01-01 05:00", BERLIN) == "2024-01-01T04:00:00.000Z"

    def test_summer_time(self):
        assert to_utc_timestamp("2024-07-01 05:00", BERLIN) == "2024-07-01T03:00:00.000Z"

    @pytest.mark.parametrize(
        "value", ["2024-01-01 05:00:00", "2024-01-01T05:00", "2024-01-01T05:00:00"]
    )
    def test_accepts_seconds_and_t_separator(self, value):
        assert to_utc_timestamp(value, BERLIN) == "2024-01-01T04:00:00.000Z"

    def test_other_reporting_timezone(self):
        new_york = pytz.timezone("America/New_York")

        assert to_utc_timestamp("2024-01-01 05:00", new_york) == "2024-01-01T10:00:00.000Z"

    def test_repeated_autumn_hour_uses_summer_time(self):
        # 02:00 occurs twice on 2024-10-27 in Berlin; the first occurrence is UTC+2
        assert to_utc_timestamp("2024-10-27 02:00", BERLIN) == "2024-10-27T00:00:00.000Z"
        assert to_utc_timestamp("2024-10-27 03:00", BERLIN) == "2024-10-27T02:00:00.000Z"

    def test_rejects_unknown_format(self):
        with pytest.raises(ValueError):
            parse_dimension_datetime("01/01/2024 05:00")


class TestRecordFromResult:
    def test_maps_metrics_by_position(self):
        result = {"dimensions": ["2024-01-01 05:00"], "metrics": [10, 12, 30, 45.5, 130]}

        record = record_from_result(result, BERLIN)

        assert record.as_row() == {
            "timestamp": "2024-01-01T04:00:00.000Z",
            "visitors": 10,
            "visits": 12,
            "pageviews": 30,
            "bounce_rate": 45.5,
            "visit_duration": 130,
        }

    def test_missing_dimension_is_an_error(self):
        with pytest.raises(ValueError):
            record_from_result({"dimensions": [], "metrics": [1, 1, 1, 0, 0]}, BERLIN)

    def test_wrong_metric_count_is_an_error(self):
        with pytest.raises(ValueError):
            record_from_result({"dimensions": ["2024-01-01 05:00"], "metrics": [1]}, BERLIN)


def test_table_schema():
    schema = table_schema()

    assert schema["table"] == TABLE_NAME == "plausible_timeseries"
    assert schema["primary_key"] == ["timestamp"]
    assert set(schema["columns"]) == {
        "timestamp",
        "visitors",
        "pageviews",
        "bounce_rate",
        "visit_duration",
        "visits",
    }
