"""Tests for latest-value extraction."""

from utils.series import latest_value


class TestLatestValue:
    """Test latest_value on raw series and full responses."""

    def test_empty_series_returns_none(self):
        assert latest_value({}) is None

    def test_none_returns_none(self):
        assert latest_value(None) is None

    def test_picks_latest_date(self):
        series = {
            "2024-01-02": {"EMA": "10.5"},
            "2024-01-03": {"EMA": "11.25"},
        }
        assert latest_value(series) == 11.25

    def test_picks_latest_date_regardless_of_key_order(self):
        series = {
            "2024-01-03": {"RSI": "61.0"},
            "2023-12-29": {"RSI": "40.0"},
            "2024-01-02": {"RSI": "55.0"},
        }
        assert latest_value(series) == 61.0

    def test_payload_key_unwraps_response(self):
        response = {
            "Meta Data": {"1: Symbol": "IBM"},
            "Technical Analysis: EMA": {"2024-01-03": {"EMA": "150.1"}},
        }
        assert latest_value(response, "Technical Analysis: EMA") == 150.1

    def test_missing_payload_key_returns_none(self):
        response = {"Technical Analysis: RSI": {"2024-01-03": {"RSI": "50"}}}
        assert latest_value(response, "Technical Analysis: EMA") is None

    def test_empty_payload_returns_none(self):
        assert latest_value({"Technical Analysis: EMA": {}}, "Technical Analysis: EMA") is None

    def test_empty_record_returns_none(self):
        assert latest_value({"2024-01-03": {}}) is None

    def test_first_field_read_without_field_name(self):
        series = {"2024-01-03": {"SlowK": "72.5", "SlowD": "65.0"}}
        assert latest_value(series) == 72.5

    def test_named_field(self):
        series = {"2024-01-03": {"SlowK": "72.5", "SlowD": "65.0"}}
        assert latest_value(series, field="SlowD") == 65.0

    def test_missing_named_field_returns_none(self):
        series = {"2024-01-03": {"SlowD": "65.0"}}
        assert latest_value(series, field="SlowK") is None

    def test_non_numeric_value_returns_none(self):
        assert latest_value({"2024-01-03": {"EMA": "n/a"}}) is None
