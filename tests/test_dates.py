"""Tests for release date resolution and date helpers."""

import pytest

from fed_h41.dates import (
    day_distance,
    days_from_civil,
    iso_from_yyyymmdd,
    normalize_date,
    parse_iso,
    resolve_release_date,
    yyyymmdd_from_iso,
)


class TestResolveReleaseDate:
    """Tests for resolve_release_date."""

    def test_exact_match_short_circuits(self) -> None:
        known = ["2026-01-01", "2026-01-08", "2026-01-15"]
        assert resolve_release_date("2026-01-08", known) == "2026-01-08"

    def test_weekday_without_release_picks_nearest(self) -> None:
        """2026-01-05 is 3 days from 01-08 and 4 days from 01-01."""
        assert resolve_release_date("2026-01-05", ["2026-01-08", "2026-01-01"]) == "2026-01-08"

    def test_empty_known_returns_requested(self) -> None:
        assert resolve_release_date("2026-01-05", []) == "2026-01-05"

    def test_tie_goes_to_first_in_input_order(self) -> None:
        """2026-01-04 is 3 days from both 01-01 and 01-07."""
        assert resolve_release_date("2026-01-04", ["2026-01-07", "2026-01-01"]) == "2026-01-07"
        assert resolve_release_date("2026-01-04", ["2026-01-01", "2026-01-07"]) == "2026-01-01"

    def test_crosses_year_boundary(self) -> None:
        known = ["2025-12-31", "2026-01-08"]
        assert resolve_release_date("2026-01-02", known) == "2025-12-31"

    def test_leap_day(self) -> None:
        known = ["2024-02-28", "2024-03-06"]
        assert resolve_release_date("2024-02-29", known) == "2024-02-28"

    def test_malformed_request_raises(self) -> None:
        with pytest.raises(ValueError):
            resolve_release_date("01/05/2026", ["2026-01-08"])


class TestDayArithmetic:
    """Tests for the integer date arithmetic."""

    def test_epoch_is_day_zero(self) -> None:
        assert days_from_civil(1970, 1, 1) == 0

    def test_known_ordinals(self) -> None:
        assert days_from_civil(2000, 3, 1) - days_from_civil(2000, 2, 28) == 2
        assert days_from_civil(1900, 3, 1) - days_from_civil(1900, 2, 28) == 1

    def test_day_distance_is_symmetric(self) -> None:
        assert day_distance("2026-01-08", "2026-01-05") == 3
        assert day_distance("2026-01-05", "2026-01-08") == 3
        assert day_distance("2026-01-08", "2026-01-08") == 0

    def test_parse_iso_rejects_impossible_day(self) -> None:
        with pytest.raises(ValueError):
            parse_iso("2025-02-29")
        assert parse_iso("2024-02-29") == (2024, 2, 29)

    @pytest.mark.parametrize("iso", ["1900-02-29", "2026-04-31", "2026-13-01", "2026-00-10", "2026-01-00"])
    def test_parse_iso_month_lengths(self, iso: str) -> None:
        with pytest.raises(ValueError):
            parse_iso(iso)

    def test_parse_iso_century_leap_day(self) -> None:
        assert parse_iso("2000-02-29") == (2000, 2, 29)
        assert parse_iso("2026-12-31") == (2026, 12, 31)


class TestYyyymmdd:
    """Tests for the yyyymmdd helpers."""

    @pytest.mark.parametrize("iso", ["2026-01-08", "1999-12-31", "2024-02-29"])
    def test_inverse_pair(self, iso: str) -> None:
        assert iso_from_yyyymmdd(yyyymmdd_from_iso(iso)) == iso

    def test_formats(self) -> None:
        assert yyyymmdd_from_iso("2026-01-08") == "20260108"
        assert iso_from_yyyymmdd("20260108") == "2026-01-08"

    @pytest.mark.parametrize("value", ["2026018", "2026-01-08", "20261308", ""])
    def test_rejects_malformed(self, value: str) -> None:
        with pytest.raises(ValueError):
            iso_from_yyyymmdd(value)


class TestNormalizeDate:
    """Tests for header date parsing."""

    def test_abbreviated_month(self) -> None:
        assert normalize_date("Jan 7, 2026") == "2026-01-07"

    def test_full_month_in_sentence(self) -> None:
        assert normalize_date("Release Date: January 8, 2026") == "2026-01-08"

    def test_empty_and_garbage(self) -> None:
        assert normalize_date(None) is None
        assert normalize_date("") is None
        assert normalize_date("no date here") is None
