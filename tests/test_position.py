"""
Tests for position acquisition and manual entry.

Run with: python -m pytest tests/test_position.py
"""

import json

import pytest

from client.position import (
    FixFileProvider,
    PositionOptions,
    PositionProvider,
    now_ms,
    parse_manual_entry,
    position_from_fix,
)
from logic.errors import InvalidLocation, PermissionDenied, UnsupportedCapability


def test_parse_manual_entry():
    position = parse_manual_entry("51.5074", "-0.1278")
    assert position.latitude == 51.5074
    assert position.longitude == -0.1278
    assert position.accuracy is None
    assert position.timestamp == pytest.approx(now_ms(), abs=5000)


def test_parse_manual_entry_does_not_check_ranges():
    position = parse_manual_entry("123", "500")
    assert position.latitude == 123.0
    assert position.longitude == 500.0


@pytest.mark.parametrize(
    "latitude,longitude",
    [("", "1"), ("1", ""), ("  ", "1"), ("", "")],
)
def test_parse_manual_entry_requires_both(latitude, longitude):
    with pytest.raises(InvalidLocation) as exc_info:
        parse_manual_entry(latitude, longitude)
    assert exc_info.value.message == "Please enter latitude and longitude."


@pytest.mark.parametrize("latitude", ["north", "nan", "inf", "1,5"])
def test_parse_manual_entry_rejects_non_numbers(latitude):
    with pytest.raises(InvalidLocation):
        parse_manual_entry(latitude, "10")


def test_position_from_tpv_fix():
    fix = {
        "class": "TPV",
        "lat": 35.6762,
        "lon": 139.6503,
        "alt": 40.0,
        "track": 90.0,
        "speed": 1.2,
        "eph": 4.5,
        "time": "2025-01-01T00:00:00Z",
    }
    position = position_from_fix(fix)
    assert position.latitude == 35.6762
    assert position.longitude == 139.6503
    assert position.altitude == 40.0
    assert position.heading == 90.0
    assert position.speed == 1.2
    assert position.accuracy == 4.5
    assert position.timestamp == 1735689600000.0


def test_position_from_report_style_fix():
    fix = {"latitude": 1.0, "longitude": 2.0, "accuracy": "bad", "timestamp": 1700000000000}
    position = position_from_fix(fix)
    assert position.accuracy is None
    assert position.timestamp == 1700000000000.0


def test_position_from_fix_without_coordinates():
    with pytest.raises(PermissionDenied):
        position_from_fix({"class": "TPV", "mode": 1})


@pytest.mark.asyncio
async def test_base_provider_is_unsupported():
    with pytest.raises(UnsupportedCapability):
        await PositionProvider().get_current_position(PositionOptions())


class TestFixFileProvider:
    """Test reading fixes from a JSON file."""

    @pytest.mark.asyncio
    async def test_reads_fix(self, tmp_path):
        path = tmp_path / "fix.json"
        path.write_text(json.dumps({"lat": 10.0, "lon": 20.0}), encoding="utf-8")

        position = await FixFileProvider(path).get_current_position(PositionOptions())

        assert (position.latitude, position.longitude) == (10.0, 20.0)

    @pytest.mark.asyncio
    async def test_missing_file_is_unsupported(self, tmp_path):
        provider = FixFileProvider(tmp_path / "absent.json")
        with pytest.raises(UnsupportedCapability):
            await provider.get_current_position(PositionOptions())

    @pytest.mark.asyncio
    async def test_corrupt_file_is_denied(self, tmp_path):
        path = tmp_path / "fix.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PermissionDenied):
            await FixFileProvider(path).get_current_position(PositionOptions())

    @pytest.mark.asyncio
    async def test_stale_fix_rejected_when_maximum_age_set(self, tmp_path):
        path = tmp_path / "fix.json"
        path.write_text(
            json.dumps({"lat": 1.0, "lon": 2.0, "timestamp": now_ms() - 60000}),
            encoding="utf-8",
        )
        provider = FixFileProvider(path)

        with pytest.raises(PermissionDenied):
            await provider.get_current_position(PositionOptions(maximum_age=1000))

        # maximum_age=0 always re-reads the file, so the fix on disk is used
        position = await provider.get_current_position(PositionOptions(maximum_age=0))
        assert position.latitude == 1.0

    @pytest.mark.asyncio
    async def test_file_is_reread_each_call(self, tmp_path):
        path = tmp_path / "fix.json"
        provider = FixFileProvider(path)

        path.write_text(json.dumps({"lat": 1.0, "lon": 1.0}), encoding="utf-8")
        first = await provider.get_current_position(PositionOptions())
        path.write_text(json.dumps({"lat": 2.0, "lon": 2.0}), encoding="utf-8")
        second = await provider.get_current_position(PositionOptions())

        assert first.latitude == 1.0
        assert second.latitude == 2.0
