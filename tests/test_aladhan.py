"""Tests for the AlAdhan provider and IP location resolver."""

from datetime import date, time
from unittest.mock import MagicMock

import pytest
import requests

from lets_pray.domain.errors import NotFoundError, ProviderError
from lets_pray.domain.models import PrayerName
from lets_pray.infrastructure.aladhan import (
    DEFAULT_PARAMS,
    AladhanPrayerTimeProvider,
    parse_time_string,
)
from lets_pray.infrastructure.location import IpInfoLocationResolver

TIMINGS = {
    "Fajr": "04:41",
    "Sunrise": "05:58",
    "Dhuhr": "11:59 (CST)",
    "Asr": "15:21",
    "Sunset": "17:58",
    "Maghrib": "18:02",
    "Isha": "19:13",
}


def make_session(status_code: int = 200, payload: object = None, error: Exception | None = None) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    if error is not None:
        session.get.side_effect = error
        return session
    response = MagicMock()
    response.status_code = status_code
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    session.get.return_value = response
    return session


def ok_payload(timings: dict[str, str] | None = None) -> dict:
    return {
        "code": 200,
        "data": {"timings": timings or TIMINGS, "meta": {"timezone": "Asia/Taipei"}},
    }


class TestParseTimeString:
    """AlAdhan time strings."""

    def test_plain(self) -> None:
        assert parse_time_string("18:02") == time(18, 2)

    def test_with_zone_suffix(self) -> None:
        assert parse_time_string("05:10 (+08)") == time(5, 10)

    def test_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_time_string("soon")


class TestAladhanProvider:
    """Fetching a day's schedule."""

    async def test_fetch_five_prayers(self) -> None:
        session = make_session(payload=ok_payload())
        provider = AladhanPrayerTimeProvider(timezone_name="Asia/Taipei", session=session)

        prayers = await provider.fetch("New Taipei City", date(2026, 3, 14))

        assert [p.name for p in prayers] == list(PrayerName)
        assert prayers[1].time == time(11, 59)
        assert prayers[3].time_str == "18:02"
        assert str(prayers[0].tz) == "Asia/Taipei"
        assert all(p.date == date(2026, 3, 14) for p in prayers)

    async def test_request_parameters(self) -> None:
        session = make_session(payload=ok_payload())
        provider = AladhanPrayerTimeProvider(timezone_name="Asia/Taipei", session=session, timeout=3)

        await provider.fetch("New Taipei City", date(2026, 3, 14))

        args, kwargs = session.get.call_args
        assert args[0].endswith("/timingsByAddress/14-03-2026")
        assert kwargs["params"]["address"] == "New Taipei City"
        assert kwargs["params"]["timezonestring"] == "Asia/Taipei"
        assert kwargs["params"]["method"] == DEFAULT_PARAMS["method"]
        assert kwargs["timeout"] == 3

    async def test_network_error(self) -> None:
        session = make_session(error=requests.ConnectionError("down"))
        provider = AladhanPrayerTimeProvider(timezone_name="UTC", session=session)

        with pytest.raises(ProviderError):
            await provider.fetch("Cairo", date(2026, 3, 14))

    async def test_unknown_address(self) -> None:
        provider = AladhanPrayerTimeProvider(
            timezone_name="UTC", session=make_session(400, {"code": 400, "data": "Unable to geocode"})
        )

        with pytest.raises(NotFoundError):
            await provider.fetch("Nowhere Land", date(2026, 3, 14))

    async def test_empty_location(self) -> None:
        session = make_session(payload=ok_payload())
        provider = AladhanPrayerTimeProvider(timezone_name="UTC", session=session)

        with pytest.raises(NotFoundError):
            await provider.fetch("  ", date(2026, 3, 14))
        session.get.assert_not_called()

    async def test_server_error(self) -> None:
        provider = AladhanPrayerTimeProvider(timezone_name="UTC", session=make_session(503, {}))

        with pytest.raises(ProviderError):
            await provider.fetch("Cairo", date(2026, 3, 14))

    async def test_malformed_body(self) -> None:
        provider = AladhanPrayerTimeProvider(
            timezone_name="UTC", session=make_session(payload=ValueError("not json"))
        )

        with pytest.raises(ProviderError):
            await provider.fetch("Cairo", date(2026, 3, 14))

    async def test_no_usable_times(self) -> None:
        provider = AladhanPrayerTimeProvider(
            timezone_name="UTC", session=make_session(payload=ok_payload({"Sunrise": "05:58"}))
        )

        with pytest.raises(ProviderError):
            await provider.fetch("Cairo", date(2026, 3, 14))

    async def test_partial_times_kept(self) -> None:
        timings = {"Fajr": "04:41", "Maghrib": "bad", "Isha": "19:13"}
        provider = AladhanPrayerTimeProvider(
            timezone_name="UTC", session=make_session(payload=ok_payload(timings))
        )

        prayers = await provider.fetch("Cairo", date(2026, 3, 14))

        assert [p.name for p in prayers] == [PrayerName.FAJR, PrayerName.ISHA]


class TestIpInfoLocationResolver:
    """IP based detection."""

    async def test_detect(self) -> None:
        session = make_session(payload={"city": "Banqiao", "country": "TW", "timezone": "Asia/Taipei"})

        info = await IpInfoLocationResolver(session=session).detect()

        assert info.location == "Banqiao, TW"
        assert info.timezone == "Asia/Taipei"

    async def test_no_city(self) -> None:
        session = make_session(payload={"country": "TW"})

        with pytest.raises(ProviderError):
            await IpInfoLocationResolver(session=session).detect()

    async def test_network_error(self) -> None:
        session = make_session(error=requests.Timeout("slow"))

        with pytest.raises(ProviderError):
            await IpInfoLocationResolver(session=session).detect()
