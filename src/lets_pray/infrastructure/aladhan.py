"""AlAdhan API prayer time provider."""

import asyncio
import logging
from datetime import date, datetime, time, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests
from tzlocal import get_localzone_name

from lets_pray.domain.errors import NotFoundError, ProviderError
from lets_pray.domain.models import PrayerName, PrayerTime, order_prayers
from lets_pray.services.ports import PrayerTimeProviderPort

logger = logging.getLogger(__name__)

ALADHAN_TIMINGS_BY_ADDRESS_URL = "https://api.aladhan.com/v1/timingsByAddress/{date}"

# Calculation parameters: Muslim World League, general shafaq, per-prayer tune.
DEFAULT_PARAMS: dict[str, str] = {
    "method": "3",
    "shafaq": "general",
    "tune": "5,3,5,7,9,-1,0,8,-6",
    "calendarMethod": "UAQ",
}


def local_timezone_name() -> str:
    """Name of the system timezone, UTC when it cannot be determined."""
    try:
        name = get_localzone_name()
    except Exception as e:  # tzlocal raises assorted errors on odd systems
        logger.warning(f"System timezone unknown ({e}); using UTC")
        return "UTC"
    return name or "UTC"


def _zone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}'; falling back to UTC")
        return ZoneInfo("UTC")


def parse_time_string(time_str: str) -> time:
    """Parse "HH:MM" with an optional suffix such as " (CST)"."""
    clean = "".join(ch for ch in time_str if ch.isdigit() or ch == ":")[:5]
    return datetime.strptime(clean, "%H:%M").time()


class AladhanPrayerTimeProvider(PrayerTimeProviderPort):
    """Fetches a day's prayer times by address from api.aladhan.com."""

    def __init__(
        self,
        *,
        timezone_name: str | None = None,
        timeout: float = 10.0,
        params: dict[str, str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """
        Initialize provider.

        Args:
            timezone_name: Timezone the times are requested in (default: system zone)
            timeout: HTTP timeout in seconds
            params: Extra query parameters, overriding the defaults
            session: Optional requests session
        """
        self._timezone_name = timezone_name or local_timezone_name()
        self._timeout = timeout
        self._params = {**DEFAULT_PARAMS, **(params or {})}
        self._session = session or requests.Session()

    @property
    def timezone_name(self) -> str:
        return self._timezone_name

    async def fetch(self, location: str, target_date: date) -> list[PrayerTime]:
        """Fetch the schedule without blocking the event loop."""
        return await asyncio.to_thread(self._fetch_sync, location, target_date)

    def _fetch_sync(self, location: str, target_date: date) -> list[PrayerTime]:
        if not location.strip():
            raise NotFoundError("Location is empty")

        url = ALADHAN_TIMINGS_BY_ADDRESS_URL.format(date=target_date.strftime("%d-%m-%Y"))
        params = {**self._params, "address": location, "timezonestring": self._timezone_name}
        logger.debug(f"Requesting prayer times: {url} params={params}")

        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as e:
            raise ProviderError(f"Failed to fetch prayer times: {e}") from e

        logger.debug(f"Prayer times response status: {response.status_code}")
        if 400 <= response.status_code < 500:
            raise NotFoundError(f"Location not found: {location}")
        if response.status_code >= 500:
            raise ProviderError(f"Prayer time service error: HTTP {response.status_code}")

        try:
            payload = response.json()
            timings: dict[str, str] = payload["data"]["timings"]
        except (ValueError, KeyError, TypeError) as e:
            raise ProviderError(f"Failed to parse prayer times: {e}") from e

        tz_name = (payload["data"].get("meta") or {}).get("timezone") or self._timezone_name
        tz = _zone(tz_name)

        prayers = []
        for prayer in PrayerName:
            time_str = timings.get(prayer.value)
            if time_str is None:
                logger.warning(f"{prayer.value} missing from response")
                continue
            try:
                prayers.append(
                    PrayerTime(name=prayer, time=parse_time_string(time_str), date=target_date, tz=tz)
                )
            except ValueError:
                logger.warning(f"Unparseable time for {prayer.value}: {time_str!r}")

        if not prayers:
            raise ProviderError("Prayer time response contained no usable times")

        return list(order_prayers(prayers))
