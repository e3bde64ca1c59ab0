"""IP based location detection."""

import asyncio
import logging

import requests

from lets_pray.domain.errors import ProviderError
from lets_pray.domain.models import SystemInfo
from lets_pray.infrastructure.aladhan import local_timezone_name
from lets_pray.services.ports import LocationResolverPort

logger = logging.getLogger(__name__)

IPINFO_URL = "https://ipinfo.io/json"


class IpInfoLocationResolver(LocationResolverPort):
    """Detects an approximate location through ipinfo.io."""

    def __init__(self, timeout: float = 5.0, session: requests.Session | None = None) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()

    async def detect(self) -> SystemInfo:
        return await asyncio.to_thread(self._detect_sync)

    def _detect_sync(self) -> SystemInfo:
        logger.debug(f"Requesting IP-based location from ipinfo.io (timeout={self._timeout})")
        try:
            response = self._session.get(IPINFO_URL, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(f"Location detection failed: {e}") from e

        city = (payload.get("city") or "").strip()
        country = (payload.get("country") or "").strip()
        if not city:
            raise ProviderError("Location detection returned no city")

        location = f"{city}, {country}" if country else city
        timezone = payload.get("timezone") or local_timezone_name()
        logger.info(f"Detected location: {location} ({timezone})")
        return SystemInfo(location=location, timezone=timezone)
