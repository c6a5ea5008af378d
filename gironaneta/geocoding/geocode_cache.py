"""
Reverse geocoding with a persistent cache for Girona Neta

Complies with the Nominatim usage policy:
- identifying User-Agent on every request
- at most one request per second
- results cached by coordinates rounded to 5 decimals (~1.1 m)

The one-per-second throttle lives in this process only. Several workers or
instances each keep their own timestamp, so the combined request rate can
exceed the limit; enforcing it globally would need a shared token bucket.

API Documentation: https://nominatim.org/release-docs/develop/api/Reverse/
"""

import asyncio
import logging
import time
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from gironaneta.core.config import settings
from gironaneta.core.constants import GEOCODE_CACHE_DECIMALS
from gironaneta.core.geo_utils import round_coordinate
from gironaneta.database.repository import ReportRepository

logger = logging.getLogger(__name__)

ADDRESS_SEGMENTS = 3
MIN_UPSTREAM_INTERVAL_SECONDS = 1.0

# Monotonic time of the latest upstream slot reserved by this process
_last_upstream_call: float = 0.0


def reset_throttle() -> None:
    """Forget the last upstream call time."""
    global _last_upstream_call
    _last_upstream_call = 0.0


def address_label_from_display_name(display_name: Optional[str]) -> str:
    """First three comma separated segments of a Nominatim display_name."""
    if not display_name:
        return ""
    segments = [s.strip() for s in display_name.split(",")[:ADDRESS_SEGMENTS]]
    return ", ".join(s for s in segments if s)


class NominatimClient:
    """
    Minimal async client for Nominatim reverse geocoding.

    Raises httpx errors and ValueError on bad responses; GeocodeCache turns
    them into an empty label.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.nominatim_url
        self.user_agent = user_agent or settings.nominatim_user_agent
        self.timeout = timeout or settings.geocode_timeout_seconds
        self._transport = transport

        if not self.user_agent:
            raise ValueError("Nominatim requires an identifying User-Agent")

    async def reverse(self, latitude: float, longitude: float) -> str:
        """Resolve coordinates to a short address label."""
        params = {
            "format": "json",
            "lat": str(latitude),
            "lon": str(longitude),
            "zoom": "18",
            "addressdetails": "1",
        }
        headers = {
            "User-Agent": self.user_agent,
            "Accept-Language": "ca",
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.base_url, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict):
            raise ValueError("Unexpected Nominatim response")

        return address_label_from_display_name(data.get("display_name"))


class GeocodeCache:
    """Cached, throttled reverse geocoding. Never raises for upstream failures."""

    def __init__(
        self,
        repository: ReportRepository,
        client: Optional[NominatimClient] = None,
        min_interval: float = MIN_UPSTREAM_INTERVAL_SECONDS,
    ):
        self.repository = repository
        self.client = client or NominatimClient()
        self.min_interval = min_interval

    async def lookup(self, latitude: float, longitude: float) -> str:
        """
        Address label for a coordinate pair.

        Args:
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees

        Returns:
            Address label, or "" when it cannot be resolved
        """
        rounded_lat = round_coordinate(latitude, GEOCODE_CACHE_DECIMALS)
        rounded_lon = round_coordinate(longitude, GEOCODE_CACHE_DECIMALS)

        cached = await self.repository.get_geocode(rounded_lat, rounded_lon)
        if cached is not None:
            logger.debug(f"Geocode cache hit for ({rounded_lat}, {rounded_lon})")
            return cached.address_label

        await self._throttle()

        try:
            label = await self.client.reverse(latitude, longitude)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Nominatim reverse-geocode error: {e}")
            return ""

        if label:
            try:
                await self.repository.upsert_geocode(rounded_lat, rounded_lon, label)
            except SQLAlchemyError as e:
                logger.error(f"Failed to cache geocode result: {e}")
                await self.repository.session.rollback()

        return label

    async def _throttle(self) -> None:
        """
        Wait for the next free upstream slot.

        The slot is reserved before sleeping, so concurrent misses in this
        process queue up one interval apart instead of waking together.
        """
        global _last_upstream_call

        now = time.monotonic()
        slot = max(now, _last_upstream_call + self.min_interval)
        _last_upstream_call = slot
        if slot > now:
            await asyncio.sleep(slot - now)
