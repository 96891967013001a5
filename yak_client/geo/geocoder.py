"""Reverse geocoders that turn a coordinate pair into a readable address."""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import aiohttp

from yak_client.api.errors import EnrichmentError
from yak_client.config import GeocoderConfig

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    """A protocol that defines the interface for reverse geocoders."""

    async def resolve_address(self, latitude: float, longitude: float) -> str:
        """Returns the address at a coordinate pair, raising on failure."""
        ...


class NominatimGeocoder:
    """Reverse geocoder backed by an OpenStreetMap Nominatim endpoint."""

    def __init__(
        self,
        config: Optional[GeocoderConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the geocoder.

        Args:
            config: Endpoint configuration
            session: HTTP session to use; one is created lazily if omitted
        """
        self.config = config or GeocoderConfig()
        self._session = session
        self._owns_session = session is None
        self._closed = False

    def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise EnrichmentError("Geocoder is closed")
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_sec)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this geocoder created it."""
        self._closed = True
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "NominatimGeocoder":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def resolve_address(self, latitude: float, longitude: float) -> str:
        """
        Look up the address at a coordinate pair.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees

        Returns:
            The provider's display name for the location

        Raises:
            EnrichmentError: If the lookup fails or returns no address
        """
        params = {"format": "jsonv2", "lat": str(latitude), "lon": str(longitude)}
        headers = {"User-Agent": self.config.user_agent}

        try:
            async with self._get_session().get(
                self.config.url, params=params, headers=headers
            ) as response:
                if response.status != 200:
                    raise EnrichmentError(
                        f"Geocoder returned HTTP {response.status} for {latitude}, {longitude}"
                    )
                data: Dict[str, Any] = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise EnrichmentError(f"Geocoding {latitude}, {longitude} failed: {e!r}") from e

        if not isinstance(data, dict) or data.get("error"):
            error = data.get("error") if isinstance(data, dict) else data
            raise EnrichmentError(f"Geocoder error for {latitude}, {longitude}: {error}")

        address = data.get("display_name")
        if not address:
            raise EnrichmentError(f"No address found for {latitude}, {longitude}")

        logger.debug(f"Resolved {latitude}, {longitude} to {address}")
        return address
