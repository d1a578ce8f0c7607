"""Address to coordinates lookup against a Nominatim-compatible service.

Routes receive the geocoder through the ``get_geocoder`` dependency so tests
and deployments can swap the provider. A ``None`` result means the address
could not be located; callers treat that as invalid input.
"""

import logging
from typing import Awaitable, Callable, NamedTuple, Optional

import httpx

import config

logger = logging.getLogger(__name__)


class Coordinates(NamedTuple):
    latitude: float
    longitude: float


Geocoder = Callable[[dict], Awaitable[Optional[Coordinates]]]


def format_address(address: dict) -> str:
    return (
        f"{address['street']}, {address['city']}, {address['province']} "
        f"{address['postal_code']}, {address.get('country') or 'Canada'}"
    )


async def geocode_address(address: dict) -> Optional[Coordinates]:
    params = {"q": format_address(address), "format": "json", "limit": 1}
    headers = {"User-Agent": config.GEOCODING_USER_AGENT}
    try:
        async with httpx.AsyncClient(timeout=config.GEOCODING_TIMEOUT_SECONDS, headers=headers) as client:
            response = await client.get(f"{config.GEOCODING_BASE_URL}/search", params=params)
            response.raise_for_status()
            results = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Geocoding failed for {address.get('city')}: {e}")
        return None

    if not results:
        logger.info(f"No geocoding match for {address.get('city')}")
        return None
    try:
        return Coordinates(float(results[0]["lat"]), float(results[0]["lon"]))
    except (KeyError, TypeError, ValueError):
        logger.warning("Unexpected geocoding payload")
        return None


def get_geocoder() -> Geocoder:
    return geocode_address
