from __future__ import annotations
from dataclasses import dataclass
import ipaddress
import logging
from typing import Optional

import httpx

from shortlinkapi.core.config import settings

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
LOCAL = "local"


@dataclass(frozen=True)
class Location:
    country: str
    city: str
    region: str


UNKNOWN_LOCATION = Location(country=UNKNOWN, city=UNKNOWN, region=UNKNOWN)
LOCAL_LOCATION = Location(country=LOCAL, city=LOCAL, region=LOCAL)


def is_local_address(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return addr.is_loopback or addr.is_private or addr.is_link_local


class GeoLocator:
    """
    Country/city/region lookup against an ipapi.co-compatible service.

    Never raises: timeouts, HTTP errors and odd payloads all come back as
    UNKNOWN_LOCATION. Loopback and private addresses resolve to "local"
    without a network call.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_url = (api_url or settings.geo_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.geo_timeout_seconds
        # one pooled client per locator, reused across lookups
        self._client = client if client is not None else httpx.Client(timeout=self.timeout)

    def lookup(self, ip: str) -> Location:
        if is_local_address(ip):
            return LOCAL_LOCATION
        try:
            ipaddress.ip_address(ip)
        except ValueError:
            return UNKNOWN_LOCATION

        try:
            data = self._fetch(ip)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geolocation lookup failed: %s", type(exc).__name__)
            return UNKNOWN_LOCATION

        if not isinstance(data, dict) or data.get("error"):
            return UNKNOWN_LOCATION

        return Location(
            country=data.get("country_name") or UNKNOWN,
            city=data.get("city") or UNKNOWN,
            region=data.get("region") or UNKNOWN,
        )

    def _fetch(self, ip: str):
        url = f"{self.api_url}/{ip}/json/"
        response = self._client.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()
