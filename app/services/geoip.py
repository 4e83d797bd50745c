"""Country lookup for client IP addresses via ip-api.com."""

import ipaddress
import logging
from typing import Optional
import httpx

logger = logging.getLogger(__name__)

LOCAL_COUNTRY = "Local"


def is_local_address(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return addr.is_private or addr.is_loopback or addr.is_link_local


class GeoIpService:
    def __init__(self, base_url: str = "http://ip-api.com/json", timeout: float = 3.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def country_for_ip(self, ip: Optional[str]) -> Optional[str]:
        """Return the country name for ``ip``, ``"Local"`` for private
        addresses, or None when the lookup fails.
        """
        if not ip:
            return None
        if is_local_address(ip):
            return LOCAL_COUNTRY

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(f"{self.base_url}/{ip}", params={"fields": "country,status"})
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geo-IP lookup failed for %s: %s", ip, e)
            return None

        if data.get("status") != "success":
            return None
        return data.get("country")
