"""Currency-by-IP lookup against the ipgeolocation.io API."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from jobboard.config import settings
from jobboard.exceptions import UpstreamError

logger = logging.getLogger(__name__)


IPGEOLOCATION_URL = "https://api.ipgeolocation.io/ipgeo"


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str


USD = Currency("USD", "$")
CURRENCIES = {
    "USD": USD,
    "EUR": Currency("EUR", "€"),
    "GBP": Currency("GBP", "£"),
}


def client_ip(forwarded_for: Optional[str], fallback: Optional[str] = None) -> Optional[str]:
    """First address in X-Forwarded-For, else the socket peer."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return fallback


async def fetch_currency_code(ip: str, session: aiohttp.ClientSession) -> str:
    """
    Ask ipgeolocation.io for the currency used at an IP address.

    Raises:
        UpstreamError: Non-200 status, unreadable body, timeout or transport failure
    """
    params = {"apiKey": settings.ipgeolocation_api_key, "ip": ip, "fields": "currency"}
    timeout = aiohttp.ClientTimeout(total=settings.ipgeolocation_timeout_seconds)
    try:
        async with session.get(IPGEOLOCATION_URL, params=params, timeout=timeout) as resp:
            if resp.status != 200:
                raise UpstreamError("ipgeolocation", f"status {resp.status}")
            data = await resp.json()
    except asyncio.TimeoutError as e:
        raise UpstreamError("ipgeolocation", "request timed out") from e
    except (aiohttp.ClientError, ValueError) as e:
        raise UpstreamError("ipgeolocation", f"{type(e).__name__}: {e}") from e

    try:
        code = data["currency"]["code"]
    except (KeyError, TypeError) as e:
        raise UpstreamError("ipgeolocation", f"unexpected response {data!r}") from e
    if not isinstance(code, str):
        raise UpstreamError("ipgeolocation", f"unexpected currency code {code!r}")
    return code


async def lookup(ip: Optional[str]) -> Currency:
    """Currency for an IP address. Any failure or unsupported currency means USD."""
    if not ip or not settings.ipgeolocation_api_key:
        return USD

    try:
        async with aiohttp.ClientSession() as session:
            code = await fetch_currency_code(ip, session)
    except UpstreamError as e:
        logger.warning(f"Unable to retrieve currency for ip addr {ip}: {e.message}")
        return USD

    return CURRENCIES.get(code.upper(), USD)
