"""Public holiday catalog backed by the Nager.Date API."""

from typing import Any

import httpx
import structlog

from smart_invoice.config import get_settings
from smart_invoice.errors import NetworkUnavailable

logger = structlog.get_logger(__name__)

UNNAMED_HOLIDAY = "Public holiday"


class HolidayCatalog:
    """Fetches and caches public holiday names per year.

    The cache lives on the instance: build one catalog per process and pass it
    to whoever needs holiday lookups. Concurrent fetches for the same year may
    both hit the network; the second write simply replaces identical data.
    """

    def __init__(
        self,
        base_url: str | None = None,
        country_code: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.holiday_api_url).rstrip("/")
        self.country_code = (country_code or settings.holiday_country).upper()
        self._timeout = timeout or settings.holiday_timeout

        self._cache: dict[int, dict[str, str]] = {}
        self._client: httpx.AsyncClient | None = None
        self._logger = logger.bind(country=self.country_code)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HolidayCatalog":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def is_cached(self, year: int) -> bool:
        return year in self._cache

    def prime(self, year: int, holidays: dict[str, str]) -> None:
        """Seed the cache for a year without touching the network."""
        self._cache[year] = dict(holidays)

    async def fetch_strict(self, year: int) -> dict[str, str]:
        """Like ``fetch`` but raises ``NetworkUnavailable`` on failure."""
        if year in self._cache:
            return dict(self._cache[year])

        try:
            client = await self._get_client()
            response = await client.get(f"/PublicHolidays/{year}/{self.country_code}")
            response.raise_for_status()
            holidays = self._parse_holidays(response.json())
        except (httpx.HTTPError, ValueError) as e:
            raise NetworkUnavailable(
                f"Holiday source unavailable for {year}", details=str(e)
            ) from e

        self._cache[year] = holidays
        self._logger.info("holidays_loaded", year=year, count=len(holidays))
        return dict(holidays)

    async def fetch(self, year: int) -> dict[str, str]:
        """Return a map of ISO date -> holiday name for the given year.

        Any failure is logged and yields an empty map. Failures are not cached,
        so a later call gets another chance once the network is back.
        """
        try:
            return await self.fetch_strict(year)
        except NetworkUnavailable as e:
            self._logger.warning("holiday_fetch_failed", year=year, error=str(e.details))
            return {}

    def _parse_holidays(self, data: Any) -> dict[str, str]:
        """Convert the API payload into a date -> name map."""
        if not isinstance(data, list):
            raise ValueError("Invalid holiday response format")

        holidays: dict[str, str] = {}
        for item in data:
            if not isinstance(item, dict) or not item.get("date"):
                continue
            name = item.get("localName") or item.get("name") or UNNAMED_HOLIDAY
            holidays[str(item["date"])] = str(name)
        return holidays

    async def for_month(self, year: int, month: int) -> dict[str, str]:
        """Return holidays falling in one month."""
        prefix = f"{year:04d}-{month:02d}-"
        holidays = await self.fetch(year)
        return {day: name for day, name in holidays.items() if day.startswith(prefix)}
