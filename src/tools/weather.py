"""Weather lookup client.

Wraps the weatherapi.com "current conditions" endpoint behind a single
lookup(city) call.

Usage:
------
    from src.tools import WeatherClient, format_report

    client = WeatherClient()
    report = await client.lookup("Beijing")
    print(format_report(report))
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# weatherapi.com error code for "No matching location found."
_NO_MATCHING_LOCATION = 1006


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class WeatherConfig:
    """Weather service connection settings."""

    api_key: Optional[str] = field(default_factory=lambda: os.getenv("WEATHER_API_KEY"))
    base_url: str = field(
        default_factory=lambda: os.getenv("WEATHER_API_URL", "http://api.weatherapi.com/v1")
    )
    timeout_seconds: float = 10.0
    language: str = "en"

    @classmethod
    def from_env(cls) -> "WeatherConfig":
        return cls(timeout_seconds=float(os.getenv("WEATHER_TIMEOUT_SECONDS", "10")))


# =============================================================================
# ERRORS AND MODELS
# =============================================================================


class WeatherServiceError(Exception):
    """
    Raised by WeatherClient.lookup.

    reason is "unavailable" (unreachable, misconfigured, rejected key) or
    "unknown_city" (the service did not recognize the location).
    """

    UNAVAILABLE = "unavailable"
    UNKNOWN_CITY = "unknown_city"

    def __init__(self, message: str, reason: str = UNAVAILABLE, city: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.city = city


class WeatherReport(BaseModel):
    """Current conditions for one city"""

    city: str
    country: str = ""
    temperature_c: float
    condition_text: str
    humidity_pct: int
    wind_kph: float
    feels_like_c: float
    observed_at: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "WeatherReport":
        location = payload.get("location") or {}
        current = payload["current"]
        return cls(
            city=location.get("name", ""),
            country=location.get("country", ""),
            temperature_c=current["temp_c"],
            condition_text=current["condition"]["text"],
            humidity_pct=current["humidity"],
            wind_kph=current["wind_kph"],
            feels_like_c=current["feelslike_c"],
            observed_at=current.get("last_updated"),
        )


def format_report(report: WeatherReport) -> str:
    """Multi-line summary, one item per line."""
    place = f"{report.city}, {report.country}" if report.country else report.city
    return "\n".join(
        [
            f"Weather for {place}",
            f"Temperature: {round(report.temperature_c)}°C "
            f"(feels like {round(report.feels_like_c)}°C)",
            f"Condition: {report.condition_text}",
            f"Humidity: {report.humidity_pct}%",
            f"Wind: {report.wind_kph} km/h",
        ]
    )


# =============================================================================
# CLIENT
# =============================================================================


class WeatherClient:
    """
    Async client for weatherapi.com.

    Opens one short-lived httpx client per lookup, so instances hold no
    per-request state and can be shared across concurrent sub-tasks.
    """

    def __init__(
        self,
        config: Optional[WeatherConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or WeatherConfig.from_env()
        self._transport = transport

    async def lookup(self, city: str) -> WeatherReport:
        """
        Fetch current conditions for a city.

        Raises:
            WeatherServiceError: service unreachable/misconfigured or city unknown
        """
        if not self.config.api_key:
            raise WeatherServiceError("Weather API key is not configured", city=city)

        params = {"key": self.config.api_key, "q": city, "lang": self.config.language}

        try:
            async with httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get("/current.json", params=params)
        except httpx.HTTPError as e:
            logger.warning(f"Weather service request failed for {city}: {e}")
            raise WeatherServiceError(f"Weather service unreachable: {e}", city=city) from e

        if response.status_code in (401, 403):
            raise WeatherServiceError("Weather API key was rejected", city=city)

        if response.status_code == 400:
            if self._error_code(response) == _NO_MATCHING_LOCATION:
                raise WeatherServiceError(
                    f"City not recognized: {city}",
                    reason=WeatherServiceError.UNKNOWN_CITY,
                    city=city,
                )
            raise WeatherServiceError(f"Weather service rejected the request for {city}", city=city)

        if response.status_code >= 400:
            raise WeatherServiceError(
                f"Weather service returned HTTP {response.status_code}", city=city
            )

        try:
            report = WeatherReport.from_api(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise WeatherServiceError(f"Malformed weather payload: {e}", city=city) from e

        logger.debug(f"Weather for {report.city}: {report.temperature_c}°C {report.condition_text}")
        return report

    @staticmethod
    def _error_code(response: httpx.Response) -> Optional[int]:
        try:
            return response.json().get("error", {}).get("code")
        except (ValueError, AttributeError):
            return None
