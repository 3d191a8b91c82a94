"""
Deterministic tools used by the sub-task handlers.

- calculator: add / multiply
- weather: current conditions from weatherapi.com
"""

from src.tools.calculator import add, format_number, multiply
from src.tools.weather import (
    WeatherClient,
    WeatherConfig,
    WeatherReport,
    WeatherServiceError,
    format_report,
)

__all__ = [
    "add",
    "multiply",
    "format_number",
    "WeatherClient",
    "WeatherConfig",
    "WeatherReport",
    "WeatherServiceError",
    "format_report",
]
