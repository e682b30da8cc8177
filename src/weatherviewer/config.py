# runtime settings, read once from the environment
# in production, variables are injected by the shell or a .env file next to the app

from __future__ import annotations
import os
from dataclasses import dataclass
from dotenv import load_dotenv
from .errors import ConfigurationError

DEFAULT_BASE_URL = "https://api.openweathermap.org/data/2.5/forecast"
DEFAULT_ICON_URL = "http://openweathermap.org/img/w/{icon}.png"
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    icon_url_template: str = DEFAULT_ICON_URL
    timeout: float = DEFAULT_TIMEOUT
    # fixed query parameters, kept here so tests and the query builder agree on them
    units: str = "metric"
    lang: str = "en"
    count: int = 16
    user_agent: str = "weather-viewer/0.1"

    def icon_url(self, icon: str) -> str:
        return self.icon_url_template.format(icon=icon)


def load_settings() -> Settings:
    load_dotenv()

    api_key = os.getenv("OPENWEATHER_API_KEY")
    if not api_key:
        # fail early, a missing key otherwise shows up as a confusing 401 "connection" notice
        raise ConfigurationError("OPENWEATHER_API_KEY not set")

    raw_timeout = os.getenv("WEATHERVIEWER_TIMEOUT")
    try:
        timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
    except ValueError as exc:
        raise ConfigurationError(f"WEATHERVIEWER_TIMEOUT must be a number (got {raw_timeout!r})") from exc

    return Settings(
        api_key=api_key,
        base_url=os.getenv("OPENWEATHER_BASE_URL") or DEFAULT_BASE_URL,
        icon_url_template=os.getenv("OPENWEATHER_ICON_URL") or DEFAULT_ICON_URL,
        timeout=timeout,
    )
