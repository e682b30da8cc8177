# turns what the user typed into the forecast request URL

from __future__ import annotations
from urllib.parse import quote, urlencode
from .config import Settings
from .errors import InvalidInputError


def build_forecast_url(city: str, settings: Settings) -> str:
    city = (city or "").strip()
    if not city:
        raise InvalidInputError("city name is empty")

    params = {
        "q": city,
        "units": settings.units,
        "lang": settings.lang,
        "cnt": settings.count,
        "APPID": settings.api_key,
    }
    try:
        # quote (not quote_plus) so spaces become %20, same as the path-safe form the API echoes back
        query = urlencode(params, quote_via=quote)
    except UnicodeEncodeError as exc:
        raise InvalidInputError(f"city name cannot be encoded: {exc}") from exc

    return f"{settings.base_url}?{query}"
