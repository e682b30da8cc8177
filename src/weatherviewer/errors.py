# error taxonomy for the whole app
# every failure a user can see carries its own notice text, so the session only has to show exc.notice

from __future__ import annotations


class WeatherViewerError(RuntimeError):
    # base type, lets callers catch everything raised by this package in one place
    notice = "Something went wrong"


class ConfigurationError(WeatherViewerError):
    notice = "Configuration error"


class InvalidInputError(WeatherViewerError):
    # empty or unencodable city text, raised before any network call
    notice = "Invalid URL"


class ConnectionFailureError(WeatherViewerError):
    # non-200 status or a transport level exception
    notice = "Unable to connect to OpenWeatherMap.org"


class ReadFailureError(WeatherViewerError):
    # the body stream broke after a 200 status
    notice = "Unable to read weather data"


class MalformedPayloadError(WeatherViewerError):
    notice = "Unable to parse weather data"


class IconDownloadError(WeatherViewerError):
    # never shown to the user, the row just stays without an icon
    notice = ""
