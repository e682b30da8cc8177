# models and the display formatting helpers, keeps data shapes explicit and reusable across the app

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

DEGREE_CELSIUS = "°C"


def format_temp(value: float) -> str:
    # round() is half-even and returns an int, so -0.4 prints as 0 rather than -0
    return f"{round(value)}{DEGREE_CELSIUS}"


def format_humidity(value: float) -> str:
    # the api reports 0-100, shown as a whole percentage
    return f"{round(value)}%"


def format_day(timestamp: int, tz: Optional[tzinfo] = None) -> str:
    # timestamp is UTC seconds, astimezone(None) means the machine's local zone
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc).astimezone(tz)
    return moment.strftime("%A %H:%M")


@dataclass(frozen=True)
class ForecastRecord:
    # immutable display row, every field is already formatted
    day: str
    min_temp: str
    max_temp: str
    humidity: str
    description: str
    icon: str
    icon_url: str

    @classmethod
    def from_raw(
        cls,
        timestamp: int,
        min_temp: float,
        max_temp: float,
        humidity: float,
        description: str,
        icon: str,
        icon_url: str,
        tz: Optional[tzinfo] = None,
    ) -> "ForecastRecord":
        # the only place raw numbers turn into display text
        return cls(
            day=format_day(timestamp, tz),
            min_temp=format_temp(min_temp),
            max_temp=format_temp(max_temp),
            humidity=format_humidity(humidity),
            description=description,
            icon=icon,
            icon_url=icon_url,
        )


@dataclass(frozen=True)
class Icon:
    # cached condition pictogram: raw download plus the decoded Pillow image
    url: str
    data: bytes
    image: Any


class ForecastList:
    """Ordered records shown by one session.

    The sequence only ever changes through replace(), which swaps it as a whole
    and then tells every listener (normally the view) to refresh.
    """

    def __init__(self) -> None:
        self._records: Tuple[ForecastRecord, ...] = ()
        self._listeners: List[Callable[["ForecastList"], None]] = []

    def subscribe(self, listener: Callable[["ForecastList"], None]) -> None:
        self._listeners.append(listener)

    def replace(self, records: Iterable[ForecastRecord]) -> None:
        self._records = tuple(records)
        for listener in self._listeners:
            listener(self)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> ForecastRecord:
        return self._records[index]

    def __iter__(self) -> Iterator[ForecastRecord]:
        return iter(self._records)
