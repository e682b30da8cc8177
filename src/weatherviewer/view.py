# terminal rendering of the forecast list
# a fixed set of display slots is rebound as the viewport scrolls, like a recycling list widget,
# and every async icon is checked against the slot's identity token before it is applied

from __future__ import annotations
import itertools
import logging
from concurrent.futures import Future
from dataclasses import dataclass
from typing import List, Optional
from .dispatch import MainThreadDispatcher
from .icons import IconCache
from .models import ForecastList, ForecastRecord, Icon

logger = logging.getLogger(__name__)

# openweathermap icon codes are "<condition><d|n>", the condition part picks the glyph
ICON_GLYPHS = {
    "01": "☀",
    "02": "⛅",
    "03": "☁",
    "04": "☁",
    "09": "☔",
    "10": "☂",
    "11": "⚡",
    "13": "❄",
    "50": "≋",
}
UNKNOWN_GLYPH = "?"
BLANK_GLYPH = " "


def icon_glyph(code: str) -> str:
    return ICON_GLYPHS.get(code[:2], UNKNOWN_GLYPH)


def format_row(record: ForecastRecord, icon: Optional[Icon]) -> str:
    glyph = icon_glyph(record.icon) if icon is not None else BLANK_GLYPH
    return (
        f"{record.day}: {record.description}  {glyph}  "
        f"Low: {record.min_temp}  High: {record.max_temp}  Humidity: {record.humidity}"
    )


@dataclass
class DisplaySlot:
    # one visible row, mutable because it gets rebound while scrolling
    position: int
    token: int = 0
    record: Optional[ForecastRecord] = None
    icon: Optional[Icon] = None


class ForecastView:
    def __init__(
        self,
        forecast: ForecastList,
        icons: IconCache,
        dispatcher: MainThreadDispatcher,
        rows: int = 5,
    ):
        if rows < 1:
            raise ValueError(f"'rows' must be at least 1 (got {rows})")
        self.forecast = forecast
        self.icons = icons
        self.dispatcher = dispatcher
        self.slots = [DisplaySlot(position=i) for i in range(rows)]
        self.offset = 0
        self.pending_icons = 0
        self._tokens = itertools.count(1)
        forecast.subscribe(self._on_replace)

    def _on_replace(self, _forecast: ForecastList) -> None:
        # a new list always starts at the top
        self.scroll_to_top()

    def scroll_to_top(self) -> None:
        self.scroll_to(0)

    def scroll_to(self, offset: int) -> None:
        max_offset = max(len(self.forecast) - len(self.slots), 0)
        self.offset = min(max(offset, 0), max_offset)
        self.refresh()

    def refresh(self) -> None:
        for slot in self.slots:
            index = self.offset + slot.position
            record = self.forecast[index] if index < len(self.forecast) else None
            self._bind(slot, record)

    def _bind(self, slot: DisplaySlot, record: Optional[ForecastRecord]) -> None:
        slot.token = next(self._tokens)
        slot.record = record
        slot.icon = None
        if record is None:
            return

        cached = self.icons.get(record.icon_url)
        if cached is not None:
            slot.icon = cached
            return

        token = slot.token
        self.pending_icons += 1
        future = self.icons.get_or_fetch(record.icon_url)
        # the callback may fire on a worker thread, so it only forwards to the owner thread
        future.add_done_callback(lambda f: self.dispatcher.post(self._apply_icon, slot, token, f))

    def _apply_icon(self, slot: DisplaySlot, token: int, future: "Future[Icon]") -> None:
        self.pending_icons -= 1
        if slot.token != token:
            logger.debug("Dropping late icon for slot %d, it has been rebound", slot.position)
            return
        if future.cancelled() or future.exception() is not None:
            # failed downloads leave the row without an icon
            return
        slot.icon = future.result()

    def visible_records(self) -> List[ForecastRecord]:
        return [s.record for s in self.slots if s.record is not None]

    def render(self) -> List[str]:
        return [format_row(s.record, s.icon) for s in self.slots if s.record is not None]
