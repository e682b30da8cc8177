# orchestration and business rules
# parse_forecasts is pure, ForecastSession wires query -> fetch -> parse -> list on a ThreadPoolExecutor
# and hands every result back to the display thread through the dispatcher

from __future__ import annotations
import json
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import tzinfo
from typing import Callable, List, Optional
from .client import ForecastClient
from .config import DEFAULT_ICON_URL, Settings
from .dispatch import MainThreadDispatcher
from .errors import InvalidInputError, MalformedPayloadError, WeatherViewerError
from .icons import IconCache
from .models import ForecastList, ForecastRecord
from .query import build_forecast_url
from .view import ForecastView

logger = logging.getLogger(__name__)


def _text(value) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


# transform raw provider payload into our small, typed value objects and check shape
def parse_forecasts(
    text: str,
    icon_url_template: str = DEFAULT_ICON_URL,
    tz: Optional[tzinfo] = None,
) -> List[ForecastRecord]:
    # openweathermap shape: data["list"][i]["main"]["temp_min"], data["list"][i]["weather"][0]["icon"]
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise MalformedPayloadError(f"Invalid JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("list"), list):
        raise MalformedPayloadError("Unexpected API shape: missing 'list' array")

    records = []
    for position, day in enumerate(data["list"]):
        try:
            temperatures = day["main"]
            weather = day["weather"][0]
            icon = _text(weather["icon"])
            records.append(ForecastRecord.from_raw(
                timestamp=int(day["dt"]),
                min_temp=float(temperatures["temp_min"]),
                max_temp=float(temperatures["temp_max"]),
                humidity=float(temperatures["humidity"]),
                description=_text(weather["description"]),
                icon=icon,
                icon_url=icon_url_template.format(icon=icon),
                tz=tz,
            ))
        except (KeyError, IndexError, TypeError, ValueError, OverflowError, OSError) as exc:
            # one bad entry spoils the whole payload, a partial list is never shown
            raise MalformedPayloadError(f"Unexpected API shape in entry {position}: {exc!r}") from exc
    return records


class ForecastSession:
    """One display session: the list, its icon cache and the search lifecycle.

    search() may be called again while a previous search is in flight; each call
    bumps a generation counter and only the newest generation is allowed to
    touch the list. Everything that mutates display state runs on the thread
    that drains ``dispatcher``.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[ForecastClient] = None,
        executor: Optional[Executor] = None,
        dispatcher: Optional[MainThreadDispatcher] = None,
        on_notice: Optional[Callable[[str], None]] = None,
        rows: int = 5,
        tz: Optional[tzinfo] = None,
        fetch_executor: Optional[Executor] = None,
    ):
        self.settings = settings
        self.client = client or ForecastClient(settings)
        self._owned_executors: List[Executor] = []
        if executor is None:
            # icon downloads of the visible rows
            executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="weatherviewer-icons")
            self._owned_executors.append(executor)
        if fetch_executor is None:
            if self._owned_executors:
                # forecast fetches get their own worker so a new search never queues behind icons
                fetch_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="weatherviewer-fetch")
                self._owned_executors.append(fetch_executor)
            else:
                fetch_executor = executor
        self.executor = executor
        self.fetch_executor = fetch_executor
        self.dispatcher = dispatcher or MainThreadDispatcher()
        self.on_notice = on_notice or (lambda message: None)
        self.tz = tz

        self.forecast = ForecastList()
        self.icons = IconCache(self.client, self.executor)
        self.view = ForecastView(self.forecast, self.icons, self.dispatcher, rows=rows)

        self._lock = threading.Lock()
        self.generation = 0
        self._settled_generation = 0

    @property
    def busy(self) -> bool:
        return self._settled_generation != self.generation

    def search(self, city: str) -> Optional[Future]:
        try:
            url = build_forecast_url(city, self.settings)
        except InvalidInputError as exc:
            logger.info("Rejected city input %r: %s", city, exc)
            self.on_notice(exc.notice)
            return None

        with self._lock:
            self.generation += 1
            generation = self.generation
        logger.info("Search #%d for %r", generation, city.strip())
        return self.fetch_executor.submit(self._load, generation, url)

    def _load(self, generation: int, url: str) -> None:
        # worker thread: fetch and parse, then post the outcome, never touch display state here
        try:
            text = self.client.fetch_text(url)
            records = parse_forecasts(text, self.settings.icon_url_template, self.tz)
        except WeatherViewerError as exc:
            logger.warning("Search #%d failed: %s", generation, exc)
            self.dispatcher.post(self._fail, generation, exc)
            return
        except Exception as exc:
            # an unexpected error must still settle the search, or busy never clears
            logger.exception("Search #%d crashed", generation)
            error = WeatherViewerError(f"Search #{generation} crashed: {exc!r}")
            error.__cause__ = exc
            self.dispatcher.post(self._fail, generation, error)
            return
        self.dispatcher.post(self._apply, generation, records)

    def _is_stale(self, generation: int) -> bool:
        if generation != self.generation:
            logger.debug("Ignoring result of search #%d, #%d is current", generation, self.generation)
            return True
        self._settled_generation = generation
        return False

    def _apply(self, generation: int, records: List[ForecastRecord]) -> None:
        if self._is_stale(generation):
            return
        self.forecast.replace(records)

    def _fail(self, generation: int, exc: WeatherViewerError) -> None:
        if self._is_stale(generation):
            return
        # the previous list stays on screen, only a notice is shown
        self.on_notice(exc.notice)

    def wait_for_search(self, timeout: Optional[float] = None) -> bool:
        # drain the dispatcher until the current search has replaced the list or failed
        return self.dispatcher.run_until(lambda: not self.busy, timeout=timeout)

    def wait_for_icons(self, timeout: Optional[float] = None) -> bool:
        return self.dispatcher.run_until(lambda: self.view.pending_icons == 0, timeout=timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.dispatcher.run_until(
            lambda: not self.busy and self.view.pending_icons == 0, timeout=timeout
        )

    def close(self) -> None:
        for executor in self._owned_executors:
            executor.shutdown(wait=False)
