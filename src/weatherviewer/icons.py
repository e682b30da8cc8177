# in-memory icon cache keyed by url, shared by every row of one session
# entries live as long as the process, there is no eviction and no size bound

from __future__ import annotations
import io
import logging
import threading
from concurrent.futures import Executor, Future
from typing import Dict, Optional
from PIL import Image
from .client import ForecastClient
from .errors import IconDownloadError
from .models import Icon

logger = logging.getLogger(__name__)


def decode_icon(url: str, data: bytes) -> Icon:
    try:
        image = Image.open(io.BytesIO(data))
        # Image.open is lazy, load() forces the full decode so broken files fail here
        image.load()
    except Exception as exc:
        # corrupt rasters surface as OSError, SyntaxError or ValueError depending on where Pillow notices
        raise IconDownloadError(f"Cannot decode icon {url}: {exc}") from exc
    return Icon(url=url, data=data, image=image)


class IconCache:
    def __init__(self, client: ForecastClient, executor: Executor):
        self._client = client
        self._executor = executor
        self._lock = threading.Lock()
        self._icons: Dict[str, Icon] = {}
        # one pending future per url, a second request for the same url waits on the first download
        self._in_flight: Dict[str, "Future[Icon]"] = {}

    def get(self, url: str) -> Optional[Icon]:
        with self._lock:
            return self._icons.get(url)

    def get_or_fetch(self, url: str) -> "Future[Icon]":
        with self._lock:
            icon = self._icons.get(url)
            if icon is not None:
                done: "Future[Icon]" = Future()
                done.set_result(icon)
                return done

            pending = self._in_flight.get(url)
            if pending is not None:
                return pending

            future: "Future[Icon]" = Future()
            self._in_flight[url] = future

        # submitted outside the lock, the download settles the entry under the same lock
        try:
            self._executor.submit(self._download, url, future)
        except RuntimeError as exc:
            # executor already shut down
            self._settle(url, None)
            future.set_exception(IconDownloadError(f"Cannot schedule icon {url}: {exc}"))
        return future

    def _download(self, url: str, future: "Future[Icon]") -> None:
        if not future.set_running_or_notify_cancel():
            self._settle(url, None)
            return

        try:
            icon = decode_icon(url, self._client.fetch_bytes(url))
        except Exception as exc:
            # every path settles the entry and resolves the future, otherwise the url stays in flight forever
            self._settle(url, None)
            logger.debug("Icon %s unavailable: %s", url, exc)
            if not isinstance(exc, IconDownloadError):
                wrapped = IconDownloadError(f"Cannot download icon {url}: {exc}")
                wrapped.__cause__ = exc
                exc = wrapped
            future.set_exception(exc)
            return

        # settle first, so anyone seeing a finished future also sees the cache entry
        self._settle(url, icon)
        logger.debug("Cached icon %s (%d bytes)", url, len(icon.data))
        future.set_result(icon)

    def _settle(self, url: str, icon: Optional[Icon]) -> None:
        with self._lock:
            if icon is not None:
                self._icons[url] = icon
            self._in_flight.pop(url, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._icons)

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._icons
