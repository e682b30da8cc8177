# OOP boundary for external i/o
# all http lives here and every requests exception is translated into our own error types
# use a thread-local session per ThreadPoolExecutor worker, fetches and icon downloads run on pool threads

from __future__ import annotations
import logging
import threading
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from .config import Settings
from .errors import ConnectionFailureError, ReadFailureError

logger = logging.getLogger(__name__)


class ForecastClient:
    # one GET per call, the caller decides what to do with failures

    def __init__(self, settings: Settings):
        self.timeout = settings.timeout
        self.user_agent = settings.user_agent

        # each worker thread lazily obtains its own session through _session()
        self._local = threading.local()

        # no retries at all: exactly one round trip per call, a failure is reported as is
        self._retry = Retry(
            total=0,
            read=False,
            allowed_methods=("GET",),
            raise_on_status=False,
        )

    def _build_session(self) -> requests.Session:
        s = requests.Session()
        s.headers.update({"User-Agent": self.user_agent})
        adapter = HTTPAdapter(max_retries=self._retry)
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        return s

    def _session(self) -> requests.Session:
        sess = getattr(self._local, "session", None)
        if sess is None:
            sess = self._build_session()
            self._local.session = sess
        return sess

    def _get(self, url: str) -> requests.Response:
        # returns a response whose body has been fully read, the connection is already released
        try:
            # stream=True so the status is known before the body is read, the with block releases the connection
            with self._session().get(url, timeout=self.timeout, stream=True) as resp:
                if resp.status_code != 200:
                    raise ConnectionFailureError(f"HTTP {resp.status_code} for {_redact(url)}")
                try:
                    _ = resp.content
                except requests.RequestException as exc:
                    # partial body is discarded, nothing downstream ever sees it
                    raise ReadFailureError(f"Body read failed for {_redact(url)}: {exc}") from exc
                return resp
        except requests.RequestException as exc:
            raise ConnectionFailureError(f"Request error for {_redact(url)}: {exc}") from exc

    def fetch_text(self, url: str) -> str:
        resp = self._get(url)
        logger.info("Fetched %d bytes from %s", len(resp.content), _redact(url))
        return resp.text

    def fetch_bytes(self, url: str) -> bytes:
        return self._get(url).content


def _redact(url: str) -> str:
    # keep the api key out of logs and error messages
    head, sep, _ = url.partition("APPID=")
    return f"{head}{sep}***" if sep else url
