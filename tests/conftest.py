# shared fixtures: deterministic executors and a fake requests session so nothing touches the network

import io
from concurrent.futures import Executor, Future
from pathlib import Path

import pytest
from PIL import Image

from weatherviewer.client import ForecastClient
from weatherviewer.config import Settings

DATA_DIR = Path(__file__).parent / "data"


def _run_into(future, fn, args, kwargs):
    try:
        future.set_result(fn(*args, **kwargs))
    except BaseException as exc:
        future.set_exception(exc)


class InlineExecutor(Executor):
    # runs every task immediately on the calling thread
    def submit(self, fn, *args, **kwargs):
        future = Future()
        _run_into(future, fn, args, kwargs)
        return future


class DeferredExecutor(Executor):
    # queues tasks until the test decides to run them, used to force interleavings
    def __init__(self):
        self.tasks = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.tasks.append((future, fn, args, kwargs))
        return future

    def run_task(self, index=0):
        future, fn, args, kwargs = self.tasks.pop(index)
        _run_into(future, fn, args, kwargs)

    def run_all(self):
        while self.tasks:
            self.run_task(0)


class FakeResponse:
    def __init__(self, status_code=200, body=b"", error=None):
        self.status_code = status_code
        self.encoding = "utf-8"
        self.closed = False
        self._body = body
        self._error = error

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False

    @property
    def content(self):
        if self._error is not None:
            raise self._error
        return self._body

    @property
    def text(self):
        return self.content.decode(self.encoding)


class FakeSession:
    # handler(url) returns a FakeResponse or raises, every call is recorded
    def __init__(self, handler):
        self.handler = handler
        self.calls = []
        self.responses = []

    def get(self, url, timeout=None, stream=False):
        self.calls.append(url)
        resp = self.handler(url)
        self.responses.append(resp)
        return resp


@pytest.fixture
def settings():
    return Settings(api_key="test-key", base_url="https://api.test/forecast")


@pytest.fixture
def forecast_text():
    return (DATA_DIR / "forecast_london.json").read_text(encoding="utf-8")


@pytest.fixture
def png_bytes():
    buf = io.BytesIO()
    Image.new("RGBA", (4, 4), (255, 0, 0, 255)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_client(settings):
    # returns (client, fake_session) wired so client._session() always hands out the fake
    def factory(handler):
        client = ForecastClient(settings)
        session = FakeSession(handler)
        client._session = lambda: session
        return client, session

    return factory


@pytest.fixture
def broken_png_bytes(png_bytes):
    # valid signature and IHDR, then a chunk header whose type is not four letters
    at = png_bytes.index(b"IDAT")
    return png_bytes[:at] + b"\x00\xff\x00\xff" + png_bytes[at + 4:]


class BrokenImage:
    # stands in for a PIL image that identifies fine but fails while decoding
    def __init__(self, error):
        self.error = error

    def load(self):
        raise self.error


@pytest.fixture
def failing_decoder(monkeypatch):
    # Image.open succeeds, load() raises whatever the test passes in
    def install(error):
        monkeypatch.setattr("weatherviewer.icons.Image.open", lambda fp: BrokenImage(error))

    return install
