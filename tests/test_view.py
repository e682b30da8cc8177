# display slots, scrolling and the identity check on late icons

import pytest

from weatherviewer.dispatch import MainThreadDispatcher
from weatherviewer.icons import IconCache
from weatherviewer.models import ForecastList, ForecastRecord
from weatherviewer.view import ForecastView, format_row, icon_glyph

from conftest import DeferredExecutor, FakeResponse, InlineExecutor


def _record(n, icon="10d"):
    return ForecastRecord(
        day=f"Monday {n:02d}:00", min_temp="1°C", max_temp="5°C", humidity="50%",
        description=f"row {n}", icon=icon, icon_url=f"http://img.test/{icon}.png",
    )


@pytest.fixture
def png_client(make_client, png_bytes):
    client, session = make_client(lambda url: FakeResponse(200, png_bytes))
    return client, session


def _view(client, executor, rows=3):
    forecast = ForecastList()
    dispatcher = MainThreadDispatcher()
    view = ForecastView(forecast, IconCache(client, executor), dispatcher, rows=rows)
    return forecast, dispatcher, view


def test_replace_binds_from_the_top(png_client):
    client, _ = png_client
    forecast, dispatcher, view = _view(client, InlineExecutor())
    view.scroll_to(2)

    forecast.replace([_record(i) for i in range(6)])

    assert view.offset == 0
    assert [r.description for r in view.visible_records()] == ["row 0", "row 1", "row 2"]


def test_icons_arrive_through_the_dispatcher(png_client):
    client, session = png_client
    forecast, dispatcher, view = _view(client, InlineExecutor())

    forecast.replace([_record(0, "10d"), _record(1, "01d")])
    # nothing is applied until the owner thread drains the queue
    assert all(slot.icon is None for slot in view.slots)
    assert view.pending_icons == 2

    dispatcher.run_pending()
    assert view.pending_icons == 0
    assert view.slots[0].icon.url == "http://img.test/10d.png"
    assert view.slots[1].icon.url == "http://img.test/01d.png"
    assert view.slots[2].record is None
    assert len(session.calls) == 2


def test_cached_icon_is_applied_synchronously(png_client):
    client, session = png_client
    forecast, dispatcher, view = _view(client, InlineExecutor())
    forecast.replace([_record(0)])
    dispatcher.run_pending()

    # same icon on a new list: straight from the cache, no request, nothing pending
    forecast.replace([_record(5)])
    assert view.slots[0].icon is not None
    assert view.pending_icons == 0
    assert len(session.calls) == 1


def test_late_icon_for_rebound_slot_is_dropped(png_client):
    client, _ = png_client
    executor = DeferredExecutor()
    forecast, dispatcher, view = _view(client, executor, rows=1)

    forecast.replace([_record(0, "10d")])
    forecast.replace([_record(1, "13d")])
    # both downloads finish after the slot already shows the second list
    executor.run_all()
    dispatcher.run_pending()

    assert view.slots[0].record.description == "row 1"
    assert view.slots[0].icon.url == "http://img.test/13d.png"
    assert view.pending_icons == 0


def test_scrolling_rebinds_slots(png_client):
    client, _ = png_client
    forecast, dispatcher, view = _view(client, InlineExecutor(), rows=2)
    forecast.replace([_record(i) for i in range(5)])
    token_before = view.slots[0].token

    view.scroll_to(2)
    assert [r.description for r in view.visible_records()] == ["row 2", "row 3"]
    assert view.slots[0].token != token_before

    # offset is clamped to the list
    view.scroll_to(99)
    assert view.offset == 3
    view.scroll_to(-4)
    assert view.offset == 0


def test_failed_icon_leaves_slot_blank(make_client):
    client, _ = make_client(lambda url: FakeResponse(503))
    forecast, dispatcher, view = _view(client, InlineExecutor())

    forecast.replace([_record(0), _record(1, "01d")])
    dispatcher.run_pending()

    assert view.pending_icons == 0
    assert all(slot.icon is None for slot in view.slots)
    assert len(view.render()) == 2


def test_render_row_format(png_client):
    client, _ = png_client
    forecast, dispatcher, view = _view(client, InlineExecutor(), rows=1)
    forecast.replace([_record(9, "13n")])

    assert view.render() == ["Monday 09:00: row 9     Low: 1°C  High: 5°C  Humidity: 50%"]
    dispatcher.run_pending()
    assert view.render() == ["Monday 09:00: row 9  ❄  Low: 1°C  High: 5°C  Humidity: 50%"]


def test_icon_glyph_falls_back():
    assert icon_glyph("01n") == "☀"
    assert icon_glyph("zz") == "?"
    assert format_row(_record(0), None).startswith("Monday 00:00: row 0   ")


def test_rows_must_be_positive(png_client):
    client, _ = png_client
    with pytest.raises(ValueError):
        _view(client, InlineExecutor(), rows=0)


def test_corrupt_icon_leaves_slot_blank(make_client, broken_png_bytes):
    client, _ = make_client(lambda url: FakeResponse(200, broken_png_bytes))
    forecast, dispatcher, view = _view(client, InlineExecutor())

    forecast.replace([_record(0), _record(1, "01d")])
    dispatcher.run_pending()

    assert view.pending_icons == 0
    assert all(slot.icon is None for slot in view.slots)
    assert [r.description for r in view.visible_records()] == ["row 0", "row 1"]


def test_icon_failing_during_decode_does_not_stall_the_view(png_client, failing_decoder):
    failing_decoder(SyntaxError("broken PNG file"))
    client, _ = png_client
    forecast, dispatcher, view = _view(client, InlineExecutor())

    forecast.replace([_record(0), _record(1, "01d")])

    assert dispatcher.run_until(lambda: view.pending_icons == 0, timeout=1)
    assert all(slot.icon is None for slot in view.slots)
