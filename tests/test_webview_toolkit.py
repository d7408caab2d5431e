from types import SimpleNamespace

import pytest

from tidal_gui import webview_toolkit
from tidal_gui.core.events import EventBus, LifecycleEvent
from tidal_gui.core.models import WindowOptions


class _Event:
    def __init__(self):
        self.handlers = []

    def __iadd__(self, handler):
        self.handlers.append(handler)
        return self

    def fire(self):
        for handler in list(self.handlers):
            handler()


class _Window:
    def __init__(self, owner, title, kwargs):
        self.owner = owner
        self.title = title
        self.kwargs = kwargs
        self.events = SimpleNamespace(closed=_Event())

    def destroy(self):
        if self in self.owner.windows:
            self.owner.windows.remove(self)
            self.events.closed.fire()


class FakeWebview:
    """Stands in for the pywebview module: start() runs `func` then a user script."""

    def __init__(self, user_script=None):
        self.windows = []
        self.created = []
        self.start_kwargs = None
        self.user_script = user_script

    def create_window(self, title, **kwargs):
        window = _Window(self, title, kwargs)
        self.windows.append(window)
        self.created.append(window)
        return window

    def start(self, func=None, **kwargs):
        self.start_kwargs = kwargs
        func()
        if self.user_script is not None:
            self.user_script(self)


@pytest.fixture
def bus_log():
    bus = EventBus()
    log = []
    for event in LifecycleEvent:
        bus.on(event, lambda *args, _e=event: log.append((_e, args)))
    return bus, log


def test_run_shows_splash_and_emits_ready_then_will_quit(monkeypatch, bus_log):
    bus, log = bus_log
    fake = FakeWebview()
    monkeypatch.setattr(webview_toolkit, "webview", fake)

    toolkit = webview_toolkit.WebviewToolkit(bus, "TidalCycles", debug=True)
    toolkit.run()

    assert "Starting TidalCycles" in fake.created[0].kwargs["html"]
    assert fake.start_kwargs == {"debug": True, "gui": None}
    assert [e for e, _ in log] == [LifecycleEvent.READY, LifecycleEvent.WILL_QUIT]


def test_real_window_replaces_splash_and_reports_close(monkeypatch, bus_log):
    bus, log = bus_log
    fake = FakeWebview(user_script=lambda wv: wv.windows[-1].destroy())
    monkeypatch.setattr(webview_toolkit, "webview", fake)
    toolkit = webview_toolkit.WebviewToolkit(bus, "TidalCycles")
    bridge = object()
    created = []
    bus.once(
        LifecycleEvent.READY,
        lambda: created.append(
            toolkit.create_window("http://localhost:8023/", WindowOptions(width=640), bridge)
        ),
    )

    toolkit.run()

    splash, window = fake.created
    assert created == [window]
    assert splash not in fake.windows
    assert window.kwargs["url"] == "http://localhost:8023/"
    assert window.kwargs["js_api"] is bridge
    assert window.kwargs["width"] == 640
    events = [e for e, _ in log]
    assert events == [
        LifecycleEvent.READY,
        LifecycleEvent.WINDOW_CLOSED,
        LifecycleEvent.WINDOW_ALL_CLOSED,
        LifecycleEvent.WILL_QUIT,
    ]
    assert log[1][1] == (window,)


def test_quit_destroys_every_window(monkeypatch, bus_log):
    bus, _log = bus_log
    fake = FakeWebview()
    monkeypatch.setattr(webview_toolkit, "webview", fake)
    toolkit = webview_toolkit.WebviewToolkit(bus)
    fake.create_window("a")
    fake.create_window("b")

    toolkit.quit()
    toolkit.unregister_all_shortcuts()

    assert fake.windows == []
