"""Shared fakes for the launcher tests.

The toolkit and server fakes record what happens to them in a shared
journal so tests can assert on the order of operations.
"""

from __future__ import annotations

import threading
from pathlib import Path
from types import SimpleNamespace

import pytest

from tidal_gui.core.events import EventBus, LifecycleEvent
from tidal_gui.core.models import LaunchSettings


class FakeWindow:
    def __init__(self, url, options, js_api):
        self.url = url
        self.options = options
        self.js_api = js_api
        self.loaded = [url]
        self.fullscreen = False
        self.destroyed = False

    def load_url(self, url):
        self.loaded.append(url)

    def toggle_fullscreen(self):
        self.fullscreen = not self.fullscreen

    def destroy(self):
        self.destroyed = True


class FakeToolkit:
    def __init__(self, events, journal=None, script=None):
        self.events = events
        self.journal = journal if journal is not None else []
        self.script = script
        self.windows = []
        self.created = []
        self.quit_calls = 0
        self.window_created = threading.Event()
        self.quit_requested = threading.Event()

    def run(self):
        self.journal.append("run")
        if self.script is not None:
            self.script(self)
        else:
            self.events.emit(LifecycleEvent.READY)

    def create_window(self, url, options, js_api):
        self.journal.append("create_window")
        window = FakeWindow(url, options, js_api)
        self.windows.append(window)
        self.created.append(window)
        self.window_created.set()
        return window

    def close_window(self, window):
        """Simulate the user closing `window`."""
        self.windows.remove(window)
        self.events.emit(LifecycleEvent.WINDOW_CLOSED, window)
        if not self.windows:
            self.events.emit(LifecycleEvent.WINDOW_ALL_CLOSED)

    def quit(self):
        self.journal.append("quit")
        self.quit_calls += 1
        self.quit_requested.set()

    def unregister_all_shortcuts(self):
        self.journal.append("unregister_all_shortcuts")


class FakeServer:
    def __init__(self, journal):
        self.journal = journal
        self.terminate_calls = 0
        self.exit_callbacks = []
        self.waited_with = None

    def on_exit(self, callback):
        self.exit_callbacks.append(callback)

    def terminate(self):
        self.journal.append("terminate")
        self.terminate_calls += 1

    async def wait_closed(self, grace=5.0):
        self.waited_with = grace
        return 0


@pytest.fixture
def journal():
    return []


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def toolkit(events, journal):
    return FakeToolkit(events, journal)


@pytest.fixture
def settings():
    return LaunchSettings(
        host="localhost",
        port=8023,
        server_path=Path("/opt/tidal/tidal-gui"),
        check_port_free=False,
        shutdown_grace_s=1.5,
    )


@pytest.fixture
def spawner(journal):
    """Fake start_server: records its arguments and returns a FakeServer."""
    record = SimpleNamespace(calls=[], servers=[])

    async def spawn(executable, port, args=(), **kwargs):
        journal.append("spawn")
        record.calls.append((executable, port, list(args), kwargs))
        server = FakeServer(journal)
        record.servers.append(server)
        return server

    record.spawn = spawn
    return record
