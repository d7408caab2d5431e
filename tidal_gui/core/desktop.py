# tidal_gui/core/desktop.py
"""
TidalCycles GUI – launcher orchestration
========================================

Sequences endpoint selection, the server process, the readiness probe and
the window:

startup (on `ready`)
    1. acquire the Endpoint
    2. spawn the server with the chosen port
    3. clear pre-registered global shortcuts
    4. wait for readiness, then create the window
       (any failure aborts the launch and is re-raised by `run()`)

shutdown (on `will-quit`)
    terminate the server exactly once, then wait for it to exit

`run()` blocks the calling thread in the toolkit's GUI loop.  The asyncio
loop lives on its own thread; the EventBus posts every listener there.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
import threading
from typing import Any, Awaitable, Callable, Optional, Tuple

from tidal_gui.core import endpoint as endpoint_mod
from tidal_gui.core import launcher, prober
from tidal_gui.core.events import EventBus, LifecycleEvent
from tidal_gui.core.models import Endpoint, LaunchSettings
from tidal_gui.core.window import Toolkit, WindowManager, WindowState

logger = logging.getLogger(__name__)

Spawner = Callable[..., Awaitable[Any]]
Prober = Callable[..., Awaitable[Any]]

# Platforms where the app stays resident after its last window closes.
RESIDENT_PLATFORMS = ("darwin",)


def _start_loop_thread() -> Tuple[asyncio.AbstractEventLoop, threading.Thread]:
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, name="tidal-gui-loop", daemon=True)
    thread.start()
    return loop, thread


class DesktopLauncher:
    def __init__(
        self,
        settings: LaunchSettings,
        toolkit: Toolkit,
        events: EventBus,
        *,
        platform: Optional[str] = None,
        spawner: Optional[Spawner] = None,
        probe: Optional[Prober] = None,
    ):
        self.settings = settings
        self.toolkit = toolkit
        self.events = events
        self.platform = platform or sys.platform
        self.windows = WindowManager(toolkit, events, settings.window)

        self.endpoint: Optional[Endpoint] = None
        self.server: Optional[launcher.ServerProcess] = None
        self.ready = False
        self.failure: Optional[BaseException] = None

        self._spawner = spawner or launcher.start_server
        self._probe = probe or prober.wait_until_ready
        self._startup_task: Optional[asyncio.Task] = None
        self._quitting = False
        self._terminated = False

        events.once(LifecycleEvent.READY, self._on_ready)
        events.on(LifecycleEvent.WINDOW_ALL_CLOSED, self._on_window_all_closed)
        events.on(LifecycleEvent.ACTIVATE, self._on_activate)
        events.once(LifecycleEvent.WILL_QUIT, self._on_will_quit)

    @property
    def stays_resident(self) -> bool:
        return self.platform in RESIDENT_PLATFORMS

    # ──────────────────────────────────────────────
    # Blocking entry
    # ──────────────────────────────────────────────
    def run(self) -> None:
        """Run until the toolkit quits; re-raise a failed startup."""
        loop, thread = _start_loop_thread()
        self.events.bind(loop)
        try:
            try:
                self.toolkit.run()
            finally:
                asyncio.run_coroutine_threadsafe(self.shutdown(), loop).result()
        finally:
            self.events.unbind()
            loop.call_soon_threadsafe(loop.stop)
            thread.join()
            loop.close()

        if self.failure is not None:
            raise self.failure

    # ──────────────────────────────────────────────
    # Startup
    # ──────────────────────────────────────────────
    def _on_ready(self) -> None:
        self._startup_task = asyncio.get_running_loop().create_task(self.startup())
        self._startup_task.add_done_callback(self._startup_done)

    async def startup(self) -> None:
        s = self.settings
        self.endpoint = endpoint_mod.acquire_endpoint(s.host, s.port, s.check_port_free)
        logger.info("Using endpoint %s", self.endpoint.url)

        self.server = await self._spawner(
            s.server_path,
            self.endpoint.port,
            s.server_args,
            cwd=s.working_dir,
            env=s.env,
        )
        self.server.on_exit(self._on_server_exit)
        if self._quitting:
            self._terminate_server()
            return

        self.toolkit.unregister_all_shortcuts()

        await self._probe(
            self.endpoint,
            s.ready_timeout_ms,
            interval_ms=s.probe_interval_ms,
            probe=s.probe,
        )
        self.ready = True
        self.windows.create_window(self.endpoint.url)

    def _startup_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error("Launch aborted: %s", exc)
        self.failure = exc
        self.toolkit.quit()

    # ──────────────────────────────────────────────
    # Window / platform signals
    # ──────────────────────────────────────────────
    def _on_window_all_closed(self) -> None:
        if self.stays_resident:
            logger.debug("All windows closed; staying resident on %s", self.platform)
            return
        self.toolkit.quit()

    def _on_activate(self) -> None:
        if self.ready and self.windows.state is WindowState.ABSENT:
            self.windows.create_window(self.endpoint.url)

    def _on_server_exit(self, code: int) -> None:
        if self._quitting:
            return
        if code:
            logger.warning("Server exited unexpectedly with code %s", code)

    # ──────────────────────────────────────────────
    # Shutdown
    # ──────────────────────────────────────────────
    def _on_will_quit(self) -> None:
        self._quitting = True
        self._terminate_server()

    def _terminate_server(self) -> None:
        if self.server is None or self._terminated:
            return
        self._terminated = True
        self.server.terminate()

    async def shutdown(self) -> None:
        self._quitting = True
        task = self._startup_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._terminate_server()
        if self.server is not None:
            await self.server.wait_closed(self.settings.shutdown_grace_s)
