# tidal_gui/webview_toolkit.py
"""
pywebview binding for the launcher's host-toolkit interface.

pywebview refuses to start without a window, so `run()` first shows a
small splash; the real window replaces it once the server is ready.
The GUI loop ends when the last window closes – there is no dock
reactivation signal in pywebview, so `activate` is never emitted here.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from tidal_gui.core.events import EventBus, LifecycleEvent
from tidal_gui.core.models import WindowOptions

try:
    import webview  # type: ignore
except ModuleNotFoundError:
    webview = None  # run_desktop() will raise

logger = logging.getLogger(__name__)

_SPLASH_HTML = (
    "<body style='background:#1e1e1e;color:#ddd;font-family:sans-serif;"
    "display:flex;align-items:center;justify-content:center;height:100vh;"
    "margin:0'>Starting {title}…</body>"
)


class WebviewToolkit:
    def __init__(
        self,
        events: EventBus,
        title: str = "TidalCycles",
        *,
        debug: bool = False,
        gui: Optional[str] = None,
    ):
        self.events = events
        self.title = title
        self.debug = debug
        self.gui = gui
        self._splash: Any = None
        self._windows: List[Any] = []

    # ----------------------------------------- lifecycle
    def run(self) -> None:
        self._splash = webview.create_window(
            self.title,
            html=_SPLASH_HTML.format(title=self.title),
            width=320,
            height=120,
            resizable=False,
        )
        logger.debug("Starting pywebview GUI loop")
        webview.start(self._on_gui_ready, debug=self.debug, gui=self.gui)
        logger.debug("pywebview GUI loop finished")
        self.events.emit(LifecycleEvent.WILL_QUIT)

    def _on_gui_ready(self) -> None:
        self.events.emit(LifecycleEvent.READY)

    # ----------------------------------------- windows
    def create_window(self, url: str, options: WindowOptions, js_api: Any) -> Any:
        window = webview.create_window(
            options.title,
            url=url,
            js_api=js_api,
            width=options.width,
            height=options.height,
            resizable=options.resizable,
            fullscreen=options.fullscreen,
            confirm_close=options.confirm_close,
        )
        self._windows.append(window)
        window.events.closed += lambda: self._on_window_closed(window)

        splash, self._splash = self._splash, None
        if splash is not None:
            splash.destroy()
        return window

    def _on_window_closed(self, window: Any) -> None:
        if window in self._windows:
            self._windows.remove(window)
        self.events.emit(LifecycleEvent.WINDOW_CLOSED, window)
        if not self._windows:
            self.events.emit(LifecycleEvent.WINDOW_ALL_CLOSED)

    def quit(self) -> None:
        for window in list(webview.windows):
            window.destroy()

    def unregister_all_shortcuts(self) -> None:
        # pywebview never registers OS-wide hotkeys; nothing to release.
        logger.debug("No global shortcuts registered")
