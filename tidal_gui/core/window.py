# tidal_gui/core/window.py
"""
TidalCycles GUI – window manager
================================

Owns the single application window.  Two states:

    ABSENT ──create_window()──▶ VISIBLE
    VISIBLE ──window-closed──▶ ABSENT

The page served by the Threepenny server needs host-level access for its
own UI logic, so every window gets a `HostBridge` exposed as its
JavaScript API.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Optional, Protocol

from tidal_gui.core import config
from tidal_gui.core.events import EventBus, LifecycleEvent
from tidal_gui.core.models import WindowOptions

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# 1. What the host toolkit must provide
# ──────────────────────────────────────────────
class WindowHandle(Protocol):
    def load_url(self, url: str) -> None: ...
    def toggle_fullscreen(self) -> None: ...
    def destroy(self) -> None: ...


class Toolkit(Protocol):
    def run(self) -> None: ...
    def create_window(self, url: str, options: WindowOptions, js_api: Any) -> WindowHandle: ...
    def quit(self) -> None: ...
    def unregister_all_shortcuts(self) -> None: ...


# ──────────────────────────────────────────────
# 2. Bridge exposed to the page
# ──────────────────────────────────────────────
class HostBridge:  # pylint: disable=too-few-public-methods
    """
    Trusted scripting bridge.  Public methods are callable from the page
    as `window.pywebview.api.<name>()`; keep private state underscored.
    """

    def __init__(self, manager: "WindowManager", toolkit: Toolkit):
        self._manager = manager
        self._toolkit = toolkit

    def quit(self) -> None:
        self._toolkit.quit()

    def reload(self) -> None:
        self._manager.reload()

    def toggle_fullscreen(self) -> None:
        window = self._manager.window
        if window is not None:
            window.toggle_fullscreen()

    def app_info(self) -> Dict[str, Optional[str]]:
        return {
            "name": config.APP_NAME,
            "version": config.LAUNCHER_VERSION,
            "url": self._manager.url,
        }


# ──────────────────────────────────────────────
# 3. Manager
# ──────────────────────────────────────────────
class WindowState(str, enum.Enum):
    ABSENT = "absent"
    VISIBLE = "visible"


class WindowManager:
    def __init__(self, toolkit: Toolkit, events: EventBus, options: WindowOptions):
        self._toolkit = toolkit
        self._options = options
        self._window: Optional[WindowHandle] = None
        self._url: Optional[str] = None
        self.created = 0
        events.on(LifecycleEvent.WINDOW_CLOSED, self._on_closed)

    @property
    def state(self) -> WindowState:
        return WindowState.ABSENT if self._window is None else WindowState.VISIBLE

    @property
    def window(self) -> Optional[WindowHandle]:
        return self._window

    @property
    def url(self) -> Optional[str]:
        return self._url

    def create_window(self, url: str) -> WindowHandle:
        if self._window is not None:
            logger.debug("Window already visible, not creating another")
            return self._window

        logger.info("Loading URL: %s", url)
        bridge = HostBridge(self, self._toolkit)
        self._window = self._toolkit.create_window(url, self._options, bridge)
        self._url = url
        self.created += 1
        return self._window

    def reload(self) -> None:
        if self._window is not None and self._url:
            self._window.load_url(self._url)

    def _on_closed(self, window: Optional[WindowHandle] = None) -> None:
        if self._window is None:
            return
        if window is not None and window is not self._window:
            return
        logger.debug("Window closed")
        self._window = None
