# tidal_gui/core/events.py
"""
Named lifecycle events shared by the toolkit adapter and the launcher.

The toolkit may emit from its own GUI thread.  Once a loop is bound,
every listener runs on that loop's thread, so launcher state only ever
changes on one thread.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Optional, Tuple

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class LifecycleEvent(str, enum.Enum):
    READY = "ready"
    WINDOW_CLOSED = "window-closed"
    WINDOW_ALL_CLOSED = "window-all-closed"
    ACTIVATE = "activate"
    WILL_QUIT = "will-quit"


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class EventBus:
    def __init__(self) -> None:
        self._listeners: DefaultDict[LifecycleEvent, List[Tuple[Listener, bool]]] = (
            defaultdict(list)
        )
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def unbind(self) -> None:
        self._loop = None

    def on(self, event: LifecycleEvent, listener: Listener, *, once: bool = False) -> None:
        self._listeners[LifecycleEvent(event)].append((listener, once))

    def once(self, event: LifecycleEvent, listener: Listener) -> None:
        self.on(event, listener, once=True)

    def off(self, event: LifecycleEvent, listener: Listener) -> None:
        self._listeners[LifecycleEvent(event)] = [
            entry for entry in self._listeners[LifecycleEvent(event)] if entry[0] is not listener
        ]

    def emit(self, event: LifecycleEvent, *args: Any) -> None:
        """Dispatch now when on the bound loop (or unbound), else post to it."""
        event = LifecycleEvent(event)
        loop = self._loop
        if loop is not None and _running_loop() is not loop:
            loop.call_soon_threadsafe(self._dispatch, event, args)
            return
        self._dispatch(event, args)

    def _dispatch(self, event: LifecycleEvent, args: Tuple[Any, ...]) -> None:
        entries = self._listeners.get(event, [])
        if not entries:
            logger.debug("Event %s: no listeners", event.value)
            return
        logger.debug("Event %s -> %d listener(s)", event.value, len(entries))
        self._listeners[event] = [entry for entry in entries if not entry[1]]
        for listener, _once in entries:
            listener(*args)
