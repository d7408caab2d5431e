# tidal_gui/main.py
"""
TidalCycles GUI – desktop entry point
=====================================

Run options
-----------
• Desktop window:          python run_tidal_gui.py
• Installed script:        tidal-gui

Configuration comes from `~/.tidal-gui/config/settings.json` and the
`TIDAL_GUI_*` environment variables (see core/config.py).  A failed
launch is *not* caught here – the interpreter exits non-zero with the
traceback.
"""

from __future__ import annotations

import logging
from typing import Optional

from tidal_gui import webview_toolkit
from tidal_gui.core import config
from tidal_gui.core.desktop import DesktopLauncher
from tidal_gui.core.events import EventBus
from tidal_gui.core.models import LaunchSettings
from tidal_gui.logging_config import setup_logging

logger = logging.getLogger(__name__)


def run_desktop(settings: Optional[LaunchSettings] = None) -> None:
    if webview_toolkit.webview is None:
        raise RuntimeError("pywebview not installed – run:  pip install pywebview")

    settings = settings or config.load_settings()

    events = EventBus()
    toolkit = webview_toolkit.WebviewToolkit(
        events, settings.window.title, debug=settings.debug
    )
    DesktopLauncher(settings, toolkit, events).run()


def main() -> None:
    settings = config.load_settings()
    setup_logging(settings.log_level, settings.log_file)
    logger.info("%s launcher %s", config.APP_NAME, config.LAUNCHER_VERSION)
    run_desktop(settings)


if __name__ == "__main__":  # pragma: no cover
    main()
