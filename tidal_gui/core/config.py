# tidal_gui/core/config.py
"""
TidalCycles GUI – central configuration helper
==============================================

All modules import *only* from this file when they need:
• application constants (name, default port, readiness timeout, …)
• the location of the locally built server binary
• resolved user-specific paths (config/)
• the effective launch settings (defaults < settings file < environment)

This file does *not* create directories or write files.  The settings
file is optional and only ever read.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Dict, Optional

from tidal_gui.core.models import LaunchSettings

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────
# 1. Application constants
# ──────────────────────────────────────────────
APP_NAME: str = "TidalCycles"
APP_ID: str = "tidal-gui"
LAUNCHER_VERSION: str = "0.1.0"

DEFAULT_HOST: str = "localhost"
DEFAULT_PORT: int = 8023
READY_TIMEOUT_MS: int = 10000            # time to wait for the Threepenny server

# Relative path (from the project root) to the cabal-built server binary.
SERVER_RELATIVE_PATH = Path(
    "dist-newstyle/build/x86_64-linux/ghc-9.4.8/tidal-gui-0.1.0.0"
    "/x/tidal-gui/build/tidal-gui/tidal-gui"
)

CONFIG_FILE_NAME = "settings.json"

ENV_PREFIX = "TIDAL_GUI_"


# ──────────────────────────────────────────────
# 2. Directory resolution helpers
# ──────────────────────────────────────────────
def _project_root() -> Path:
    if env := os.getenv(f"{ENV_PREFIX}ROOT"):
        return Path(env).expanduser().resolve()
    # tidal_gui/core/config.py → repository root
    return Path(__file__).resolve().parents[2]


def _home_base() -> Path:
    """Return the root folder for user data (`~/.tidal-gui/` on Unix,
    `%LOCALAPPDATA%\\TidalGUI\\` on Windows). Can be overridden with
    the env variable `TIDAL_GUI_HOME`."""
    if env := os.getenv(f"{ENV_PREFIX}HOME"):
        return Path(env).expanduser().resolve()

    if platform.system() == "Windows":
        root = Path(os.getenv("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return (root / "TidalGUI").resolve()

    return (Path.home() / ".tidal-gui").resolve()


PROJECT_ROOT: Path = _project_root()
BASE_DIR: Path = _home_base()
CONFIG_DIR: Path = BASE_DIR / "config"


def config_path() -> Path:
    return CONFIG_DIR / CONFIG_FILE_NAME


def default_server_path() -> Path:
    return PROJECT_ROOT / SERVER_RELATIVE_PATH


# ──────────────────────────────────────────────
# 3. User settings (read only)
# ──────────────────────────────────────────────
_DEFAULT_SETTINGS: Dict[str, Any] = {
    "host": DEFAULT_HOST,
    "port": DEFAULT_PORT,
    "ready_timeout_ms": READY_TIMEOUT_MS,
    "window": {"title": APP_NAME, "width": 470, "height": 370, "resizable": True},
}


def _load_raw() -> Dict[str, Any]:
    path = config_path()
    if not path.exists():
        return {}
    try:
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: expected a JSON object", path)
        return {}
    return data


def _merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(base)
    for key, val in update.items():
        if isinstance(val, dict) and isinstance(data.get(key), dict):
            data[key] = _merge(data[key], val)
        else:
            data[key] = val
    return data


def read_config() -> Dict[str, Any]:
    """Return merged settings (defaults overridden by user values)."""
    return _merge(_DEFAULT_SETTINGS, _load_raw())


# ──────────────────────────────────────────────
# 4. Environment overrides
# ──────────────────────────────────────────────
_ENV_KEYS = {
    "HOST": "host",
    "PORT": "port",
    "BIN": "server_path",
    "TIMEOUT_MS": "ready_timeout_ms",
    "PROBE": "probe",
    "LOG_LEVEL": "log_level",
    "LOG_FILE": "log_file",
    "DEBUG": "debug",
}


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for suffix, key in _ENV_KEYS.items():
        raw = os.getenv(ENV_PREFIX + suffix)
        if raw is None or not raw.strip():
            continue
        out[key] = raw.strip()
    return out


def _resolve(path: Any) -> Path:
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = PROJECT_ROOT / p
    return p


# ──────────────────────────────────────────────
# 5. Public entry
# ──────────────────────────────────────────────
def load_settings(overrides: Optional[Dict[str, Any]] = None) -> LaunchSettings:
    """
    Build the effective LaunchSettings.

    Precedence: defaults < settings.json < TIDAL_GUI_* env vars < overrides.
    Raises pydantic.ValidationError on invalid values.
    """
    data = read_config()
    data = _merge(data, _env_overrides())
    if overrides:
        data = _merge(data, overrides)

    data["server_path"] = _resolve(data.get("server_path") or default_server_path())
    if data.get("working_dir"):
        data["working_dir"] = _resolve(data["working_dir"])
    else:
        data["working_dir"] = PROJECT_ROOT

    return LaunchSettings(**data)
