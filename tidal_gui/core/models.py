# tidal_gui/core/models.py
"""
TidalCycles GUI – shared data models
====================================

The launcher modules (endpoint selection, prober, process supervisor,
window manager) talk to each other through the **typed** value objects
defined here.  Pydantic does the validation and coercion of values that
arrive as strings from the environment or the settings file.

Keep business logic out of this module – it belongs in `core/`
sub-modules.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, validator


# ──────────────────────────────────────────────
# 1. Network endpoint
# ──────────────────────────────────────────────
class Endpoint(BaseModel):
    """Host/port pair the server binds to and the window loads."""
    host: str = "localhost"
    port: int

    @validator("port")
    def port_range(cls, v: int) -> int:  # pylint: disable=no-self-argument
        if not (1 <= v <= 65535):
            raise ValueError("port must be between 1 and 65535")
        return v

    @validator("host")
    def strip_host(cls, v: str) -> str:  # pylint: disable=no-self-argument
        v = v.strip()
        if not v:
            raise ValueError("host must not be empty")
        return v

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"http://{host}:{self.port}/"

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    class Config:
        frozen = True                  # chosen once, never mutated


# ──────────────────────────────────────────────
# 2. Window & launch settings
# ──────────────────────────────────────────────
class ProbeKind(str, enum.Enum):
    tcp = "tcp"
    http = "http"


class WindowOptions(BaseModel):
    title: str = "TidalCycles"
    width: int = Field(470, ge=200, le=7680)
    height: int = Field(370, ge=150, le=4320)
    resizable: bool = True
    fullscreen: bool = False
    confirm_close: bool = False


class LaunchSettings(BaseModel):
    """Everything the launcher needs to know for one run."""
    host: str = "localhost"
    port: int = Field(8023, ge=0, le=65535)     # 0 → pick a free port
    server_path: Path
    server_args: List[str] = Field(default_factory=list)
    working_dir: Optional[Path] = None
    env: Dict[str, str] = Field(default_factory=dict)

    ready_timeout_ms: int = Field(10000, gt=0)
    probe_interval_ms: int = Field(250, gt=0)
    probe: ProbeKind = ProbeKind.tcp
    check_port_free: bool = True
    shutdown_grace_s: float = Field(5.0, ge=0)

    debug: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    window: WindowOptions = Field(default_factory=WindowOptions)

    @validator("log_level")
    def upper_level(cls, v: str) -> str:  # pylint: disable=no-self-argument
        return v.strip().upper()
