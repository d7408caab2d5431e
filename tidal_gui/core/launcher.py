# tidal_gui/core/launcher.py
"""
TidalCycles GUI – server process bootstrapper
=============================================

This module is *purely* responsible for locating the server executable,
building its command line, spawning it and supervising it until it
exits.  Everything the child prints on stdout/stderr is forwarded,
line by line, to the `tidal_gui.server` logger.

Public helpers
--------------
• locate_executable(path) -> Path
• build_launch_cmd(executable, port, args) -> List[str]
• start_server(executable, port, args, cwd, env) -> ServerProcess
• ServerProcess.start(executable, args, cwd, env) -> ServerProcess
• ServerProcess.spawn(cmd, cwd, env) -> ServerProcess

The orchestrator (core.desktop) owns the returned ServerProcess – no
other module should hold a reference to it.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)
server_log = logging.getLogger("tidal_gui.server")

# StreamReader line limit; Threepenny can print long JS snippets.
_LINE_LIMIT = 1 << 20

ExitCallback = Callable[[int], None]
PathLike = Union[str, Path]


# ──────────────────────────────────────────────
# 1. Locate executable
# ──────────────────────────────────────────────
def locate_executable(path: PathLike) -> Path:
    """
    Return the absolute path of the server binary.

    Raises FileNotFoundError if it is missing and PermissionError if it
    cannot be executed.  No fallback location is tried.
    """
    exe_path = Path(path).expanduser()
    if not exe_path.is_file():
        raise FileNotFoundError(
            f"Server executable not found: {exe_path} (build it with `cabal build`)"
        )
    if not os.access(exe_path, os.X_OK):
        raise PermissionError(f"Server executable is not executable: {exe_path}")
    return exe_path.resolve()


# ──────────────────────────────────────────────
# 2. Build launch arguments
# ──────────────────────────────────────────────
def build_launch_cmd(
    executable: PathLike,
    port: int,
    args: Sequence[str] = (),
) -> List[str]:
    """The port is always the first positional argument."""
    cmd: List[str] = [str(locate_executable(executable)), str(port)]
    cmd += [str(a) for a in args]
    return cmd


# ──────────────────────────────────────────────
# 3. Environment preparation
# ──────────────────────────────────────────────
def _prepare_env(extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """
    Start with a clean copy of os.environ; add overrides if needed.
    """
    env = os.environ.copy()
    # GHC binaries die on non-UTF-8 output under a bare C locale
    if not any(env.get(k) for k in ("LC_ALL", "LC_CTYPE", "LANG")):
        env["LANG"] = "C.UTF-8"
    if extra:
        env.update(extra)
    return env


# ──────────────────────────────────────────────
# 4. Supervised process
# ──────────────────────────────────────────────
async def _forward_lines(stream: asyncio.StreamReader, level: int) -> None:
    while True:
        line = await stream.readline()
        if not line:
            break
        text = line.decode("utf-8", errors="replace").rstrip("\r\n")
        if text:
            server_log.log(level, "%s", text)


class ServerProcess:
    """
    Handle to the running server.

    Must be created on a running event loop (use `start()`).  Output
    forwarding and exit watching run as tasks on that loop.
    """

    def __init__(self, proc: asyncio.subprocess.Process, cmd: Sequence[str]):
        self._proc = proc
        self.cmd = list(cmd)
        self.name = Path(self.cmd[0]).name
        self._exit_callbacks: List[ExitCallback] = []
        self._terminated = False
        self._pumps = [
            asyncio.ensure_future(_forward_lines(proc.stdout, logging.INFO)),
            asyncio.ensure_future(_forward_lines(proc.stderr, logging.WARNING)),
        ]
        self._watcher = asyncio.ensure_future(self._watch())

    @classmethod
    async def start(
        cls,
        executable: PathLike,
        args: Sequence[str] = (),
        *,
        cwd: Optional[PathLike] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "ServerProcess":
        """Spawn `executable args…` non-blocking and begin supervising it."""
        cmd = [str(locate_executable(executable)), *[str(a) for a in args]]
        return await cls.spawn(cmd, cwd=cwd, env=env)

    @classmethod
    async def spawn(
        cls,
        cmd: Sequence[str],
        *,
        cwd: Optional[PathLike] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "ServerProcess":
        logger.info("Starting server: %s", " ".join(cmd))
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
            env=_prepare_env(env),
            limit=_LINE_LIMIT,
        )
        return cls(proc, cmd)

    # ----------------------------------------- state
    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._proc.returncode

    # ----------------------------------------- exit hooks
    async def _watch(self) -> int:
        code = await self._proc.wait()
        # drain remaining output before reporting the exit
        await asyncio.gather(*self._pumps, return_exceptions=True)
        logger.info("%s exited with code %s", self.name, code)
        callbacks, self._exit_callbacks = self._exit_callbacks, []
        for cb in callbacks:
            self._fire(cb, code)
        return code

    def _fire(self, callback: ExitCallback, code: int) -> None:
        try:
            callback(code)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Exit callback %r of %s failed", callback, self.name)

    def on_exit(self, callback: ExitCallback) -> None:
        """Call `callback(exit_code)` exactly once when the process ends."""
        if self._watcher.done():
            asyncio.get_running_loop().call_soon(self._fire, callback, self._watcher.result())
            return
        self._exit_callbacks.append(callback)

    # ----------------------------------------- shutdown
    def terminate(self) -> None:
        """Ask the server to stop.  Only the first call does anything."""
        if self._terminated:
            return
        self._terminated = True
        if self._proc.returncode is not None:
            return
        logger.info("Terminating %s (pid %s)", self.name, self.pid)
        try:
            self._proc.terminate()
        except ProcessLookupError:
            pass

    async def wait(self) -> int:
        return await asyncio.shield(self._watcher)

    async def wait_closed(self, grace: float = 5.0) -> int:
        """Wait for the exit; kill the process if it outlives `grace`."""
        try:
            return await asyncio.wait_for(asyncio.shield(self._watcher), timeout=grace)
        except asyncio.TimeoutError:
            logger.warning("%s ignored terminate for %.1fs, killing it", self.name, grace)
            try:
                self._proc.kill()
            except ProcessLookupError:
                pass
            return await self.wait()


# ──────────────────────────────────────────────
# 5. Public entry – spawn server
# ──────────────────────────────────────────────
async def start_server(
    executable: PathLike,
    port: int,
    args: Sequence[str] = (),
    *,
    cwd: Optional[PathLike] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ServerProcess:
    """
    Spawn the Threepenny server bound to `port`.

    Spawn errors (missing binary, permissions, OSError) propagate.
    """
    cmd = build_launch_cmd(executable, port, args)
    return await ServerProcess.spawn(cmd, cwd=cwd, env=env)
