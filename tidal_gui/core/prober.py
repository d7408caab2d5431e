# tidal_gui/core/prober.py
"""
TidalCycles GUI – readiness prober
==================================

Polls an Endpoint until the server accepts connections or the deadline
passes.  Two probe kinds:

• tcp  – a plain `asyncio.open_connection` succeeds
• http – a HEAD request to the endpoint URL answers with 2xx

Every single check is bounded by the remaining time, so
`wait_until_ready` always returns (or raises) within `timeout_ms`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Union

import aiohttp

from tidal_gui.core.models import Endpoint, ProbeKind

logger = logging.getLogger(__name__)

ATTEMPT_TIMEOUT_S = 1.0

Checker = Callable[[Endpoint, float], Awaitable[bool]]


class ReadinessTimeout(TimeoutError):
    def __init__(self, endpoint: Endpoint, timeout_ms: int, attempts: int):
        super().__init__(
            f"{endpoint.url} not reachable after {timeout_ms} ms ({attempts} checks)"
        )
        self.endpoint = endpoint
        self.timeout_ms = timeout_ms
        self.attempts = attempts


# ──────────────────────────────────────────────
# 1. Single checks
# ──────────────────────────────────────────────
async def tcp_check(endpoint: Endpoint, timeout: float) -> bool:
    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(endpoint.host, endpoint.port), timeout=timeout
        )
    except (OSError, asyncio.TimeoutError):
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


def _http_checker(session: aiohttp.ClientSession) -> Checker:
    async def check(endpoint: Endpoint, timeout: float) -> bool:
        try:
            async with session.head(
                endpoint.url,
                allow_redirects=True,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as resp:
                return 200 <= resp.status < 300
        except (aiohttp.ClientError, asyncio.TimeoutError):
            return False

    return check


# ──────────────────────────────────────────────
# 2. Polling loop
# ──────────────────────────────────────────────
async def _poll(
    endpoint: Endpoint,
    timeout_ms: int,
    interval_ms: int,
    check: Checker,
) -> int:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000
    attempts = 0

    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise ReadinessTimeout(endpoint, timeout_ms, attempts)

        attempts += 1
        try:
            ok = await asyncio.wait_for(
                check(endpoint, min(ATTEMPT_TIMEOUT_S, remaining)), timeout=remaining
            )
        except asyncio.TimeoutError:
            ok = False
        if ok:
            logger.info("%s ready after %d check(s)", endpoint, attempts)
            return attempts

        remaining = deadline - loop.time()
        if remaining <= 0:
            raise ReadinessTimeout(endpoint, timeout_ms, attempts)
        await asyncio.sleep(min(interval_ms / 1000, remaining))


async def wait_until_ready(
    endpoint: Endpoint,
    timeout_ms: int,
    *,
    interval_ms: int = 250,
    probe: Union[ProbeKind, str] = ProbeKind.tcp,
    checker: Optional[Checker] = None,
) -> int:
    """
    Block (asynchronously) until `endpoint` answers.

    Returns the number of checks made; raises ReadinessTimeout.
    `checker` replaces the built-in probe (used by tests and callers with
    their own notion of readiness).
    """
    logger.debug("Waiting up to %d ms for %s (%s)", timeout_ms, endpoint, probe)

    if checker is not None:
        return await _poll(endpoint, timeout_ms, interval_ms, checker)

    if ProbeKind(probe) is ProbeKind.http:
        async with aiohttp.ClientSession() as session:
            return await _poll(endpoint, timeout_ms, interval_ms, _http_checker(session))

    return await _poll(endpoint, timeout_ms, interval_ms, tcp_check)
