from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import aiohttp

from surfex import TOOL_NAME
from surfex.config import HuntConfig
from surfex.gate import AdmissionGate, CompletionTracker, Cooldown
from surfex.logs import logger
from surfex.models import Hunt
from surfex.probes import hunt_target, resolve_host
from surfex.scanners import probe_crlf, probe_xss
from surfex.subdomains import find_subdomains
from surfex.tech import fingerprint


def make_session(config: HuntConfig) -> aiohttp.ClientSession:
    connector = aiohttp.TCPConnector(
        limit=config.concurrency,
        ssl=True if config.verify_ssl else False,
        ttl_dns_cache=300,
    )
    headers = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Encoding": "identity",
    }
    return aiohttp.ClientSession(
        connector=connector,
        headers=headers,
        timeout=aiohttp.ClientTimeout(total=config.http_timeout),
        trust_env=True,
    )


class HuntContext:
    """Everything a probe needs: config, the shared gate and tracker, the HTTP
    session and the external collaborators."""

    def __init__(
        self,
        config: HuntConfig,
        session: aiohttp.ClientSession,
        gate: Optional[AdmissionGate] = None,
        tracker: Optional[CompletionTracker] = None,
        cooldown: Optional[Cooldown] = None,
        resolve: Optional[Callable[..., Awaitable]] = None,
        fingerprint: Optional[Callable] = fingerprint,
        xss_probe: Optional[Callable[..., Awaitable]] = probe_xss,
        crlf_probe: Optional[Callable[..., Awaitable]] = probe_crlf,
        find_subdomains: Callable[..., Awaitable] = find_subdomains,
    ):
        self.config = config
        self.session = session
        self.gate = gate or AdmissionGate(config.concurrency)
        self.tracker = tracker or CompletionTracker()
        self.cooldown = cooldown or Cooldown(config.rate_limit_cooldown)
        self.resolve = resolve or resolve_host
        self.fingerprint = fingerprint
        self.xss_probe = xss_probe
        self.crlf_probe = crlf_probe
        self.find_subdomains = find_subdomains
        self.subdomain_tool_missing = False

    def spawn(self, coro: Awaitable, name: Optional[str] = None, gated: bool = True) -> asyncio.Task:
        if gated:
            coro = self._gated(coro)
        return self.tracker.spawn(coro, name)

    async def _gated(self, coro):
        try:
            await self.gate.acquire()
        except BaseException:
            coro.close()
            raise
        try:
            return await coro
        finally:
            self.gate.release()


async def run_hunt(
    hunt: Hunt,
    config: HuntConfig,
    session: Optional[aiohttp.ClientSession] = None,
    **collaborators,
) -> HuntContext:
    """Probe every target of hunt that has no ports yet and wait for the tree to drain.

    Targets already holding ports from a previous run are left untouched.
    On max_time expiry the remaining tasks are cancelled and whatever was
    recorded stays in hunt.
    """
    config.validate()
    own_session = session is None
    if own_session:
        session = make_session(config)
    try:
        ctx = HuntContext(config, session, **collaborators)

        for target in hunt.register_scope():
            logger.info("new target: %s", target.host)

        pending = hunt.pending_targets()
        logger.debug("%s: %d target(s) to probe", TOOL_NAME, len(pending))
        for target in pending:
            ctx.spawn(hunt_target(ctx, target), name=f"target:{target.host}")

        try:
            if config.max_time:
                await asyncio.wait_for(ctx.tracker.wait(), config.max_time)
            else:
                await ctx.tracker.wait()
        except asyncio.TimeoutError:
            logger.warning("stopping after %ss, %d task(s) still running", config.max_time, ctx.tracker.pending)
            await ctx.tracker.cancel_all()
        except asyncio.CancelledError:
            await ctx.tracker.cancel_all()
            raise
    finally:
        if own_session:
            await session.close()
    return ctx
