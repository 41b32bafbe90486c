from __future__ import annotations

import asyncio
import contextlib
import re
import socket
from typing import TYPE_CHECKING, Callable, Dict, List

import aiohttp
import dns.asyncresolver
import dns.exception
from bs4 import ParserRejectedMarkup

from surfex.classify import (
    BODY_FILTERS,
    CONTENT_FILTERS,
    HEADER_FILTERS,
    FetchedResponse,
    apply_filters,
    check_rate_limit,
)
from surfex.config import DOWNLOADABLE_CONTENT_TYPES, HuntConfig
from surfex.errors import IrrelevantResult, SubdomainToolError, TooManyRequests
from surfex.logs import logger
from surfex.models import HTTPPath, Port, Target
from surfex.storage import store_response
from surfex.utils import extract_hosts, normalize_path, parse_title, rand_user_agent

if TYPE_CHECKING:
    from surfex.engine import HuntContext

# =====================================
# Host resolution
# =====================================


async def resolve_host(host: str, config: HuntConfig) -> List[str]:
    """Resolve host to its addresses.

    Without a custom nameserver the system resolver is asked first, so
    hosts-file entries (localhost, lab names) resolve as they would for a
    plain connect. dnspython answers otherwise.
    """
    if not config.nameserver:
        loop = asyncio.get_running_loop()
        try:
            infos = await asyncio.wait_for(
                loop.getaddrinfo(host, None, type=socket.SOCK_STREAM), config.dns_timeout
            )
        except (socket.gaierror, asyncio.TimeoutError):
            pass
        else:
            addrs = list(dict.fromkeys(info[4][0] for info in infos))
            if addrs:
                return addrs

    resolver = dns.asyncresolver.Resolver()
    if config.nameserver:
        resolver.nameservers = [config.nameserver]
    resolver.timeout = config.dns_timeout
    resolver.lifetime = config.dns_timeout
    try:
        ans = await resolver.resolve(host, "A")
    except dns.exception.DNSException:
        ans = await resolver.resolve(host, "AAAA")
    return [str(r) for r in ans]


# =====================================
# Target
# =====================================


async def hunt_target(ctx: "HuntContext", target: Target) -> None:
    if ctx.config.subdomains and not target.is_ip:
        ctx.spawn(hunt_subdomains(ctx, target), name=f"subdomains:{target.host}", gated=False)

    # unresolvable hosts get no ports, so the next run tries them again
    if not target.is_ip:
        try:
            await ctx.resolve(target.host, ctx.config)
        except dns.exception.DNSException as e:
            logger.debug("%s cannot be resolved: %s", target.host, e)
            return

    for number, name in ctx.config.ports.items():
        port = Port(number=number, name=name, target=target, tls=ctx.config.is_tls(number))
        ctx.spawn(hunt_port(ctx, port), name=f"port:{target.host}:{number}")


async def hunt_subdomains(ctx: "HuntContext", target: Target) -> None:
    if ctx.subdomain_tool_missing:
        return
    command = ctx.config.subdomain_command
    try:
        lines = await ctx.find_subdomains([target.host], command)
    except FileNotFoundError:
        ctx.subdomain_tool_missing = True
        logger.warning("%s not found, subdomain hunting disabled", command[0])
        return
    except (OSError, SubdomainToolError) as e:
        logger.debug("subdomain hunting on %s failed: %s", target.host, e)
        return

    hunt = target.hunt
    for line in lines:
        for host in extract_hosts(line):
            sub = Target(host=host)
            if not hunt.add_target(sub):
                continue
            logger.info("new target: %s", host)
            ctx.spawn(hunt_target(ctx, sub), name=f"target:{host}")


# =====================================
# Port
# =====================================

SSH_RE = re.compile(r"^.*ssh.*$", re.I | re.M)
MYSQL_RE = re.compile(r"^[0-9a-zA-Z\-_+.]{3,}", re.M)


def parse_ftp_version(banner: bytes) -> str:
    line = banner.decode("latin-1").split("\n", 1)[0]
    if len(line) < 3:
        return ""
    return line[3:].strip()


def parse_ssh_version(banner: bytes) -> str:
    m = SSH_RE.search(banner.decode("latin-1"))
    return m.group(0).strip() if m else ""


def parse_mysql_version(banner: bytes) -> str:
    # the protocol version byte of the handshake is 0x0a, so the server
    # version string starts a "line"
    m = MYSQL_RE.search(banner.decode("latin-1"))
    return m.group(0).strip() if m else ""


BANNER_PARSERS: Dict[int, Callable[[bytes], str]] = {
    21: parse_ftp_version,
    22: parse_ssh_version,
    3306: parse_mysql_version,
}


async def read_banner(reader: asyncio.StreamReader, timeout: float, limit: int = 4096) -> bytes:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    chunks: List[bytes] = []
    size = 0
    while size < limit:
        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        try:
            chunk = await asyncio.wait_for(reader.read(limit - size), remaining)
        except (asyncio.TimeoutError, OSError):
            break
        if not chunk:
            break
        chunks.append(chunk)
        size += len(chunk)
    return b"".join(chunks)


async def hunt_port(ctx: "HuntContext", port: Port) -> None:
    cfg = ctx.config
    host = port.target.host
    try:
        reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port.number), cfg.connect_timeout)
    except asyncio.TimeoutError:
        return
    except OSError as e:
        if not isinstance(e, ConnectionRefusedError):
            logger.debug("error on %s:%d: %s", host, port.number, e)
        return

    try:
        if cfg.is_http(port.number):
            port.paths = {}
        elif port.number in BANNER_PARSERS:
            banner = await read_banner(reader, cfg.banner_timeout)
            port.version = BANNER_PARSERS[port.number](banner)
    finally:
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()

    port.target.add_port(port)
    if port.version:
        logger.info("found %s:%d (%s, %s)", host, port.number, port.name, port.version)
    else:
        logger.info("found %s:%d (%s)", host, port.number, port.name)

    if port.paths is None or not cfg.wordlist:
        return

    # the first word (the root by default) goes alone, so a port that
    # answers 429 gets one request and not a burst of the whole wordlist
    first, rest = cfg.wordlist[0], cfg.wordlist[1:]
    await hunt_path(ctx, port, first)

    key = (host, port.number)
    for word in rest:
        if ctx.cooldown.active(key):
            logger.debug("not spawning remaining paths on %s: cooling down", port.url)
            break
        ctx.spawn(hunt_path(ctx, port, word), name=f"path:{host}:{port.number}/{word}")
    if cfg.scan and ctx.crlf_probe is not None:
        ctx.spawn(scan_crlf(ctx, port), name=f"crlf:{host}:{port.number}")


async def scan_crlf(ctx: "HuntContext", port: Port) -> None:
    if ctx.cooldown.active((port.target.host, port.number)):
        return
    urls = [f"{port.url}/{w}" for w in ctx.config.wordlist]
    try:
        results = await ctx.crlf_probe(ctx.session, urls, rand_user_agent(), ctx.config.http_timeout)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.debug("error on crlf check for %s: %s", port.url, e)
        return
    vulns = [u for u, vulnerable in results.items() if vulnerable]
    if vulns:
        port.add_crlf_vulns(vulns)
        logger.info("crlf vuln on %s (%d url(s))", port.url, len(vulns))


# =====================================
# HTTP path
# =====================================


async def hunt_path(ctx: "HuntContext", port: Port, requested: str) -> None:
    key = (port.target.host, port.number)
    if ctx.cooldown.active(key):
        logger.debug("skipping %s/%s: cooling down", port.url, requested)
        return

    hp = HTTPPath(path=requested, port=port)
    try:
        await probe_path(ctx, hp)
    except TooManyRequests as e:
        ctx.cooldown.trip(key)
        logger.warning("%s, pausing for %.0fs", e, ctx.config.rate_limit_cooldown)
    except IrrelevantResult as e:
        logger.debug("irrelevant %s: %s", hp.url, e)
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        logger.debug("error on %s: %s", hp.url, e)


async def probe_path(ctx: "HuntContext", hp: HTTPPath) -> None:
    """Fetch one wordlist entry and record it on its port if it is a discovery.

    Raises IrrelevantResult for filtered responses and TooManyRequests on 429.
    """
    port = hp.port
    cfg = ctx.config

    async with ctx.session.get(hp.url, headers={"User-Agent": rand_user_agent()}, allow_redirects=True) as res:
        resp = FetchedResponse(
            target_host=port.target.host,
            port=port.number,
            final_host=res.url.host or "",
            final_path=normalize_path(res.url.raw_path),
            status=res.status,
            headers=res.headers,
            # aiohttp reports a missing header as application/octet-stream
            content_type=res.content_type if "content-type" in res.headers else "",
        )
        final_url = str(res.url)
        check_rate_limit(resp)
        apply_filters(resp, HEADER_FILTERS)

        hp.status = resp.status
        hp.path = resp.final_path
        if port.has_path(hp.path):
            raise IrrelevantResult("duplicate", hp.path)

        apply_filters(resp, CONTENT_FILTERS)
        hp.content_type = resp.content_type

        resp.body = await res.read()
        status_line = f"HTTP/{res.version.major}.{res.version.minor} {res.status} {res.reason or ''}".rstrip()
        raw_headers = list(res.raw_headers)

    is_html = hp.content_type == "text/html"
    if is_html:
        try:
            hp.title = resp.title = parse_title(resp.body)
        except ParserRejectedMarkup as e:
            logger.debug("error parsing title on %s: %s", hp.url, e)

    apply_filters(resp, BODY_FILTERS)

    hp.add_tech(resp.headers.get("server"))
    hp.add_tech(resp.headers.get("x-server"))

    if is_html and ctx.fingerprint is not None:
        try:
            for tech in sorted(ctx.fingerprint(resp.headers, resp.body)):
                hp.add_tech(tech)
        except Exception as e:
            logger.debug("error fingerprinting %s: %s", hp.url, e)

    if hp.content_type in DOWNLOADABLE_CONTENT_TYPES:
        try:
            store_response(cfg.workdir, port.target.host, port.number, hp.path, status_line, raw_headers, resp.body)
        except OSError as e:
            logger.debug("error saving response on disk for %s: %s", hp.url, e)

    if cfg.scan and hp.status <= 299 and ctx.xss_probe is not None:
        try:
            result = await ctx.xss_probe(ctx.session, final_url, rand_user_agent(), cfg.http_timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("error on xss check for %s: %s", final_url, e)
        else:
            if result.found:
                hp.xss.extend(result.pocs)
                logger.info("xss vuln on %s", final_url)

    if not port.add_path(hp):
        raise IrrelevantResult("duplicate", hp.path)
    logger.info("found %s (%d, %r)", hp.url, hp.status, hp.content_type)
