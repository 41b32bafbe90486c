"""Filter chain deciding whether a fetched HTTP response is a discovery.

Each filter is a named predicate over a FetchedResponse. The first one that
matches ends the probe with an IrrelevantResult carrying the filter name as
reason code. Filters are split in two stages: those that only need the
status line and headers, and those that need the body.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from surfex.config import INTERESTING_CONTENT_TYPES, IRRELEVANT_STATUSES
from surfex.errors import IrrelevantResult, TooManyRequests


@dataclass
class FetchedResponse:
    target_host: str
    port: int
    final_host: str
    final_path: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    content_type: str = ""
    title: str = ""
    body: bytes = b""


Predicate = Callable[[FetchedResponse], bool]


def irrelevant_status(resp: FetchedResponse) -> bool:
    return 300 <= resp.status <= 399 or resp.status in IRRELEVANT_STATUSES


def cross_domain(resp: FetchedResponse) -> bool:
    return (resp.final_host or "").lower() != resp.target_host.lower()


def uninteresting_content_type(resp: FetchedResponse) -> bool:
    return bool(resp.content_type) and resp.content_type not in INTERESTING_CONTENT_TYPES


def waf_challenge(resp: FetchedResponse) -> bool:
    title = resp.title.lower()
    return "cloudflare" in title or ("verify" in title and "human" in title)


HEADER_FILTERS: List[Tuple[str, Predicate]] = [
    ("irrelevant-status", irrelevant_status),
    ("cross-domain", cross_domain),
]

CONTENT_FILTERS: List[Tuple[str, Predicate]] = [
    ("content-type", uninteresting_content_type),
]

BODY_FILTERS: List[Tuple[str, Predicate]] = [
    ("waf-challenge", waf_challenge),
]


def check_rate_limit(resp: FetchedResponse) -> None:
    if resp.status == 429:
        raise TooManyRequests(resp.target_host, resp.port)


def first_match(resp: FetchedResponse, filters: Sequence[Tuple[str, Predicate]]) -> Optional[str]:
    for reason, predicate in filters:
        if predicate(resp):
            return reason
    return None


def apply_filters(resp: FetchedResponse, filters: Sequence[Tuple[str, Predicate]]) -> None:
    reason = first_match(resp, filters)
    if reason:
        raise IrrelevantResult(reason, f"{resp.final_host}{resp.final_path} ({resp.status})")
