from __future__ import annotations

import random
import re
from ipaddress import ip_address, ip_network
from typing import List, Optional, Union
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup

USER_AGENTS = [
    "Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_5_1 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.5.1 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (Linux; Android 13) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.5.1 Safari/605.1.15",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:109.0) Gecko/20100101 Firefox/115.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/117.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36",
]

_LABEL_RE = re.compile(r"^[A-Za-z0-9-]+$")

# IPv6 ranges wider than this are not expanded
_MAX_V6_HOST_BITS = 16

_DISALLOWED_IN_PATH = ("..", "\x00", " ", "*", "?", "[", "]", "`", "$", '"', "'", ":", "\\", "<", ">", "|", ";", "&", "{", "}")
MAX_SEGMENT_LENGTH = 255


def rand_user_agent() -> str:
    return random.choice(USER_AGENTS)


def is_ip(s: str) -> bool:
    try:
        ip_address(s)
        return True
    except ValueError:
        return False


def _hosts_from_network(net) -> List[str]:
    host_bits = net.max_prefixlen - net.prefixlen
    if net.version == 6 and host_bits > _MAX_V6_HOST_BITS:
        return []
    if host_bits <= 1:
        # /31 and /32 (or /127, /128) have no network/broadcast pair to drop
        return [str(ip) for ip in net]
    first = int(net.network_address) + 1
    last = int(net.broadcast_address) - 1
    cls = type(net.network_address)
    return [str(cls(i)) for i in range(first, last + 1)]


def _valid_domain(name: str) -> bool:
    for label in name.split("."):
        if not label or len(label) > 63 or not _LABEL_RE.match(label):
            return False
    return True


def extract_hosts(entry: str) -> List[str]:
    """Return the hosts (domains or IPs) denoted by a scope entry.

    The entry may be a domain, an IP, a URL or a CIDR. CIDR ranges are
    expanded without their network and broadcast addresses. Anything that
    cannot be understood yields an empty list.
    """
    s = (entry or "").strip()
    if not s:
        return []

    if "/" in s and "://" not in s:
        try:
            return _hosts_from_network(ip_network(s, strict=False))
        except ValueError:
            pass

    if is_ip(s):
        return [str(ip_address(s))]

    if "://" not in s:
        s = "http://" + s  # urlparse needs a scheme to find the netloc
    try:
        hostname = urlparse(s).hostname
    except ValueError:
        return []
    if not hostname:
        return []

    if is_ip(hostname):
        return [str(ip_address(hostname))]

    if not _valid_domain(hostname):
        return []
    return [hostname]


def sanitize_segment(segment: str) -> str:
    for bad in _DISALLOWED_IN_PATH:
        segment = segment.replace(bad, "_")
    return segment[:MAX_SEGMENT_LENGTH]


def normalize_path(raw_path: Optional[str]) -> str:
    """Percent-decode a URL path and make every segment safe on disk."""
    path = unquote(raw_path or "/")
    cleaned = "/".join(sanitize_segment(seg) for seg in path.split("/"))
    if not cleaned.startswith("/"):
        cleaned = "/" + cleaned
    return cleaned


def parse_title(body: Union[bytes, str]) -> str:
    if not body:
        return ""
    soup = BeautifulSoup(body, "html.parser")
    tag = soup.find("title")
    if tag is None:
        return ""
    return tag.get_text().strip()
