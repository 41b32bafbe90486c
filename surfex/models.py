from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from surfex.config import TLS_PORTS
from surfex.utils import extract_hosts, is_ip

# Each collection (hunt targets, target ports, port paths) has its own lock.
# Back-references to parents are for reading identity and config only.


@dataclass
class XSSPoC:
    data: str = ""
    param: str = ""
    payload: str = ""
    evidence: str = ""
    cwe: str = ""
    severity: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {k: v for k, v in self.__dict__.items() if v}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "XSSPoC":
        return cls(**{k: str(d.get(k) or "") for k in ("data", "param", "payload", "evidence", "cwe", "severity")})


@dataclass(eq=False)
class HTTPPath:
    path: str = ""
    status: int = 0
    content_type: str = ""
    title: str = ""
    tech: List[str] = field(default_factory=list)
    xss: List[XSSPoC] = field(default_factory=list)
    port: Optional["Port"] = field(default=None, repr=False)

    @property
    def url(self) -> str:
        path = self.path if self.path.startswith("/") else "/" + self.path
        return self.port.url + path

    def add_tech(self, s: Optional[str]) -> None:
        s = (s or "").strip().lower()
        if s and s not in self.tech:
            self.tech.append(s)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.status:
            out["status"] = self.status
        if self.content_type:
            out["contentType"] = self.content_type
        if self.title:
            out["title"] = self.title
        if self.tech:
            out["tech"] = list(self.tech)
        if self.xss:
            out["xss"] = [poc.to_dict() for poc in self.xss]
        return out

    @classmethod
    def from_dict(cls, path: str, d: Dict[str, Any], port: Optional["Port"] = None) -> "HTTPPath":
        d = d or {}
        return cls(
            path=path,
            status=int(d.get("status") or 0),
            content_type=d.get("contentType") or "",
            title=d.get("title") or "",
            tech=list(d.get("tech") or []),
            xss=[XSSPoC.from_dict(x) for x in d.get("xss") or []],
            port=port,
        )


@dataclass(eq=False)
class Port:
    number: int
    name: str = ""
    version: str = ""
    paths: Optional[Dict[str, HTTPPath]] = None  # only set on HTTP-family ports
    crlf_vulns: List[str] = field(default_factory=list)
    target: Optional["Target"] = field(default=None, repr=False)
    tls: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def scheme(self) -> str:
        return "https" if self.tls else "http"

    @property
    def url(self) -> str:
        host = self.target.host
        if ":" in host:
            host = f"[{host}]"
        return f"{self.scheme}://{host}:{self.number}"

    def has_path(self, path: str) -> bool:
        with self._lock:
            return self.paths is not None and path in self.paths

    def add_path(self, hp: HTTPPath) -> bool:
        """Record hp under its final path; the first writer wins."""
        with self._lock:
            if self.paths is None:
                self.paths = {}
            if hp.path in self.paths:
                return False
            hp.port = self
            self.paths[hp.path] = hp
            return True

    def add_crlf_vulns(self, urls: List[str]) -> None:
        with self._lock:
            for u in urls:
                if u not in self.crlf_vulns:
                    self.crlf_vulns.append(u)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.name:
            out["name"] = self.name
        if self.version:
            out["version"] = self.version
        if self.crlf_vulns:
            out["crlfVulnerabilities"] = list(self.crlf_vulns)
        with self._lock:
            if self.paths:
                out["paths"] = {p: hp.to_dict() for p, hp in self.paths.items()}
        return out

    @classmethod
    def from_dict(cls, number: int, d: Dict[str, Any], target: Optional["Target"] = None) -> "Port":
        d = d or {}
        port = cls(
            number=number,
            name=d.get("name") or "",
            version=d.get("version") or "",
            crlf_vulns=list(d.get("crlfVulnerabilities") or []),
            tls=number in TLS_PORTS,
            target=target,
        )
        if "paths" in d:
            port.paths = {p: HTTPPath.from_dict(p, hd, port) for p, hd in (d.get("paths") or {}).items()}
        return port


@dataclass(eq=False)
class Target:
    host: str
    ports: Dict[int, Port] = field(default_factory=dict)
    hunt: Optional["Hunt"] = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def scanned(self) -> bool:
        return bool(self.ports)

    @property
    def is_ip(self) -> bool:
        return is_ip(self.host)

    def add_port(self, port: Port) -> None:
        port.target = self
        with self._lock:
            self.ports[port.number] = port

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            ports = {str(n): p.to_dict() for n, p in sorted(self.ports.items())}
        return {"ports": ports} if ports else {}

    @classmethod
    def from_dict(cls, host: str, d: Dict[str, Any], hunt: Optional["Hunt"] = None) -> "Target":
        target = cls(host=host, hunt=hunt)
        for num, pd in ((d or {}).get("ports") or {}).items():
            n = int(num)
            target.ports[n] = Port.from_dict(n, pd, target)
        return target


@dataclass(eq=False)
class Hunt:
    scope: List[str] = field(default_factory=list)
    targets: Dict[str, Target] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def add_target(self, target: Target) -> bool:
        """Insert target unless its host is already known. Returns True if inserted."""
        with self._lock:
            if target.host in self.targets:
                return False
            target.hunt = self
            self.targets[target.host] = target
            return True

    def register_scope(self) -> List[Target]:
        """Add every scope host not known yet and return the new targets."""
        added = []
        for entry in self.scope:
            for host in extract_hosts(entry):
                target = Target(host=host)
                if self.add_target(target):
                    added.append(target)
        return added

    def pending_targets(self) -> List[Target]:
        with self._lock:
            return [t for t in self.targets.values() if not t.scanned]

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            targets = dict(self.targets)
        return {
            "scope": list(self.scope),
            "targets": {host: t.to_dict() for host, t in sorted(targets.items())},
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Hunt":
        d = d or {}
        hunt = cls(scope=[str(s) for s in d.get("scope") or []])
        for host, td in (d.get("targets") or {}).items():
            hunt.targets[host] = Target.from_dict(host, td, hunt)
        return hunt
