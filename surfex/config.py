from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from surfex.errors import ConfigError

# =====================================
# Catalogues
# =====================================

MIN_CONCURRENCY = 5
DEFAULT_CONCURRENCY = 150
DEFAULT_RESULT_FILE = "hunt.json"

COMMON_PORTS: Dict[int, str] = {
    21: "ftp",
    22: "ssh",
    23: "telnet",
    80: "http",
    443: "http",
    445: "smb",
    1433: "mssql",
    1521: "oracle",
    2375: "docker",
    3000: "http",
    3306: "mysql",
    5000: "http",
    5432: "postgresql",
    8000: "http",
    8008: "http",
    8080: "http",
    8081: "http",
    8443: "http",
    8888: "http",
    9200: "elasticsearch",
    10250: "kubernetes",
    27017: "mongodb",
}

HTTP_PORTS: Set[int] = {80, 443, 3000, 5000, 8000, 8008, 8080, 8081, 8443, 8888}
TLS_PORTS: Set[int] = {443, 8443}

PATHS_WORDLIST: List[str] = [
    "",
    ".env",
    ".git/config",
    ".DS_Store",
    "admin",
    "api",
    "backup.zip",
    "config.json",
    "contact",
    "login",
    "phpinfo.php",
    "robots.txt",
    "server-status",
    "sitemap.xml",
    "swagger.json",
    "wp-login.php",
]

INTERESTING_CONTENT_TYPES = frozenset({
    "application/gzip",
    "application/javascript",
    "application/json",
    "application/msword",
    "application/octet-stream",
    "application/pdf",
    "application/vnd.ms-excel",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/xhtml+xml",
    "application/xml",
    "application/zip",
    "text/csv",
    "text/html",
    "text/javascript",
    "text/plain",
    "text/xml",
})

DOWNLOADABLE_CONTENT_TYPES = frozenset({
    "application/javascript",
    "application/json",
    "application/xhtml+xml",
    "application/xml",
    "text/csv",
    "text/html",
    "text/javascript",
    "text/plain",
    "text/xml",
})

# Statuses that never denote a discovery. 3xx should not survive redirect
# following but some proxies answer them without a Location.
IRRELEVANT_STATUSES = frozenset({404, 408, 410, 460, 521, 522, 523, 524, 598})

MODE_PRESETS: Dict[str, Dict[str, float]] = {
    "light": {"concurrency": 50, "connect_timeout": 2.0, "http_timeout": 15.0},
    "aggressive": {"concurrency": 300, "connect_timeout": 1.0, "http_timeout": 8.0},
}


# =====================================
# Hunt configuration
# =====================================

@dataclass
class HuntConfig:
    """Settings for one hunt pass, handed down from the hunt to every probe."""

    result_file: str = DEFAULT_RESULT_FILE
    workdir: str = field(default_factory=os.getcwd)
    concurrency: int = DEFAULT_CONCURRENCY
    subdomains: bool = False
    scan: bool = False
    connect_timeout: float = 1.0
    banner_timeout: float = 2.0
    http_timeout: float = 10.0
    dns_timeout: float = 5.0
    nameserver: Optional[str] = None
    verify_ssl: bool = True
    rate_limit_cooldown: float = 60.0
    max_time: Optional[float] = None
    ports: Dict[int, str] = field(default_factory=lambda: dict(COMMON_PORTS))
    http_ports: Set[int] = field(default_factory=lambda: set(HTTP_PORTS))
    tls_ports: Set[int] = field(default_factory=lambda: set(TLS_PORTS))
    wordlist: List[str] = field(default_factory=lambda: list(PATHS_WORDLIST))
    subdomain_command: List[str] = field(default_factory=lambda: ["subfinder", "-all", "-silent"])

    def validate(self) -> "HuntConfig":
        if self.concurrency < MIN_CONCURRENCY:
            raise ConfigError(f"maximum concurrent connections must be at least {MIN_CONCURRENCY} (got {self.concurrency})")
        for name in ("connect_timeout", "banner_timeout", "http_timeout", "dns_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.rate_limit_cooldown < 0:
            raise ConfigError("rate_limit_cooldown cannot be negative")
        if self.max_time is not None and self.max_time <= 0:
            raise ConfigError("max_time must be positive")
        return self

    def apply_mode(self, mode: Optional[str]) -> "HuntConfig":
        if not mode:
            return self
        try:
            preset = MODE_PRESETS[mode]
        except KeyError:
            raise ConfigError(f"unknown mode {mode!r}") from None
        for key, value in preset.items():
            setattr(self, key, type(getattr(self, key))(value))
        return self

    def is_http(self, port: int) -> bool:
        return port in self.http_ports

    def is_tls(self, port: int) -> bool:
        return port in self.tls_ports
