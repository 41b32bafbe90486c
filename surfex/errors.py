from __future__ import annotations


class SurfexError(Exception):
    pass


class ConfigError(SurfexError):
    pass


class PersistenceError(SurfexError):
    pass


class SubdomainToolError(SurfexError):
    pass


class IrrelevantResult(SurfexError):
    """A probe outcome deliberately left out of the results (not a fault)."""

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}" if detail else reason)


class TooManyRequests(SurfexError):
    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        super().__init__(f"too many requests (status 429) on {host}:{port}")
