from __future__ import annotations

from typing import Optional


class ResolverError(Exception):
    """Base class for all resolver errors."""


class SourceUnavailable(ResolverError):
    """A remote source could not produce a value (network, timeout, 5xx, missing data)."""

    def __init__(self, source: str, reason: str, status: Optional[int] = None) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason
        # HTTP status when the source answered with a non-2xx response
        self.status = status


class MalformedResponse(ResolverError):
    """A remote source answered, but the payload could not be parsed or had the wrong shape."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class ConfigurationError(ResolverError):
    """Raised at construction time when a resolution plan cannot work at all."""
