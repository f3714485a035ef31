"""Tiered live/cached/mock resolution."""

from agri_resolver.resolver.errors import (
    ConfigurationError,
    MalformedResponse,
    ResolverError,
    SourceUnavailable,
)
from agri_resolver.resolver.models import (
    ResolutionPlan,
    ResolutionResult,
    SourceDescriptor,
    Tier,
    worse_tier,
)
from agri_resolver.resolver.orchestrator import FallbackOrchestrator

__all__ = [
    "ConfigurationError",
    "FallbackOrchestrator",
    "MalformedResponse",
    "ResolutionPlan",
    "ResolutionResult",
    "ResolverError",
    "SourceDescriptor",
    "SourceUnavailable",
    "Tier",
    "worse_tier",
]
