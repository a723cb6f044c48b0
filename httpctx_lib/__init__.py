"""Public API for the HTTP context enrichment library."""

from __future__ import annotations

from .config import (
    EnricherSettings,
    FilterRule,
    FilterSettings,
    configure_settings,
    get_settings,
    load_settings,
)
from .enricher import HttpContextEnricher
from .errors import CollectionAccessError, ConfigurationError, HttpContextError
from .exception_info import add_exception_data, exception_data
from .filters import CompiledFilters, FilterSet, compile_filters
from .metrics import get_metrics
from .pairs import NameValuePair
from .redaction import COLLECTION_ERROR_KEY, CollectionRedactor
from .request import RequestContext, WerkzeugRequestContext
from .snapshot import ContextSnapshot

__all__ = [
    "configure",
    "COLLECTION_ERROR_KEY",
    "CollectionAccessError",
    "CollectionRedactor",
    "CompiledFilters",
    "ConfigurationError",
    "ContextSnapshot",
    "EnricherSettings",
    "FilterRule",
    "FilterSet",
    "FilterSettings",
    "HttpContextEnricher",
    "HttpContextError",
    "NameValuePair",
    "RequestContext",
    "WerkzeugRequestContext",
    "add_exception_data",
    "compile_filters",
    "exception_data",
    "get_metrics",
    "get_settings",
    "load_settings",
]


def configure(settings: EnricherSettings | None = None, **overrides) -> EnricherSettings:
    """Install process-wide settings, failing fast on invalid filter patterns."""

    candidate = settings or load_settings()
    if overrides:
        candidate = candidate.with_overrides(**overrides)
    compile_filters(candidate.filters)

    return configure_settings(candidate)
