"""Configuration utilities for HTTP context enrichment."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Mapping


REGEX_PREFIX = "re:"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _comma_tuple(value: str | None, *, default: tuple[str, ...]) -> tuple[str, ...]:
    """Convert a comma-separated string to a tuple."""

    if not value:
        return default

    return tuple(filter(None, (part.strip() for part in value.split(","))))


def _bool_env(value: str | None, default: bool) -> bool:
    """Convert a string to a boolean."""

    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


def _level_env(value: str | None, default: int) -> int:
    if value is None:
        return default

    text = value.strip().upper()
    if text.isdigit():
        return int(text)

    return _LEVELS.get(text, default)


@dataclass(frozen=True)
class FilterRule:
    """A single redaction rule for one collection.

    ``replace_with`` of ``None`` or ``""`` discards the matching field, any
    other string replaces its value. A literal rule named ``""`` discards the
    whole collection.
    """

    name: str
    replace_with: str | None = None
    name_is_regex: bool = False


def _parse_rule(entry: str) -> FilterRule:
    name, _, replacement = entry.partition("=")
    name = name.strip()
    replacement = replacement.strip()

    if name.startswith(REGEX_PREFIX):
        return FilterRule(name[len(REGEX_PREFIX):], replacement, name_is_regex=True)

    return FilterRule(name, replacement)


def parse_rules(value: str | None) -> tuple[FilterRule, ...]:
    """Parse ``name[=replacement]`` entries, ``re:`` marking regex names.

    Entries are split on commas and on the first ``=``, so neither character
    can appear in a name or pattern; build ``FilterRule`` objects directly for
    those. Surrounding whitespace is stripped from names and replacements.
    """

    return tuple(_parse_rule(entry) for entry in _comma_tuple(value, default=()))


@dataclass(frozen=True)
class FilterSettings:
    """Per-collection filter rules plus exception capture options."""

    form_filters: tuple[FilterRule, ...] | None = None
    cookie_filters: tuple[FilterRule, ...] | None = None
    header_filters: tuple[FilterRule, ...] | None = None
    server_var_filters: tuple[FilterRule, ...] | None = None
    data_include_pattern: str | None = None
    append_full_stack_trace: bool = False

    def with_overrides(self, **kwargs: Any) -> "FilterSettings":
        return replace(self, **kwargs)


@dataclass(frozen=True)
class EnricherSettings:
    """Immutable runtime configuration for the log enricher."""

    minimum_level: int = logging.ERROR
    filters: FilterSettings = field(default_factory=FilterSettings)

    def with_overrides(self, **kwargs: Any) -> "EnricherSettings":
        return replace(self, **kwargs)


_SETTINGS_LOCK = threading.RLock()
_SETTINGS: EnricherSettings | None = None


def load_settings(env: Mapping[str, str] | None = None) -> EnricherSettings:
    source = env if env is not None else os.environ

    filters = FilterSettings(
        form_filters=parse_rules(source.get("HTTPCTX_FORM_FILTERS")),
        cookie_filters=parse_rules(source.get("HTTPCTX_COOKIE_FILTERS")),
        header_filters=parse_rules(source.get("HTTPCTX_HEADER_FILTERS")),
        server_var_filters=parse_rules(source.get("HTTPCTX_SERVER_VAR_FILTERS")),
        data_include_pattern=source.get("HTTPCTX_DATA_INCLUDE_PATTERN") or None,
        append_full_stack_trace=_bool_env(
            source.get("HTTPCTX_APPEND_FULL_STACK_TRACE"), False
        ),
    )

    return EnricherSettings(
        minimum_level=_level_env(source.get("HTTPCTX_MIN_LEVEL"), logging.ERROR),
        filters=filters,
    )


def configure_settings(
    settings: EnricherSettings | None = None, **overrides: Any
) -> EnricherSettings:
    with _SETTINGS_LOCK:
        resolved = settings or load_settings()
        if overrides:
            resolved = resolved.with_overrides(**overrides)
        global _SETTINGS
        _SETTINGS = resolved
        return _SETTINGS


def get_settings() -> EnricherSettings:
    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            return configure_settings()
        return _SETTINGS


def reset_settings() -> None:
    global _SETTINGS
    with _SETTINGS_LOCK:
        _SETTINGS = None
