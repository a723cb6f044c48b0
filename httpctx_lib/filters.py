"""Compiled filter sets for the redaction engine."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from re import Pattern
from types import MappingProxyType
from typing import Iterable, Mapping

from .config import FilterRule, FilterSettings
from .errors import ConfigurationError


REGEX_FLAGS = re.IGNORECASE | re.DOTALL

# A literal rule with this name discards the whole collection.
SUPPRESS_ALL = ""


def _compile(pattern: str, what: str) -> Pattern[str]:
    try:
        return re.compile(pattern, REGEX_FLAGS)
    except re.error as exc:
        raise ConfigurationError(f"Invalid {what} pattern {pattern!r}: {exc}") from exc


@dataclass(frozen=True)
class FilterSet:
    """Exact-name lookups plus ordered regex rules for one collection."""

    exact: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    patterns: tuple[tuple[Pattern[str], str], ...] = ()

    @property
    def suppress_all(self) -> bool:
        return SUPPRESS_ALL in self.exact

    @property
    def is_empty(self) -> bool:
        return not self.exact and not self.patterns

    @classmethod
    def compile(cls, rules: Iterable[FilterRule] | None) -> "FilterSet":
        """Build a filter set; the last literal rule for a name wins."""

        exact: dict[str, str] = {}
        patterns: list[tuple[Pattern[str], str]] = []

        for rule in rules or ():
            replacement = rule.replace_with or ""
            if not rule.name_is_regex:
                exact[rule.name] = replacement
            elif rule.name:
                patterns.append((_compile(rule.name, "filter"), replacement))

        return cls(exact=MappingProxyType(exact), patterns=tuple(patterns))

    def match(self, name: str) -> str | None:
        """Return the replacement for ``name`` or ``None`` when no rule applies.

        Exact names are consulted first; regex rules are searched in
        declaration order and the first hit wins.
        """

        replacement = self.exact.get(name)
        if replacement is not None:
            return replacement

        for pattern, replacement in self.patterns:
            if pattern.search(name):
                return replacement

        return None


EMPTY_FILTER_SET = FilterSet()


@dataclass(frozen=True)
class CompiledFilters:
    """Every filter set derived from one ``FilterSettings`` instance."""

    form: FilterSet = EMPTY_FILTER_SET
    cookies: FilterSet = EMPTY_FILTER_SET
    headers: FilterSet = EMPTY_FILTER_SET
    server_variables: FilterSet = EMPTY_FILTER_SET
    data_include: Pattern[str] | None = None
    append_full_stack_trace: bool = False


EMPTY_FILTERS = CompiledFilters()


def compile_filters(settings: FilterSettings | CompiledFilters | None) -> CompiledFilters:
    """Compile ``settings`` eagerly so bad patterns fail at configuration time."""

    if settings is None:
        return EMPTY_FILTERS

    if isinstance(settings, CompiledFilters):
        return settings

    data_include = None
    if settings.data_include_pattern:
        data_include = _compile(settings.data_include_pattern, "data include")

    return CompiledFilters(
        form=FilterSet.compile(settings.form_filters),
        cookies=FilterSet.compile(settings.cookie_filters),
        headers=FilterSet.compile(settings.header_filters),
        server_variables=FilterSet.compile(settings.server_var_filters),
        data_include=data_include,
        append_full_stack_trace=settings.append_full_stack_trace,
    )


__all__ = [
    "CompiledFilters",
    "EMPTY_FILTERS",
    "FilterSet",
    "SUPPRESS_ALL",
    "compile_filters",
]
