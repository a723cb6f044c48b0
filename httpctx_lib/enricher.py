"""Log enrichment with HTTP request and exception context."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Callable, Iterable, MutableMapping, Optional

from .config import FilterSettings
from .filters import CompiledFilters, compile_filters
from .metrics import record_enrichment_failure, record_enrichment_skipped
from .pairs import NameValuePair, collapse
from .request import RequestContext, current_request_context
from .snapshot import ContextSnapshot


LOGGER = logging.getLogger("httpctx_lib.enricher")

ContextProvider = Callable[[], Optional[RequestContext]]

SCALAR_PREFIX = "_"
CUSTOM_DATA_PREFIX = "cd: "
SERVER_VARIABLE_PREFIX = "sv: "
REQUEST_HEADER_PREFIX = "rh: "
QUERY_STRING_PREFIX = "qs: "
COOKIE_PREFIX = "cookie: "
FORM_PREFIX = "form: "

_ENRICHING: ContextVar[bool] = ContextVar("httpctx_lib_enriching", default=False)


def _add_if_absent(properties: MutableMapping[str, Any], name: str, value: Any) -> None:
    if name not in properties:
        properties[name] = value


def _add_pairs(
    properties: MutableMapping[str, Any],
    prefix: str,
    pairs: Optional[Iterable[NameValuePair]],
) -> None:
    for name, value in collapse(pairs).items():
        _add_if_absent(properties, prefix + name, value)


def snapshot_properties(
    snapshot: ContextSnapshot,
    properties: MutableMapping[str, Any],
    *,
    include_exception: bool = True,
) -> MutableMapping[str, Any]:
    """Copy ``snapshot`` into ``properties`` without overwriting existing names."""

    if include_exception:
        _add_if_absent(properties, "_ExceptionMessage", snapshot.exception_message)
        _add_if_absent(properties, "_ExceptionDetail", snapshot.exception_detail)
        _add_if_absent(properties, "_ExceptionSource", snapshot.exception_source)
        _add_if_absent(properties, "_ExceptionType", snapshot.exception_type)

    _add_if_absent(properties, "_Host", snapshot.host)
    _add_if_absent(properties, "_HTTPMethod", snapshot.http_method)
    _add_if_absent(properties, "_IPAddress", snapshot.ip_address)
    _add_if_absent(properties, "_Url", snapshot.url)
    _add_if_absent(properties, "_StatusCode", snapshot.status_code)

    for key, value in (snapshot.custom_data or {}).items():
        _add_if_absent(properties, CUSTOM_DATA_PREFIX + key, value)

    _add_pairs(properties, SERVER_VARIABLE_PREFIX, snapshot.server_variables_pairs)
    _add_pairs(properties, REQUEST_HEADER_PREFIX, snapshot.request_headers_pairs)
    _add_pairs(properties, QUERY_STRING_PREFIX, snapshot.query_string_pairs)
    _add_pairs(properties, COOKIE_PREFIX, snapshot.cookies_pairs)
    _add_pairs(properties, FORM_PREFIX, snapshot.form_pairs)

    return properties


class HttpContextEnricher(logging.Filter):
    """Adds redacted request and exception properties to log records.

    Attach to a logger or handler. Records below ``minimum_level`` pass
    through untouched; the filter never drops a record.
    """

    def __init__(
        self,
        minimum_level: int = logging.ERROR,
        settings: FilterSettings | CompiledFilters | None = None,
        context_provider: ContextProvider | None = None,
    ) -> None:
        super().__init__()
        self.minimum_level = minimum_level
        self._filters = compile_filters(settings)
        self._context_provider = context_provider or current_request_context

    @property
    def filters(self) -> CompiledFilters:
        return self._filters

    @filters.setter
    def filters(self, settings: FilterSettings | CompiledFilters | None) -> None:
        # Compile first so readers only ever see a complete filter set.
        self._filters = compile_filters(settings)

    def filter(self, record: logging.LogRecord) -> bool:
        exc = None
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]

        self.enrich(record.__dict__, record.levelno, exc)
        return True

    def enrich(
        self,
        properties: MutableMapping[str, Any],
        level: int,
        exc: Optional[BaseException] = None,
    ) -> MutableMapping[str, Any]:
        """Add snapshot properties for one event at ``level``."""

        if level < self.minimum_level:
            record_enrichment_skipped()
            return properties

        if _ENRICHING.get():
            return properties

        token = _ENRICHING.set(True)
        try:
            snapshot = self.build_snapshot(exc)
            snapshot_properties(snapshot, properties, include_exception=exc is not None)
        except Exception:
            record_enrichment_failure()
            LOGGER.exception("Failed to enrich log event with HTTP context")
        finally:
            _ENRICHING.reset(token)

        return properties

    def build_snapshot(self, exc: Optional[BaseException] = None) -> ContextSnapshot:
        return ContextSnapshot(exc, self._context_provider(), self._filters)
