"""Redacted snapshot of an HTTP request and exception for one log event."""

from __future__ import annotations

import enum
import json
import re
import socket
from typing import Any, Callable, Dict, List, Optional, Tuple

from werkzeug.datastructures import MultiDict

from .config import FilterSettings
from .exception_info import (
    FULL_TRACE_HEADER,
    exception_data,
    format_detail,
    full_stack_trace,
    http_status_code,
    innermost,
    is_builtin,
    iter_chain,
    source_of,
    type_name,
)
from .filters import CompiledFilters, FilterSet, compile_filters
from .metrics import record_snapshot
from .pairs import NameValuePair, to_json_dictionary, to_pairs
from .redaction import COOKIE_HEADER, fetch_collection, redact
from .request import RequestContext


UNKNOWN_IP = "0.0.0.0"

_IPV4_TAIL = re.compile(r"\b(?:[0-9]{1,3}\.){3}[0-9]{1,3}$")
_PRIVATE_PREFIXES = ("192.168.", "10.", "127.0.0.")


def is_private_ip(address: str) -> bool:
    return address.startswith(_PRIVATE_PREFIXES)


def remote_ip(server_variables: MultiDict) -> str:
    """Client address, preferring a public ``X-Forwarded-For`` entry over ``REMOTE_ADDR``."""

    ip = server_variables.get("REMOTE_ADDR")  # may be a proxy
    forwarded = server_variables.get("HTTP_X_FORWARDED_FOR")

    if forwarded:
        match = _IPV4_TAIL.search(forwarded)
        candidate = match.group(0) if match else ""
        if candidate and not is_private_ip(candidate):
            ip = candidate

    return ip or UNKNOWN_IP


class FieldState(enum.Enum):
    UNSET = "unset"
    CACHED = "cached"
    EXPLICIT = "explicit"


class LazyField:
    """Derived on first read and cached; an assignment wins permanently."""

    def __init__(self, derive: Callable[["ContextSnapshot"], Optional[str]]) -> None:
        self._derive = derive
        self._name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self._name = name

    def __get__(self, instance: Optional["ContextSnapshot"], owner: type | None = None) -> Any:
        if instance is None:
            return self

        state, value = self._slot(instance)
        if state is FieldState.UNSET:
            value = self._derive(instance)
            instance._lazy_fields[self._name] = (FieldState.CACHED, value)
        return value

    def __set__(self, instance: "ContextSnapshot", value: Optional[str]) -> None:
        instance._lazy_fields[self._name] = (FieldState.EXPLICIT, value)

    def prime(self, instance: "ContextSnapshot", value: Optional[str]) -> None:
        """Cache ``value`` unless the field already left the unset state."""

        if self._slot(instance)[0] is FieldState.UNSET:
            instance._lazy_fields[self._name] = (FieldState.CACHED, value)

    def state(self, instance: "ContextSnapshot") -> FieldState:
        return self._slot(instance)[0]

    def _slot(self, instance: "ContextSnapshot") -> Tuple[FieldState, Optional[str]]:
        return instance._lazy_fields.get(self._name, (FieldState.UNSET, None))


def _server_variable(name: str) -> Callable[["ContextSnapshot"], Optional[str]]:
    def _derive(snapshot: "ContextSnapshot") -> Optional[str]:
        if snapshot.server_variables is None:
            return ""
        return snapshot.server_variables.get(name)

    return _derive


def _derive_ip(snapshot: "ContextSnapshot") -> str:
    if snapshot.server_variables is None:
        return ""
    return remote_ip(snapshot.server_variables)


class ContextSnapshot:
    """Exception and request details, filtered for logging.

    Built once per log event: the exception phase runs first when an
    exception is supplied, then the context phase when a request context is
    supplied. Each collection is redacted with its own ``FilterSet``; the
    query string is copied as is.
    """

    host = LazyField(_server_variable("HTTP_HOST"))
    url = LazyField(_server_variable("URL"))
    http_method = LazyField(_server_variable("REQUEST_METHOD"))
    ip_address = LazyField(_derive_ip)

    def __init__(
        self,
        exc: Optional[BaseException] = None,
        context: Optional[RequestContext] = None,
        filters: FilterSettings | CompiledFilters | None = None,
    ) -> None:
        self._lazy_fields: Dict[str, Tuple[FieldState, Optional[str]]] = {}
        self._filters = compile_filters(filters)

        self.machine_name: str = socket.gethostname()
        self.exception_type: Optional[str] = None
        self.exception_message: Optional[str] = None
        self.exception_source: Optional[str] = None
        self.exception_detail: Optional[str] = None
        self.status_code: Optional[int] = None
        self.custom_data: Optional[Dict[str, str]] = None

        self.server_variables: Optional[MultiDict] = None
        self.query_string: Optional[MultiDict] = None
        self.form: Optional[MultiDict] = None
        self.cookies: Optional[MultiDict] = None
        self.request_headers: Optional[MultiDict] = None

        if exc is not None:
            self._set_exception_properties(exc)
        if context is not None:
            self._set_context_properties(context)

        record_snapshot()

    @classmethod
    def from_context(cls, context: RequestContext) -> "ContextSnapshot":
        return cls(context=context)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ContextSnapshot":
        return cls(exc=exc)

    @property
    def filters(self) -> CompiledFilters:
        return self._filters

    # --------------------- construction phases ---------------------
    def _set_exception_properties(self, exc: BaseException) -> None:
        # Application exceptions usually carry the useful message themselves;
        # built-in ones are drilled down to the root cause.
        base = innermost(exc) if is_builtin(exc) else exc

        self.exception_type = type_name(base)
        self.exception_message = str(base)
        self.exception_source = source_of(base)
        self.exception_detail = format_detail(exc)

        status = http_status_code(exc)
        if status is not None:
            self.status_code = status

        if self._filters.append_full_stack_trace:
            self.exception_detail += FULL_TRACE_HEADER + full_stack_trace()

        for link in iter_chain(exc):
            self._add_from_data(link)

    def _set_context_properties(self, context: RequestContext) -> None:
        filters = self._filters

        status = context.status_code
        if status is not None:
            self.status_code = status
        method = context.http_method
        if method is not None:
            type(self).http_method.prime(self, method)

        self.server_variables = self._filtered(
            context.server_variables, "server_variables", filters.server_variables
        )
        self.query_string = fetch_collection(context.query_string, "query_string")
        self.form = self._filtered(context.form, "form", filters.form)
        self.cookies = self._filtered(context.cookies, "cookies", filters.cookies)
        self.request_headers = self._filtered(
            context.headers, "headers", filters.headers, skip=(COOKIE_HEADER,)
        )

    @staticmethod
    def _filtered(
        getter: Callable[[], Any],
        name: str,
        filter_set: FilterSet,
        *,
        skip: Tuple[str, ...] = (),
    ) -> MultiDict:
        if filter_set.suppress_all:
            return MultiDict()
        return redact(fetch_collection(getter, name), filter_set, skip=skip)

    def _add_from_data(self, exc: BaseException) -> None:
        include = self._filters.data_include
        if include is None:
            return

        for key, value in exception_data(exc).items():
            key = str(key)
            if not include.search(key):
                continue
            if self.custom_data is None:
                self.custom_data = {}
            self.custom_data[key] = "" if value is None else str(value)

    # --------------------- serialization views ---------------------
    @property
    def server_variables_pairs(self) -> Optional[List[NameValuePair]]:
        return to_pairs(self.server_variables)

    @property
    def query_string_pairs(self) -> Optional[List[NameValuePair]]:
        return to_pairs(self.query_string)

    @property
    def form_pairs(self) -> Optional[List[NameValuePair]]:
        return to_pairs(self.form)

    @property
    def cookies_pairs(self) -> Optional[List[NameValuePair]]:
        return to_pairs(self.cookies)

    @property
    def request_headers_pairs(self) -> Optional[List[NameValuePair]]:
        return to_pairs(self.request_headers)

    def to_dict(self) -> Dict[str, Any]:
        """Scalar fields plus every collection as a list of pairs."""

        def _pairs(pairs: Optional[List[NameValuePair]]) -> Optional[List[Dict[str, Any]]]:
            return None if pairs is None else [pair.as_dict() for pair in pairs]

        return {
            **self._scalars(),
            "server_variables": _pairs(self.server_variables_pairs),
            "query_string": _pairs(self.query_string_pairs),
            "form": _pairs(self.form_pairs),
            "cookies": _pairs(self.cookies_pairs),
            "request_headers": _pairs(self.request_headers_pairs),
        }

    def to_summary(self) -> Dict[str, Any]:
        """Scalar fields plus every collection collapsed into a dictionary."""

        query_string = None
        if self.server_variables is not None:
            query_string = self.server_variables.get("QUERY_STRING")

        return {
            **self._scalars(),
            "query_string": query_string,
            "server_variables": to_json_dictionary(self.server_variables_pairs),
            "cookie_variables": to_json_dictionary(self.cookies_pairs),
            "request_headers": to_json_dictionary(self.request_headers_pairs),
            "query_string_variables": to_json_dictionary(self.query_string_pairs),
            "form_variables": to_json_dictionary(self.form_pairs),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def to_detailed_json(self) -> str:
        return json.dumps(self.to_summary())

    def _scalars(self) -> Dict[str, Any]:
        return {
            "exception_type": self.exception_type,
            "exception_source": self.exception_source,
            "exception_message": self.exception_message,
            "exception_detail": self.exception_detail,
            "custom_data": self.custom_data,
            "http_method": self.http_method,
            "host": self.host,
            "ip_address": self.ip_address,
            "machine_name": self.machine_name,
            "status_code": self.status_code,
            "url": self.url,
        }

    def __str__(self) -> str:
        if self.exception_message and self.exception_message.strip():
            return self.exception_message
        return super().__str__()
