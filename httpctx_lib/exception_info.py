"""Helpers for describing exceptions attached to log events."""

from __future__ import annotations

import traceback
from typing import Any, Dict, Iterator, Mapping, Optional

from werkzeug.exceptions import HTTPException


DATA_ATTRIBUTE = "log_data"
FULL_TRACE_HEADER = "\n\nFull Trace:\n\n"


def iter_chain(exc: Optional[BaseException]) -> Iterator[BaseException]:
    """Yield ``exc`` followed by each cause, outermost first."""

    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        if exc.__cause__ is not None:
            exc = exc.__cause__
        elif exc.__suppress_context__:
            exc = None
        else:
            exc = exc.__context__


def innermost(exc: BaseException) -> BaseException:
    """Follow explicit ``raise ... from`` wrapping down to the root cause."""

    seen = {id(exc)}
    while exc.__cause__ is not None and id(exc.__cause__) not in seen:
        exc = exc.__cause__
        seen.add(id(exc))
    return exc


def is_builtin(exc: BaseException) -> bool:
    """Built-in exceptions rarely carry context, so their innermost cause is more telling."""

    return type(exc).__module__ == "builtins"


def type_name(exc: BaseException) -> str:
    cls = type(exc)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def source_of(exc: BaseException) -> str:
    """Module that raised ``exc``, falling back to the module defining its type."""

    tb = exc.__traceback__
    if tb is None:
        return type(exc).__module__

    while tb.tb_next is not None:
        tb = tb.tb_next
    return tb.tb_frame.f_globals.get("__name__") or type(exc).__module__


def format_detail(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def full_stack_trace() -> str:
    # Drop this frame and the caller's.
    return "".join(traceback.format_list(traceback.extract_stack()[:-2]))


def http_status_code(exc: BaseException) -> Optional[int]:
    if isinstance(exc, HTTPException):
        return exc.code
    return None


def exception_data(exc: BaseException) -> Mapping[str, Any]:
    """Auxiliary data attached to ``exc``; empty when none was added."""

    data = getattr(exc, DATA_ATTRIBUTE, None)
    if isinstance(data, Mapping):
        return data
    return {}


def add_exception_data(exc: BaseException, key: str, value: Any) -> BaseException:
    """Attach ``key``/``value`` to ``exc`` for later inclusion in log context."""

    data: Optional[Dict[str, Any]] = getattr(exc, DATA_ATTRIBUTE, None)
    if not isinstance(data, dict):
        data = {}
        setattr(exc, DATA_ATTRIBUTE, data)
    data[key] = value
    return exc
