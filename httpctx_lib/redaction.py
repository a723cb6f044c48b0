"""Field-level redaction of request collections."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Tuple

from werkzeug.datastructures import Headers, MultiDict

from .errors import CollectionAccessError
from .filters import FilterSet
from .metrics import record_collection_error, record_redaction
from .pairs import NameValuePair


LOGGER = logging.getLogger("httpctx_lib.redaction")

COLLECTION_ERROR_KEY = "CollectionFetchError"
COOKIE_HEADER = "cookie"

Item = Tuple[str, Optional[str]]


def iter_items(source: Any) -> Iterator[Item]:
    """Yield ``(name, value)`` pairs from a map-like or list-of-pairs collection."""

    if source is None:
        return
    if isinstance(source, MultiDict):
        yield from source.items(multi=True)
    elif isinstance(source, Headers):
        yield from source.items()
    elif isinstance(source, Mapping):
        yield from source.items()
    else:
        for entry in source:
            if isinstance(entry, NameValuePair):
                yield entry.name, entry.value
            else:
                name, value = entry
                yield name, value


class CollectionRedactor:
    """Applies one ``FilterSet`` to a collection, producing a filtered copy."""

    def __init__(self, filter_set: FilterSet, *, skip: Iterable[str] = ()) -> None:
        self._filter_set = filter_set
        self._skip = frozenset(name.casefold() for name in skip)

    def apply(self, source: Any) -> MultiDict:
        """Return a new collection with discarded fields removed and replaced fields masked.

        Source order is preserved. A replaced name appears once, holding the
        replacement, however many values the source carried for it.
        """

        filter_set = self._filter_set
        if filter_set.suppress_all:
            return MultiDict()

        result = MultiDict()
        decisions: dict[str, Optional[str]] = {}
        replaced = 0
        discarded = 0

        for name, value in iter_items(source):
            if self._skip and name.casefold() in self._skip:
                continue

            if value is None:
                result.add(name, value)
                continue

            if name not in decisions:
                decisions[name] = filter_set.match(name)
                match = decisions[name]
                if match == "":
                    discarded += 1
                elif match is not None:
                    replaced += 1
                    result.add(name, match)
                    continue

            match = decisions[name]
            if match is None:
                result.add(name, value)

        record_redaction(replaced, discarded)
        return result


def redact(source: Any, filter_set: FilterSet, *, skip: Iterable[str] = ()) -> MultiDict:
    """Filter ``source`` with ``filter_set``."""

    return CollectionRedactor(filter_set, skip=skip).apply(source)


def redact_headers(source: Any, filter_set: FilterSet) -> MultiDict:
    """Filter request headers; the Cookie header is always left out."""

    return redact(source, filter_set, skip=(COOKIE_HEADER,))


def fetch_collection(getter: Callable[[], Any], name: str) -> MultiDict:
    """Copy a request collection, substituting an error entry if the request refuses."""

    try:
        return MultiDict(list(iter_items(getter())))
    except CollectionAccessError as exc:
        LOGGER.warning("Error parsing %s collection: %s", name, exc)
        record_collection_error(name)
        return MultiDict([(COLLECTION_ERROR_KEY, str(exc))])


__all__ = [
    "COLLECTION_ERROR_KEY",
    "CollectionRedactor",
    "fetch_collection",
    "iter_items",
    "redact",
    "redact_headers",
]
