"""Flat name/value pair views of multi-valued collections."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional

from werkzeug.datastructures import MultiDict


@dataclass
class NameValuePair:
    """One entry of a collection that may repeat names, like a query string."""

    name: str
    value: Optional[str]

    def as_dict(self) -> dict[str, Optional[str]]:
        return asdict(self)


def to_pairs(collection: Optional[MultiDict]) -> Optional[List[NameValuePair]]:
    """Flatten ``collection`` in order, one pair per value."""

    if collection is None:
        return None

    return [NameValuePair(name, value) for name, value in collection.items(multi=True)]


def _join(values: List[Optional[str]]) -> Optional[str]:
    present = [value for value in values if value is not None]
    return ",".join(present) if present else None


def collapse(pairs: Optional[Iterable[NameValuePair]]) -> Dict[str, Optional[str]]:
    """Group pairs by name in first-seen order, joining repeated values with commas."""

    grouped: Dict[str, List[Optional[str]]] = {}
    for pair in pairs or ():
        grouped.setdefault(pair.name, []).append(pair.value)
    return {name: _join(values) for name, values in grouped.items()}


def to_json_dictionary(pairs: Optional[Iterable[NameValuePair]]) -> Dict[str, Optional[str]]:
    """Collapse pairs into a dictionary; nameless pairs are skipped."""

    return {name: value for name, value in collapse(pairs).items() if name}
