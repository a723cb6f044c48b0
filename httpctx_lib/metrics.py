"""In-process metrics for the enrichment runtime."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict


@dataclass
class EnrichmentMetrics:
    """Runtime metrics for HTTP context enrichment."""

    snapshots_total: int = 0 # Snapshots built
    redacted_total: int = 0 # Field values replaced by a filter
    discarded_total: int = 0 # Fields dropped by a filter
    collection_errors: dict[str, int] | None = None # Collections the request refused to expose
    enrichment_failures: int = 0 # Snapshot builds that raised
    enrichment_skipped: int = 0 # Events below the minimum level

    def as_dict(self) -> dict[str, object]:
        """Return the metrics as a dictionary."""

        return {
            "snapshots_total": self.snapshots_total,
            "redacted_total": self.redacted_total,
            "discarded_total": self.discarded_total,
            "collection_errors": dict(self.collection_errors or {}),
            "enrichment_failures": self.enrichment_failures,
            "enrichment_skipped": self.enrichment_skipped,
        }


_LOCK = threading.RLock()
_METRICS = EnrichmentMetrics(collection_errors={})


def record_snapshot() -> None:
    with _LOCK:
        _METRICS.snapshots_total += 1


def record_redaction(replaced: int, discarded: int = 0) -> None:
    """Record aggregate redaction metrics."""

    if replaced <= 0 and discarded <= 0:
        return

    with _LOCK:
        _METRICS.redacted_total += max(0, replaced)
        _METRICS.discarded_total += max(0, discarded)


def record_collection_error(collection: str) -> None:
    with _LOCK:
        errors: Dict[str, int] = _METRICS.collection_errors or {}
        errors[collection] = errors.get(collection, 0) + 1
        _METRICS.collection_errors = errors


def record_enrichment_failure() -> None:
    with _LOCK:
        _METRICS.enrichment_failures += 1


def record_enrichment_skipped() -> None:
    with _LOCK:
        _METRICS.enrichment_skipped += 1


def reset_metrics() -> None:
    """Reset the metrics."""

    with _LOCK:
        _METRICS.snapshots_total = 0
        _METRICS.redacted_total = 0
        _METRICS.discarded_total = 0
        _METRICS.collection_errors = {}
        _METRICS.enrichment_failures = 0
        _METRICS.enrichment_skipped = 0


def get_metrics() -> EnrichmentMetrics:
    """Get a copy of the metrics."""

    with _LOCK:
        snapshot = EnrichmentMetrics(**_METRICS.as_dict())
        snapshot.collection_errors = dict(_METRICS.collection_errors or {})
        return snapshot
