"""Top-level pytest configuration for httpctx_lib tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover - configuration hook
    config.addinivalue_line("markers", "httpctx: HTTP context enrichment unit tests")
