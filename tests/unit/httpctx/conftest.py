"""Fixtures for httpctx_lib unit tests."""

from __future__ import annotations

import logging
from typing import List

import pytest

from httpctx_lib.config import FilterRule, FilterSettings, reset_settings

from tests.utils.http_context import StubRequestContext, sample_request_context
from tests.utils.logging import reset_enrichment_metrics


def pytest_collection_modifyitems(config, items):  # pragma: no cover - Pytest hook
    """Tag every test in this directory with the `httpctx` marker."""

    for item in items:
        item.add_marker(pytest.mark.httpctx)


@pytest.fixture(autouse=True)
def _reset_enrichment_state():
    """Reset process-wide settings and metrics around each test."""

    reset_settings()
    reset_enrichment_metrics()
    yield
    reset_enrichment_metrics()
    reset_settings()


@pytest.fixture
def request_context() -> StubRequestContext:
    """Request carrying sample server variables, cookies, form fields and headers."""

    return sample_request_context()


@pytest.fixture
def redaction_settings() -> FilterSettings:
    """Regex plus exact rules for every collection."""

    return FilterSettings(
        server_var_filters=(
            FilterRule("AUTH_U.*", "", name_is_regex=True),
            FilterRule("AUTH_PASSWORD", "***"),
        ),
        cookie_filters=(
            FilterRule("COOKIE_1.*", "", name_is_regex=True),
            FilterRule("COOKIE_2", ""),
            FilterRule("COOKIE_3", "***"),
        ),
        form_filters=(
            FilterRule("FORM_B_.*_B", "", name_is_regex=True),
            FilterRule("FORM_C", ""),
            FilterRule("FORM_D", "***"),
        ),
        header_filters=(
            FilterRule("HEADER_B_.*_B", "", name_is_regex=True),
            FilterRule("HEADER_C", ""),
            FilterRule("HEADER_D", "***"),
        ),
    )


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def captured_logger():
    """Isolated logger with a handler collecting every record it emits."""

    logger = logging.getLogger("httpctx-unit-tests")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = _ListHandler()
    logger.addHandler(handler)

    yield logger, handler.records

    logger.removeHandler(handler)
    for existing in list(logger.filters):
        logger.removeFilter(existing)
