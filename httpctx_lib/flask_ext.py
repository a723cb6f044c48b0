"""Flask integration helpers for httpctx_lib."""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, Response, after_this_request, g

from .config import get_settings
from .enricher import HttpContextEnricher
from .request import RESPONSE_ATTRIBUTE


LOGGER = logging.getLogger("httpctx_lib.flask_ext")


def register_flask_enrichment(
    app: Flask,
    enricher: HttpContextEnricher | None = None,
    *,
    logger: Optional[logging.Logger] = None,
) -> HttpContextEnricher:
    """Enrich ``app.logger`` (or ``logger``) records with the current request."""

    if enricher is None:
        settings = get_settings()
        enricher = HttpContextEnricher(settings.minimum_level, settings.filters)

    target = logger or app.logger
    if enricher not in target.filters:
        target.addFilter(enricher)

    @app.before_request
    def _httpctx_before_request() -> None:  # type: ignore[override]
        # Per-request callbacks run ahead of every after_request hook, so
        # hooks that log already see the response status.
        @after_this_request
        def _remember_response(response: Response) -> Response:
            setattr(g, RESPONSE_ATTRIBUTE, response)
            return response

    LOGGER.debug("HTTP context enrichment attached to logger %s", target.name)
    return enricher
