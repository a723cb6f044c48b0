"""Exceptions raised by the HTTP context enrichment library."""


class HttpContextError(Exception):
    """Base error for httpctx_lib."""
    pass


class ConfigurationError(HttpContextError):
    """Filter configuration could not be compiled."""
    pass


class CollectionAccessError(HttpContextError):
    """The request refused to expose one of its raw collections."""

    def __init__(self, message: str, collection: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection
