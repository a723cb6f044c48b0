"""Request accessors feeding the snapshot builder."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Tuple

from flask import g, has_request_context, request
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, RequestEntityTooLarge
from werkzeug.wrappers import Request, Response

from .errors import CollectionAccessError


RESPONSE_ATTRIBUTE = "_httpctx_response"

_ACCESS_ERRORS = (BadRequest, RequestEntityTooLarge, UnicodeDecodeError)


class RequestContext(Protocol):
    """What the snapshot builder needs from the hosting web framework.

    Collection getters may raise ``CollectionAccessError`` when the request
    rejects its own content.
    """

    @property
    def http_method(self) -> Optional[str]: ...

    @property
    def status_code(self) -> Optional[int]: ...

    def server_variables(self) -> Any: ...

    def query_string(self) -> Any: ...

    def form(self) -> Any: ...

    def headers(self) -> Any: ...

    def cookies(self) -> Iterable[Tuple[str, str]]: ...


def _guard(name: str, getter: Callable[[], Any]) -> Any:
    try:
        return getter()
    except _ACCESS_ERRORS as exc:
        raise CollectionAccessError(str(exc), name) from exc


def server_variables_from_environ(environ: Mapping[str, Any]) -> MultiDict:
    """CGI-style server variables: the string entries of the WSGI environ plus ``URL``."""

    variables = MultiDict(
        (key, value) for key, value in environ.items() if isinstance(value, str)
    )
    if "URL" not in variables:
        variables["URL"] = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
    return variables


class WerkzeugRequestContext:
    """Adapts a werkzeug/Flask request (and optional response)."""

    def __init__(self, req: Request, response: Optional[Response] = None) -> None:
        self._request = req
        self._response = response

    @property
    def http_method(self) -> Optional[str]:
        return self._request.method

    @property
    def status_code(self) -> Optional[int]:
        if self._response is None:
            return None
        return self._response.status_code

    def server_variables(self) -> MultiDict:
        return _guard(
            "server_variables",
            lambda: server_variables_from_environ(self._request.environ),
        )

    def query_string(self) -> MultiDict:
        return _guard("query_string", lambda: self._request.args)

    def form(self) -> MultiDict:
        return _guard("form", lambda: self._request.form)

    def headers(self) -> Any:
        return _guard("headers", lambda: self._request.headers)

    def cookies(self) -> list[Tuple[str, str]]:
        return _guard("cookies", lambda: list(self._request.cookies.items(multi=True)))


def current_request_context() -> Optional[WerkzeugRequestContext]:
    """The active Flask request, with the response once one has been produced."""

    if not has_request_context():
        return None

    return WerkzeugRequestContext(
        request._get_current_object(),  # type: ignore[attr-defined]
        g.get(RESPONSE_ATTRIBUTE),
    )
