"""Requests, responses and middleware chaining for routed handlers.

A handler is any callable taking ``(response, request)``. A middleware is a
callable taking the next handler and returning a new handler.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable

from .tree import RouteContext

__all__ = [
    "ROUTE_CTX_KEY",
    "Request",
    "Response",
    "ChainHandler",
    "chain",
    "url_param",
    "route_context",
    "serve",
]

Handler = Callable[["Response", "Request"], Any]
Middleware = Callable[[Handler], Handler]


class _RouteContextKey:
    def __repr__(self) -> str:
        return "RouteContext"


# Key under which the routing context is stored in a request's context.
ROUTE_CTX_KEY = _RouteContextKey()


@dataclass(frozen=True)
class Request:
    """An incoming request: method, raw path, headers and context values."""

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    context: dict[Any, Any] = field(default_factory=dict)

    def with_value(self, key: Any, value: Any) -> Request:
        """Return a copy of the request whose context also maps ``key`` to ``value``."""
        return dataclasses.replace(self, context={**self.context, key: value})

    def value(self, key: Any, default: Any = None) -> Any:
        """Return the context value stored under ``key``."""
        return self.context.get(key, default)


@dataclass
class Response:
    """Collects the status, headers and body written by a handler."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytearray = field(default_factory=bytearray)
    _header_written: bool = field(default=False, init=False, repr=False)

    def write_header(self, status: int) -> None:
        """Set the status code; only the first call has any effect."""
        if self._header_written:
            return
        self.status = status
        self._header_written = True

    def write(self, data: bytes | str | None) -> int:
        """Append ``data`` to the body, sending a 200 status if none was set."""
        if not self._header_written:
            self.write_header(200)
        if data is None:
            return 0
        chunk = data.encode() if isinstance(data, str) else bytes(data)
        self.body.extend(chunk)
        return len(chunk)

    @property
    def text(self) -> str:
        """The body decoded as UTF-8."""
        return self.body.decode()


def _build(middlewares: list[Middleware], endpoint: Handler) -> Handler:
    if not middlewares:
        return endpoint
    handler = endpoint
    for middleware in reversed(middlewares):
        handler = middleware(handler)
    return handler


class ChainHandler:
    """An endpoint handler wrapped by a stack of middlewares.

    The first middleware is outermost. The chain is built once, on creation.
    """

    def __init__(self, middlewares: list[Middleware], endpoint: Handler) -> None:
        self.middlewares = list(middlewares)
        self.endpoint = endpoint
        self._chain = _build(self.middlewares, endpoint)

    def __call__(self, w: Response, r: Request) -> Any:
        return self._chain(w, r)

    def __repr__(self) -> str:
        return f"ChainHandler(middlewares={len(self.middlewares)}, endpoint={self.endpoint!r})"


def chain(*args: Any) -> ChainHandler:
    """Wrap the last argument, an endpoint handler, in the middlewares before it."""
    if not args:
        raise TypeError("chain() needs at least an endpoint handler")
    *middlewares, endpoint = args
    return ChainHandler(middlewares, endpoint)


def route_context(request: Request) -> RouteContext | None:
    """Return the routing context attached to ``request``, if any."""
    rctx = request.context.get(ROUTE_CTX_KEY)
    return rctx if isinstance(rctx, RouteContext) else None


def url_param(request: Request, key: str) -> str:
    """Return the URL parameter ``key`` of a routed request, or ''."""
    rctx = route_context(request)
    if rctx is None:
        return ""
    return rctx.url_param(key)


def serve(handler: Handler, method: str, path: str) -> Response:
    """Run ``handler`` on a fresh request and return the recorded response."""
    response = Response()
    handler(response, Request(method=method, path=path))
    return response


def _not_found(w: Response, r: Request) -> None:
    """Respond with a plain-text 404."""
    w.headers["Content-Type"] = "text/plain; charset=utf-8"
    w.headers["X-Content-Type-Options"] = "nosniff"
    w.write_header(404)
    w.write("404 page not found\n")


def _method_not_allowed(w: Response, r: Request) -> None:
    """Respond with a 405 and an empty body."""
    w.write_header(405)
    w.write(None)