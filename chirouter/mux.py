"""HTTP route multiplexer built on the routing radix tree."""

from __future__ import annotations

from typing import Any, Callable

from .handlers import (
    ROUTE_CTX_KEY,
    ChainHandler,
    Request,
    Response,
    _method_not_allowed,
    _not_found,
    route_context,
)
from .patterns import STUB, all_methods, method_flag
from .tree import Node, Route, RouteContext

__all__ = ["Mux"]

Handler = Callable[[Response, Request], Any]
Middleware = Callable[[Handler], Handler]


def _is_routes(obj: Any) -> bool:
    return all(callable(getattr(obj, name, None)) for name in ("routes", "middlewares", "match"))


class Mux:
    """Routes requests by method and path to handlers, through middlewares."""

    def __init__(self) -> None:
        self._handler: Handler | None = None
        self._tree = Node()
        self._method_not_allowed_handler: Handler | None = None
        self._parent: Mux | None = None
        self._not_found_handler: Handler | None = None
        self._middlewares: list[Middleware] = []
        self._inline = False

    def __call__(self, w: Response, r: Request) -> None:
        if self._handler is None:
            self.not_found_handler()(w, r)
            return
        if route_context(r) is not None:
            self._handler(w, r)
            return
        rctx = RouteContext()
        rctx.routes = self
        self._handler(w, r.with_value(ROUTE_CTX_KEY, rctx))

    def use(self, *args: Middleware) -> None:
        """Append middlewares; they must all be added before any route."""
        if self._handler is not None:
            raise RuntimeError("all middlewares must be defined before routes on a mux")
        self._middlewares.extend(args)

    def handle(self, pattern: str, handler: Handler) -> None:
        """Route ``pattern`` for every method to ``handler``."""
        self._handle(all_methods(), pattern, handler)

    def method(self, method: str, pattern: str, handler: Handler) -> None:
        """Route ``pattern`` for the named method to ``handler``."""
        flag = method_flag(method.upper())
        if flag is None:
            raise ValueError(f"'{method}' http method is not supported.")
        self._handle(flag, pattern, handler)

    def connect(self, pattern: str, handler: Handler) -> None:
        self.method("CONNECT", pattern, handler)

    def delete(self, pattern: str, handler: Handler) -> None:
        self.method("DELETE", pattern, handler)

    def get(self, pattern: str, handler: Handler) -> None:
        self.method("GET", pattern, handler)

    def head(self, pattern: str, handler: Handler) -> None:
        self.method("HEAD", pattern, handler)

    def options(self, pattern: str, handler: Handler) -> None:
        self.method("OPTIONS", pattern, handler)

    def patch(self, pattern: str, handler: Handler) -> None:
        self.method("PATCH", pattern, handler)

    def post(self, pattern: str, handler: Handler) -> None:
        self.method("POST", pattern, handler)

    def put(self, pattern: str, handler: Handler) -> None:
        self.method("PUT", pattern, handler)

    def trace(self, pattern: str, handler: Handler) -> None:
        self.method("TRACE", pattern, handler)

    def not_found(self, handler: Handler) -> None:
        """Set the handler for paths that match no route."""
        target, h = self, handler
        if self._inline and self._parent is not None:
            target = self._parent
            h = ChainHandler(self._middlewares, handler)
        target._not_found_handler = h
        for sub in target._sub_muxes():
            if sub._not_found_handler is None:
                sub.not_found(h)

    def method_not_allowed(self, handler: Handler) -> None:
        """Set the handler for routes that exist but not for the method."""
        target, h = self, handler
        if self._inline and self._parent is not None:
            target = self._parent
            h = ChainHandler(self._middlewares, handler)
        target._method_not_allowed_handler = h
        for sub in target._sub_muxes():
            if sub._method_not_allowed_handler is None:
                sub.method_not_allowed(h)

    def with_middlewares(self, *args: Middleware) -> Mux:
        """Return an inline mux that adds ``args`` to the routes it registers."""
        if not self._inline and self._handler is None:
            self._update_route_handler()
        mws = list(self._middlewares) if self._inline else []
        mws.extend(args)
        im = Mux()
        im._inline = True
        im._parent = self
        im._tree = self._tree
        im._middlewares = mws
        im._not_found_handler = self._not_found_handler
        im._method_not_allowed_handler = self._method_not_allowed_handler
        return im

    def group(self, fn: Callable[[Mux], Any] | None) -> Mux:
        """Create an inline mux with a fresh middleware stack and pass it to ``fn``."""
        im = self.with_middlewares()
        if fn is not None:
            fn(im)
        return im

    def route(self, pattern: str, fn: Callable[[Mux], Any] | None) -> Mux:
        """Build a new sub-router with ``fn`` and mount it at ``pattern``."""
        if fn is None:
            raise ValueError(f"attempting to Route() a nil subrouter on '{pattern}'")
        sub = Mux()
        fn(sub)
        self.mount(pattern, sub)
        return sub

    def mount(self, pattern: str, handler: Handler | None) -> None:
        """Attach a handler or sub-router below ``pattern``."""
        if handler is None:
            raise ValueError(f"attempting to Mount() a nil handler on '{pattern}'")
        if self._tree.find_pattern(pattern + "*") or self._tree.find_pattern(pattern + "/*"):
            raise ValueError(f"attempting to Mount() a handler on an existing path, '{pattern}'")

        if isinstance(handler, Mux):
            if handler._not_found_handler is None and self._not_found_handler is not None:
                handler.not_found(self._not_found_handler)
            if (
                handler._method_not_allowed_handler is None
                and self._method_not_allowed_handler is not None
            ):
                handler.method_not_allowed(self._method_not_allowed_handler)

        def mount_handler(w: Response, r: Request) -> None:
            rctx = route_context(r)
            assert rctx is not None
            rctx.route_path = self._next_route_path(rctx)
            keys, values = rctx.url_params.keys, rctx.url_params.values
            n = len(keys) - 1
            if n >= 0 and keys[n] == "*" and len(values) > n:
                values[n] = ""
            handler(w, r)

        if not pattern or pattern[-1] != "/":
            self._handle(all_methods() | STUB, pattern, mount_handler)
            self._handle(all_methods() | STUB, pattern + "/", mount_handler)
            pattern += "/"

        subroutes = handler if _is_routes(handler) else None
        method = all_methods() | (STUB if subroutes is not None else 0)
        node = self._handle(method, pattern + "*", mount_handler)
        if subroutes is not None:
            node.subroutes = subroutes

    def routes(self) -> list[Route]:
        """List the routes registered on this mux."""
        return self._tree.routes()

    def middlewares(self) -> list[Middleware]:
        """Return the middleware stack."""
        return self._middlewares

    def match(self, rctx: RouteContext, method: str, path: str) -> bool:
        """Tell whether a handler exists for ``method`` and ``path``."""
        flag = method_flag(method)
        if flag is None:
            return False
        node, _, handler = self._tree.find_route(rctx, flag, path)
        if node is not None and node.subroutes is not None:
            rctx.route_path = self._next_route_path(rctx)
            return bool(node.subroutes.match(rctx, method, rctx.route_path))
        return handler is not None

    def not_found_handler(self) -> Handler:
        """Return the handler used when no route matches."""
        return self._not_found_handler or _not_found

    def method_not_allowed_handler(self) -> Handler:
        """Return the handler used when the method does not match."""
        return self._method_not_allowed_handler or _method_not_allowed

    def _handle(self, method: int, pattern: str, handler: Handler) -> Node:
        if not pattern or pattern[0] != "/":
            raise ValueError(f"routing pattern must begin with '/' in '{pattern}'")
        if not self._inline and self._handler is None:
            self._update_route_handler()
        if self._inline:
            self._handler = self._route_http
            h: Handler = ChainHandler(self._middlewares, handler)
        else:
            h = handler
        return self._tree.insert_route(method, pattern, h)

    def _route_http(self, w: Response, r: Request) -> None:
        rctx = route_context(r)
        assert rctx is not None
        route_path = rctx.route_path or r.path.partition("?")[0] or "/"
        if not rctx.route_method:
            rctx.route_method = r.method
        flag = method_flag(rctx.route_method)
        if flag is None:
            self.method_not_allowed_handler()(w, r)
            return
        _, _, handler = self._tree.find_route(rctx, flag, route_path)
        if handler is not None:
            handler(w, r)
        elif rctx.method_not_allowed:
            self.method_not_allowed_handler()(w, r)
        else:
            self.not_found_handler()(w, r)

    @staticmethod
    def _next_route_path(rctx: RouteContext) -> str:
        keys, values = rctx.route_params.keys, rctx.route_params.values
        nx = len(keys) - 1
        if nx >= 0 and keys[nx] == "*" and len(values) > nx:
            return "/" + values[nx]
        return "/"

    def _sub_muxes(self) -> list[Mux]:
        return [r.sub_routes for r in self._tree.routes() if isinstance(r.sub_routes, Mux)]

    def _update_route_handler(self) -> None:
        self._handler = ChainHandler(self._middlewares, self._route_http)