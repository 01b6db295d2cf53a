"""Traversal of every method and route of a router tree."""

from __future__ import annotations

from typing import Any, Callable

from .handlers import ChainHandler

__all__ = ["walk"]


def walk(routes: Any, walk_fn: Callable[..., Any]) -> None:
    """Call ``walk_fn(method, route, handler, *middlewares)`` for every route.

    Exceptions raised by ``walk_fn`` stop the walk and propagate.
    """
    _walk(routes, walk_fn, "")


def _walk(routes: Any, walk_fn: Callable[..., Any], parent_route: str) -> None:
    for route in routes.routes():
        mws = routes.middlewares()
        if route.sub_routes is not None:
            _walk(route.sub_routes, walk_fn, parent_route + route.pattern)
            continue
        for method, handler in route.handlers.items():
            if method == "*":
                continue
            full_route = (parent_route + route.pattern).replace("/*/", "/")
            if isinstance(handler, ChainHandler):
                walk_fn(method, full_route, handler.endpoint, *handler.middlewares)
            else:
                walk_fn(method, full_route, handler, *mws)