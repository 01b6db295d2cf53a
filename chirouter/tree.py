"""Radix tree holding routes and the per-request routing state."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from .patterns import (
    STUB,
    NodeType,
    all_methods,
    longest_prefix,
    method_name,
    pat_next_segment,
    pat_param_keys,
)

__all__ = ["RouteParams", "RouteContext", "Endpoint", "Route", "Node"]


@dataclass
class RouteParams:
    """Ordered URL parameter keys and their values."""

    keys: list[str] = field(default_factory=list)
    values: list[str] = field(default_factory=list)

    def add(self, key: str, value: str) -> None:
        """Append a key and its value."""
        self.keys.append(key)
        self.values.append(value)


@dataclass
class RouteContext:
    """Routing state carried through the handling of one request."""

    routes: Any = None
    route_path: str = ""
    route_method: str = ""
    url_params: RouteParams = field(default_factory=RouteParams)
    route_patterns: list[str] = field(default_factory=list)
    route_pattern: str = ""
    route_params: RouteParams = field(default_factory=RouteParams)
    method_not_allowed: bool = False

    def reset(self) -> None:
        """Clear all routing state so the context can be used again."""
        self.routes = None
        self.route_path = ""
        self.route_method = ""
        self.url_params = RouteParams()
        self.route_patterns = []
        self.route_pattern = ""
        self.route_params = RouteParams()
        self.method_not_allowed = False

    def url_param(self, key: str) -> str:
        """Return the most recently recorded value for ``key``, or ''."""
        pairs = zip(self.url_params.keys, self.url_params.values)
        for name, value in reversed(list(pairs)):
            if name == key:
                return value
        return ""


@dataclass
class Endpoint:
    """A handler registered for one method on a leaf node."""

    handler: Callable[..., Any] | None = None
    pattern: str = ""
    param_keys: list[str] = field(default_factory=list)


@dataclass
class Route:
    """Routing information for one pattern, keyed by method name."""

    sub_routes: Any
    handlers: dict[str, Callable[..., Any]]
    pattern: str


def _search_edge(nodes: list[Node], label: str) -> Node | None:
    """Binary-search a label-sorted child list."""
    lo, hi = 0, len(nodes) - 1
    idx = 0
    while lo <= hi:
        idx = lo + (hi - lo) // 2
        if label > nodes[idx].label:
            lo = idx + 1
        elif label < nodes[idx].label:
            hi = idx - 1
        else:
            break
    return nodes[idx] if nodes[idx].label == label else None


def _sort_nodes(nodes: list[Node]) -> None:
    """Order by label, then move the last '/'-tailed wild node to the end."""
    nodes.sort(key=lambda n: n.label)
    for idx in reversed(range(len(nodes))):
        node = nodes[idx]
        if node.typ > NodeType.STATIC and node.tail == "/":
            nodes[idx], nodes[-1] = nodes[-1], nodes[idx]
            return


@dataclass(eq=False)
class Node:
    """A node of the routing radix tree."""

    typ: NodeType = NodeType.STATIC
    prefix: str = ""
    label: str = ""
    tail: str = ""
    rex: re.Pattern[str] | None = None
    endpoints: dict[int, Endpoint] | None = field(default=None, repr=False)
    subroutes: Any = field(default=None, repr=False)
    children: list[list[Node]] = field(
        default_factory=lambda: [[] for _ in NodeType], repr=False
    )

    @property
    def is_leaf(self) -> bool:
        return self.endpoints is not None

    def insert_route(self, method: int, pattern: str, handler: Callable[..., Any]) -> Node:
        """Add ``handler`` for ``method`` at ``pattern`` and return its leaf node."""
        n = self
        search = pattern

        while True:
            if not search:
                n._set_endpoint(method, handler, pattern)
                return n

            label = search[0]
            seg_typ = NodeType.STATIC
            seg_tail = ""
            seg_rexpat = ""
            seg_end = 0
            if label in ("{", "*"):
                seg = pat_next_segment(search)
                seg_typ, seg_rexpat, seg_tail, seg_end = seg.typ, seg.rexpat, seg.tail, seg.end

            prefix = seg_rexpat if seg_typ == NodeType.REGEXP else ""

            parent = n
            found = n._get_edge(seg_typ, label, seg_tail, prefix)

            if found is None:
                child = Node(label=label, tail=seg_tail, prefix=search)
                leaf = parent._add_child(child, search)
                leaf._set_endpoint(method, handler, pattern)
                return leaf

            n = found
            if n.typ > NodeType.STATIC:
                search = search[seg_end:]
                continue

            common = longest_prefix(search, n.prefix)
            if common == len(n.prefix):
                search = search[common:]
                continue

            # Split the node at the shared prefix.
            child = Node(typ=NodeType.STATIC, prefix=search[:common])
            parent._replace_child(search[0], seg_tail, child)

            n.label = n.prefix[common]
            n.prefix = n.prefix[common:]
            child._add_child(n, n.prefix)

            search = search[common:]
            if not search:
                child._set_endpoint(method, handler, pattern)
                return child

            subchild = Node(typ=NodeType.STATIC, label=search[0], prefix=search)
            leaf = child._add_child(subchild, search)
            leaf._set_endpoint(method, handler, pattern)
            return leaf

    def _add_child(self, child: Node, prefix: str) -> Node:
        search = prefix
        leaf = child
        seg = pat_next_segment(search)

        if seg.typ != NodeType.STATIC:
            if seg.typ == NodeType.REGEXP:
                try:
                    rex = re.compile(seg.rexpat)
                except re.error as exc:
                    raise ValueError(
                        f"invalid regexp pattern '{seg.rexpat}' in route param"
                    ) from exc
                child.prefix = seg.rexpat
                child.rex = rex

            if seg.start == 0:
                child.typ = seg.typ
                start = len(search) if seg.typ == NodeType.CATCH_ALL else seg.end
                child.tail = seg.tail

                if start != len(search):
                    search = search[start:]
                    nn = Node(typ=NodeType.STATIC, label=search[0], prefix=search)
                    leaf = child._add_child(nn, search)

            elif seg.start > 0:
                child.typ = NodeType.STATIC
                child.prefix = search[: seg.start]
                child.rex = None

                search = search[seg.start :]
                nn = Node(typ=seg.typ, label=search[0], tail=seg.tail)
                leaf = child._add_child(nn, search)

        group = self.children[child.typ]
        group.append(child)
        _sort_nodes(group)
        return leaf

    def _replace_child(self, label: str, tail: str, child: Node) -> None:
        group = self.children[child.typ]
        for idx, existing in enumerate(group):
            if existing.label == label and existing.tail == tail:
                child.label = label
                child.tail = tail
                group[idx] = child
                return
        raise RuntimeError("replacing missing child")

    def _get_edge(self, typ: NodeType, label: str, tail: str, prefix: str) -> Node | None:
        for node in self.children[typ]:
            if node.label == label and node.tail == tail:
                if typ == NodeType.REGEXP and node.prefix != prefix:
                    continue
                return node
        return None

    def _endpoint(self, flag: int) -> Endpoint:
        assert self.endpoints is not None
        return self.endpoints.setdefault(flag, Endpoint())

    def _set_endpoint(self, method: int, handler: Callable[..., Any], pattern: str) -> None:
        param_keys = pat_param_keys(pattern)
        if self.endpoints is None:
            self.endpoints = {}

        if method & STUB == STUB:
            self._endpoint(STUB).handler = handler

        mask = all_methods()
        if method & mask == mask:
            flags = [mask] + [1 << bit for bit in range(mask.bit_length()) if mask >> bit & 1]
        else:
            flags = [method]
        for flag in flags:
            ep = self._endpoint(flag)
            ep.handler = handler
            ep.pattern = pattern
            ep.param_keys = list(param_keys)

    def find_route(
        self, rctx: RouteContext, method: int, path: str
    ) -> tuple[Node | None, dict[int, Endpoint] | None, Callable[..., Any] | None]:
        """Match ``path`` for ``method``; return the node, its endpoints and the handler."""
        rctx.route_pattern = ""
        rctx.route_params = RouteParams()

        found = self._find(rctx, method, path)
        if found is None or found.endpoints is None:
            return None, None, None

        rctx.url_params.keys.extend(rctx.route_params.keys)
        rctx.url_params.values.extend(rctx.route_params.values)

        endpoint = found.endpoints[method]
        if endpoint.pattern:
            rctx.route_pattern = endpoint.pattern
            rctx.route_patterns.append(endpoint.pattern)

        return found, found.endpoints, endpoint.handler

    def _leaf_match(self, rctx: RouteContext, method: int) -> bool:
        assert self.endpoints is not None
        endpoint = self.endpoints.get(method)
        if endpoint is not None and endpoint.handler is not None:
            rctx.route_params.keys.extend(endpoint.param_keys)
            return True
        rctx.method_not_allowed = True
        return False

    def _find(self, rctx: RouteContext, method: int, path: str) -> Node | None:
        search = path
        values = rctx.route_params.values

        for typ, group in zip(NodeType, self.children):
            if not group:
                continue

            xn: Node | None = None
            xsearch = search

            if typ == NodeType.STATIC:
                xn = _search_edge(group, search[:1])
                if xn is None or not xsearch.startswith(xn.prefix):
                    continue
                xsearch = xsearch[len(xn.prefix) :]

            elif typ in (NodeType.PARAM, NodeType.REGEXP):
                if not xsearch:
                    continue

                for xn in group:
                    end = xsearch.find(xn.tail)
                    if end < 0:
                        if xn.tail == "/":
                            end = len(xsearch)
                        else:
                            continue
                    elif typ == NodeType.REGEXP and end == 0:
                        continue

                    value = xsearch[:end]
                    if typ == NodeType.REGEXP and xn.rex is not None:
                        if not xn.rex.search(value):
                            continue
                    elif "/" in value:
                        continue

                    prevlen = len(values)
                    values.append(value)
                    xsearch = xsearch[end:]

                    if not xsearch and xn.is_leaf and xn._leaf_match(rctx, method):
                        return xn

                    fin = xn._find(rctx, method, xsearch)
                    if fin is not None:
                        return fin

                    del values[prevlen:]
                    xsearch = search

                values.append("")

            else:
                values.append(search)
                xn = group[0]
                xsearch = ""

            if xn is None:
                continue

            if not xsearch and xn.is_leaf and xn._leaf_match(rctx, method):
                return xn

            fin = xn._find(rctx, method, xsearch)
            if fin is not None:
                return fin

            if xn.typ > NodeType.STATIC and values:
                values.pop()

        return None

    def find_pattern(self, pattern: str) -> bool:
        """Tell whether a route with this exact pattern shape is in the tree."""
        for group in self.children:
            if not group:
                continue

            if group[0].typ == NodeType.CATCH_ALL:
                n: Node | None = group[0]
            else:
                n = _search_edge(group, pattern[:1])
            if n is None:
                continue

            if n.typ == NodeType.STATIC:
                idx = longest_prefix(pattern, n.prefix)
                if idx < len(n.prefix):
                    continue
            elif n.typ in (NodeType.PARAM, NodeType.REGEXP):
                idx = pattern.find("}") + 1
            else:
                idx = longest_prefix(pattern, "*")

            rest = pattern[idx:]
            if not rest:
                return True
            return n.find_pattern(rest)
        return False

    def _iter_nodes(self) -> Iterator[Node]:
        yield self
        for group in self.children:
            for child in group:
                yield from child._iter_nodes()

    def routes(self) -> list[Route]:
        """List the routes in the tree, one entry per distinct pattern."""
        found: list[Route] = []
        for node in self._iter_nodes():
            if node.endpoints is None and node.subroutes is None:
                continue
            endpoints = node.endpoints or {}
            stub = endpoints.get(STUB)
            if stub is not None and stub.handler is not None and node.subroutes is None:
                continue

            by_pattern: dict[str, dict[int, Endpoint]] = {}
            for flag, endpoint in endpoints.items():
                if endpoint.pattern:
                    by_pattern.setdefault(endpoint.pattern, {})[flag] = endpoint

            mask = all_methods()
            for pattern, group in by_pattern.items():
                handlers: dict[str, Callable[..., Any]] = {}
                every = group.get(mask)
                if every is not None and every.handler is not None:
                    handlers["*"] = every.handler
                for flag, endpoint in group.items():
                    if endpoint.handler is None:
                        continue
                    name = method_name(flag)
                    if name is None:
                        continue
                    handlers[name] = endpoint.handler
                found.append(Route(node.subroutes, handlers, pattern))
        return found