"""Route pattern parsing and the registry of supported HTTP methods."""

from __future__ import annotations

import enum
from dataclasses import dataclass

__all__ = [
    "STUB",
    "NodeType",
    "Segment",
    "pat_next_segment",
    "pat_param_keys",
    "longest_prefix",
    "register_method",
    "method_flag",
    "method_name",
    "all_methods",
]

# Flag marking endpoints that only exist to forward to a mounted sub-router.
STUB = 1

_MAX_METHODS = 64

_METHODS: dict[str, int] = {
    name: 1 << bit
    for bit, name in enumerate(
        ["CONNECT", "DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT", "TRACE"],
        start=1,
    )
}

_all_mask = 0
for _flag in _METHODS.values():
    _all_mask |= _flag


class NodeType(enum.IntEnum):
    """Kinds of routing tree nodes, in the order they are searched."""

    STATIC = 0  # /home
    REGEXP = 1  # /{id:[0-9]+}
    PARAM = 2  # /{user}
    CATCH_ALL = 3  # /api/v1/*


@dataclass(frozen=True)
class Segment:
    """The next wildcard or parameter segment found in a pattern."""

    typ: NodeType
    key: str
    rexpat: str
    tail: str
    start: int
    end: int


def pat_next_segment(pattern: str) -> Segment:
    """Describe the next parameter, regexp or wildcard segment of ``pattern``."""
    ps = pattern.find("{")
    ws = pattern.find("*")

    if ps < 0 and ws < 0:
        return Segment(NodeType.STATIC, "", "", "", 0, len(pattern))

    if ps >= 0 and ws >= 0 and ws < ps:
        raise ValueError(
            "wildcard '*' must be the last pattern in a route, otherwise use a '{param}'"
        )

    tail = "/"

    if ps >= 0:
        typ = NodeType.PARAM
        depth = 0
        pe = ps
        for offset, char in enumerate(pattern[ps:]):
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    pe = ps + offset
                    break
        if pe == ps:
            raise ValueError("route param closing delimiter '}' is missing")

        key = pattern[ps + 1 : pe]
        pe += 1
        if pe < len(pattern):
            tail = pattern[pe]

        rexpat = ""
        if ":" in key:
            typ = NodeType.REGEXP
            key, _, rexpat = key.partition(":")

        if rexpat:
            if not rexpat.startswith("^"):
                rexpat = "^" + rexpat
            if not rexpat.endswith("$"):
                rexpat += "$"

        return Segment(typ, key, rexpat, tail, ps, pe)

    if ws < len(pattern) - 1:
        raise ValueError(
            "wildcard '*' must be the last value in a route. "
            "trim trailing text or use a '{param}' instead"
        )
    return Segment(NodeType.CATCH_ALL, "*", "", "", ws, len(pattern))


def pat_param_keys(pattern: str) -> list[str]:
    """Return the parameter keys of ``pattern`` in order, rejecting duplicates."""
    keys: list[str] = []
    rest = pattern
    while True:
        seg = pat_next_segment(rest)
        if seg.typ == NodeType.STATIC:
            return keys
        if seg.key in keys:
            raise ValueError(
                f"routing pattern '{pattern}' contains duplicate param key, '{seg.key}'"
            )
        keys.append(seg.key)
        rest = rest[seg.end :]


def longest_prefix(k1: str, k2: str) -> int:
    """Return the length of the prefix shared by two strings."""
    length = 0
    for a, b in zip(k1, k2):
        if a != b:
            break
        length += 1
    return length


def register_method(method: str) -> None:
    """Add a custom HTTP method to the set of routable methods."""
    global _all_mask
    if not method:
        return
    method = method.upper()
    if method in _METHODS:
        return
    count = len(_METHODS)
    if count > _MAX_METHODS - 2:
        raise ValueError(f"max number of methods reached ({_MAX_METHODS})")
    flag = 2 << count
    _METHODS[method] = flag
    _all_mask |= flag


def method_flag(method: str) -> int | None:
    """Return the flag of a registered method name, or None if it is unknown."""
    return _METHODS.get(method)


def method_name(flag: int) -> str | None:
    """Return the method name for a single method flag, or None."""
    for name, value in _METHODS.items():
        if value == flag:
            return name
    return None


def all_methods() -> int:
    """Return the mask of every registered method."""
    return _all_mask