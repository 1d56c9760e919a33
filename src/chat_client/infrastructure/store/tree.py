"""Path and value helpers shared by the store backends.

Values follow the realtime-tree rules: mappings nest, lists become
index-keyed mappings, ``None`` and empty mappings mean "absent".
"""
from __future__ import annotations

import copy
from typing import Any, Mapping

from chat_client.application.exceptions import ValidationError
from chat_client.application.ports.store import SERVER_TIMESTAMP

_FORBIDDEN = frozenset(".#$[]")


def split_path(path: str) -> list[str]:
    segments = [s for s in path.strip("/").split("/") if s]
    for segment in segments:
        if _FORBIDDEN & set(segment):
            raise ValidationError(f"Invalid path segment {segment!r} in {path!r}")
    return segments


def join_path(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def is_related(a: str, b: str) -> bool:
    """True when one path is equal to, above or below the other."""
    sa, sb = split_path(a), split_path(b)
    n = min(len(sa), len(sb))
    return sa[:n] == sb[:n]


def normalize(value: Any, now_ms: int) -> Any:
    """Resolve server placeholders and prune empties; returns None for an absent value."""
    if isinstance(value, Mapping):
        if dict(value) == dict(SERVER_TIMESTAMP):
            return now_ms
        out = {}
        for key, child in value.items():
            split_path(str(key))
            child = normalize(child, now_ms)
            if child is not None:
                out[str(key)] = child
        return out or None
    if isinstance(value, (list, tuple)):
        return normalize({str(i): v for i, v in enumerate(value)}, now_ms)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise ValidationError(f"Unsupported value type {type(value).__name__}")


def get_at(tree: Mapping[str, Any], segments: list[str]) -> Any:
    node: Any = tree
    for segment in segments:
        if not isinstance(node, Mapping) or segment not in node:
            return None
        node = node[segment]
    return copy.deepcopy(node)


def set_at(tree: dict[str, Any], segments: list[str], value: Any) -> None:
    """Write an already-normalized value in place, pruning emptied parents."""
    if not segments:
        tree.clear()
        if isinstance(value, dict):
            tree.update(copy.deepcopy(value))
        return

    trail: list[tuple[dict[str, Any], str]] = []
    node = tree
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            if value is None:
                return
            child = {}
            node[segment] = child
        trail.append((node, segment))
        node = child

    leaf = segments[-1]
    if value is None:
        node.pop(leaf, None)
        for parent, key in reversed(trail):
            if parent[key]:
                break
            del parent[key]
    else:
        node[leaf] = copy.deepcopy(value)


def flatten(value: Any, base: str = "") -> dict[str, Any]:
    """Leaf path -> scalar for a normalized value."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        return {base: value}
    leaves: dict[str, Any] = {}
    for key, child in value.items():
        leaves.update(flatten(child, join_path(base, key)))
    return leaves


def unflatten(leaves: Mapping[str, Any]) -> Any:
    """Inverse of :func:`flatten` for paths relative to the subtree root."""
    if "" in leaves:
        return leaves[""]
    tree: dict[str, Any] = {}
    for path, scalar in leaves.items():
        set_at(tree, split_path(path), scalar)
    return tree or None
