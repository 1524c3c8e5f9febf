"""Depth-first traversal of nested document values.

Documents are JSON-shaped: dicts, lists and scalars. ``walk`` calls
``visit(node, key, value, path, ancestors)`` for every value reachable from
the root, where ``node`` is the container holding ``value`` under ``key``,
``path`` is the dotted path from the root and ``ancestors`` is the chain of
containers from the root down to and including ``node``.

The ancestor list is a single stack shared across the whole walk; copy it
if you need to keep it.
"""
from typing import Any, Callable, Union

Container = Union[dict, list]
Visitor = Callable[[Container, Union[str, int], Any, str, list], None]


def is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _entries(node: Container):
    if isinstance(node, dict):
        return list(node.items())
    return list(enumerate(node))


def walk(document: Any, visit: Visitor) -> None:
    if not is_container(document):
        return
    ancestors: list[Container] = []

    def _walk(node: Container, prefix: str) -> None:
        ancestors.append(node)
        try:
            for key, value in _entries(node):
                path = f"{prefix}.{key}" if prefix else str(key)
                visit(node, key, value, path, ancestors)
                # The visitor may have replaced the value in place
                child = node[key]
                if is_container(child):
                    _walk(child, path)
        finally:
            ancestors.pop()

    _walk(document, "")
