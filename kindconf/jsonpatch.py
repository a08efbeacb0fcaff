"""JSON merge patches (RFC 7386) and JSON patches (RFC 6902) on plain Python data."""

from __future__ import annotations

import copy
import json
from typing import Any

__all__ = ["JsonPatchError", "JsonPatch", "decode_patch", "merge_patch"]

_OPS_NEEDING_VALUE = frozenset({"add", "replace", "test"})
_OPS_NEEDING_FROM = frozenset({"move", "copy"})
_KNOWN_OPS = frozenset({"add", "remove", "replace", "move", "copy", "test"})


class JsonPatchError(ValueError):
    """Raised when a patch is malformed or cannot be applied."""


def _parse_pointer(path: Any) -> list[str]:
    if not isinstance(path, str):
        raise JsonPatchError(f"path must be a string, got {path!r}")
    if path == "":
        return []
    if not path.startswith("/"):
        raise JsonPatchError(f"invalid JSON pointer {path!r}")
    return [part.replace("~1", "/").replace("~0", "~") for part in path[1:].split("/")]


def _list_index(token: str, length: int, allow_end: bool) -> int:
    if allow_end and token == "-":
        return length
    if not token.isdigit() or (len(token) > 1 and token[0] == "0"):
        raise JsonPatchError(f"invalid array index {token!r}")
    index = int(token)
    if index > length or (index == length and not allow_end):
        raise JsonPatchError(f"array index {index} out of bounds")
    return index


def _child(container: Any, token: str) -> Any:
    if isinstance(container, dict):
        if token not in container:
            raise JsonPatchError(f"missing key {token!r}")
        return container[token]
    if isinstance(container, list):
        return container[_list_index(token, len(container), False)]
    raise JsonPatchError(f"cannot descend into {type(container).__name__} at {token!r}")


def _resolve(document: Any, parts: list[str]) -> Any:
    node = document
    for token in parts:
        node = _child(node, token)
    return node


def _add(document: Any, parts: list[str], value: Any) -> Any:
    if not parts:
        return value
    parent = _resolve(document, parts[:-1])
    token = parts[-1]
    if isinstance(parent, dict):
        parent[token] = value
    elif isinstance(parent, list):
        parent.insert(_list_index(token, len(parent), True), value)
    else:
        raise JsonPatchError(f"cannot add to {type(parent).__name__}")
    return document


def _remove(document: Any, parts: list[str]) -> Any:
    if not parts:
        raise JsonPatchError("cannot remove the whole document")
    parent = _resolve(document, parts[:-1])
    token = parts[-1]
    if isinstance(parent, dict):
        if token not in parent:
            raise JsonPatchError(f"unable to remove nonexistent key {token!r}")
        del parent[token]
    elif isinstance(parent, list):
        del parent[_list_index(token, len(parent), False)]
    else:
        raise JsonPatchError(f"cannot remove from {type(parent).__name__}")
    return document


def _replace(document: Any, parts: list[str], value: Any) -> Any:
    if not parts:
        return value
    parent = _resolve(document, parts[:-1])
    token = parts[-1]
    if isinstance(parent, dict):
        if token not in parent:
            raise JsonPatchError(f"unable to replace nonexistent key {token!r}")
        parent[token] = value
    elif isinstance(parent, list):
        parent[_list_index(token, len(parent), False)] = value
    else:
        raise JsonPatchError(f"cannot replace in {type(parent).__name__}")
    return document


def _equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(_equal(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(map(_equal, left, right))
    return left == right


class JsonPatch:
    """A sequence of RFC 6902 operations."""

    def __init__(self, operations: Any) -> None:
        if not isinstance(operations, list):
            raise JsonPatchError("a JSON patch must be a list of operations")
        for operation in operations:
            if not isinstance(operation, dict):
                raise JsonPatchError(f"invalid operation {operation!r}")
        self.operations: list[dict[str, Any]] = operations

    def __repr__(self) -> str:
        return f"JsonPatch({self.operations!r})"

    def apply(self, document: Any) -> Any:
        """Return a patched copy of document; the input is left untouched."""
        result = copy.deepcopy(document)
        for operation in self.operations:
            result = self._apply_one(result, operation)
        return result

    @staticmethod
    def _apply_one(document: Any, operation: dict[str, Any]) -> Any:
        op = operation.get("op")
        if op not in _KNOWN_OPS:
            raise JsonPatchError(f"unexpected kind of operation {op!r}")
        parts = _parse_pointer(operation.get("path"))
        if op in _OPS_NEEDING_VALUE and "value" not in operation:
            raise JsonPatchError(f"{op} operation requires a value")
        if op in _OPS_NEEDING_FROM:
            source = _parse_pointer(operation.get("from"))

        if op == "add":
            return _add(document, parts, copy.deepcopy(operation["value"]))
        if op == "remove":
            return _remove(document, parts)
        if op == "replace":
            return _replace(document, parts, copy.deepcopy(operation["value"]))
        if op == "test":
            if not _equal(_resolve(document, parts), operation["value"]):
                raise JsonPatchError(f"test failed at {operation['path']!r}")
            return document
        if op == "move":
            if parts[: len(source)] == source and len(parts) > len(source):
                raise JsonPatchError("cannot move a value into one of its children")
            value = _resolve(document, source)
            document = _remove(document, source)
            return _add(document, parts, value)
        value = copy.deepcopy(_resolve(document, source))
        return _add(document, parts, value)


def decode_patch(raw: str | bytes) -> JsonPatch:
    """Parse a JSON document holding a list of RFC 6902 operations."""
    try:
        operations = json.loads(raw)
    except (ValueError, TypeError) as exc:
        raise JsonPatchError(f"invalid JSON patch: {exc}") from exc
    return JsonPatch(operations)


def merge_patch(document: Any, patch: Any) -> Any:
    """Return document with the RFC 7386 merge patch applied."""
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = copy.deepcopy(document) if isinstance(document, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = merge_patch(result.get(key), value)
    return result