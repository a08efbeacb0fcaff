"""Patching TOML documents with TOML merge patches and JSON 6902 patches."""

from __future__ import annotations

import datetime
import re
import tomllib
from decimal import Decimal
from typing import Any

from kindconf.jsonpatch import JsonPatchError, decode_patch, merge_patch
from kindconf.patch import PatchError

__all__ = ["toml_to_data", "dumps_toml", "patch_toml"]

_BARE_KEY = re.compile(r"[A-Za-z0-9_-]+")
_ESCAPES = {"\t": "\\t", "\n": "\\n", "\r": "\\r", '"': '\\"', "\\": "\\\\"}
_INDENT = "  "


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        # empty arrays load as null, so a merge patch with [] drops the key
        return [_plain(v) for v in value] if value else None
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    return value


def toml_to_data(text: str) -> dict[str, Any]:
    """Parse TOML into plain data suitable for patching."""
    try:
        loaded = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise PatchError(f"invalid TOML: {exc}") from exc
    return _plain(loaded)


def _quote(text: str) -> str:
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in text) + '"'


def _key(name: str) -> str:
    return name if _BARE_KEY.fullmatch(name) else _quote(name)


def _indent(key: tuple[str, ...]) -> str:
    return _INDENT * (len(key) - 1)


def _is_table_array(value: Any) -> bool:
    if not isinstance(value, list) or not value:
        return False
    tables = [isinstance(v, dict) for v in value]
    if any(tables) and not all(tables):
        raise PatchError("TOML arrays cannot mix tables and other values")
    return all(tables)


def _is_table_like(value: Any) -> bool:
    return isinstance(value, dict) or _is_table_array(value)


class _Writer:
    def __init__(self) -> None:
        self.parts: list[str] = []
        self.written = False

    def write(self, text: str) -> None:
        self.parts.append(text)
        self.written = True

    def newline(self) -> None:
        if self.written:
            self.write("\n")

    def table(self, key: tuple[str, ...], mapping: dict[str, Any]) -> None:
        if len(key) == 1:
            self.newline()
        if key:
            self.write(f"{_indent(key)}[{'.'.join(map(_key, key))}]")
            self.newline()
        self.body(key, mapping)

    def body(self, key: tuple[str, ...], mapping: dict[str, Any]) -> None:
        direct = sorted(k for k, v in mapping.items() if not _is_table_like(v))
        nested = sorted(k for k, v in mapping.items() if _is_table_like(v))
        for name in direct + nested:
            value = mapping[name]
            if value is not None:
                self.value(key + (str(name),), value)

    def value(self, key: tuple[str, ...], value: Any) -> None:
        if isinstance(value, dict):
            self.table(key, value)
        elif _is_table_array(value):
            for item in value:
                self.newline()
                self.write(f"{_indent(key)}[[{'.'.join(map(_key, key))}]]")
                self.newline()
                self.body(key, item)
        else:
            self.write(f"{_indent(key)}{_key(key[-1])} = {_element(value)}")
            self.newline()


def _float(value: float) -> str:
    if value != value or value in (float("inf"), float("-inf")):
        return {True: "nan"}.get(value != value, "inf" if value > 0 else "-inf")
    text = format(Decimal(repr(value)), "f")
    return text if "." in text else text + ".0"


def _element(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _float(value)
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, list):
        if any(v is None or isinstance(v, dict) for v in value):
            raise PatchError("unsupported value inside a TOML array")
        return "[" + ", ".join(_element(v) for v in value) + "]"
    raise PatchError(f"cannot encode {type(value).__name__} as TOML")


def dumps_toml(data: Any) -> str:
    """Encode a mapping as TOML with sorted keys and indented tables."""
    if not isinstance(data, dict):
        raise PatchError("TOML documents must be tables")
    writer = _Writer()
    writer.table((), data)
    return "".join(writer.parts)


def patch_toml(
    to_patch: str,
    patches: list[str] | None = None,
    patches6902: list[str] | None = None,
) -> str:
    """Apply TOML merge patches, then JSON 6902 patches, and return TOML."""
    data: Any = toml_to_data(to_patch)
    for patch in patches or []:
        data = merge_patch(data, toml_to_data(patch))
    for raw in patches6902 or []:
        try:
            data = decode_patch(raw).apply(data)
        except JsonPatchError as exc:
            raise PatchError(f"failed to apply JSON 6902 patch: {exc}") from exc
    return dumps_toml(data)