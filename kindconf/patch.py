"""Patching Kubernetes YAML document streams with merge and JSON 6902 patches."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any

import yaml

from kindconf.jsonpatch import JsonPatch, JsonPatchError, merge_patch

__all__ = [
    "PatchError",
    "PatchJSON6902",
    "MatchInfo",
    "group_version_to_api_version",
    "parse_match_info",
    "split_yaml_documents",
    "kube_yaml",
]

_YAML_SEPARATOR = "\n---"


class PatchError(Exception):
    """Raised when a document or patch cannot be parsed or applied."""


@dataclass
class PatchJSON6902:
    """A JSON 6902 patch targeting resources of a group, version and kind."""

    group: str = ""
    version: str = ""
    kind: str = ""
    patch: str = ""


@dataclass(frozen=True)
class MatchInfo:
    """The v1 TypeMeta fields resources and patches are matched on."""

    kind: str = ""
    api_version: str = ""

    def matches(self, other: MatchInfo) -> bool:
        """Kind must match; api_version only if other sets one."""
        return self.kind == other.kind and (
            not other.api_version or self.api_version == other.api_version
        )


def group_version_to_api_version(group: str, version: str) -> str:
    """Join a group and version into an apiVersion string."""
    return version if not group else f"{group}/{version}"


def _jsonify(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonify(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonify(v) for v in value]
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value


def _load_yaml(raw: str) -> Any:
    try:
        return _jsonify(yaml.safe_load(raw))
    except yaml.YAMLError as exc:
        raise PatchError(f"failed to parse yaml: {exc}") from exc


def _dump_yaml(data: Any) -> str:
    text = yaml.safe_dump(
        data, default_flow_style=False, sort_keys=True, allow_unicode=True, width=2**31 - 1
    )
    if text.endswith("\n...\n"):
        text = text[: -len("...\n")]
    return text


def parse_match_info(raw: str) -> MatchInfo:
    """Read kind and apiVersion from a YAML document."""
    data = _load_yaml(raw)
    if data is None:
        return MatchInfo()
    if not isinstance(data, dict):
        raise PatchError(f"failed to parse type meta for {raw!r}")
    kind = data.get("kind") or ""
    api_version = data.get("apiVersion") or ""
    if not isinstance(kind, str) or not isinstance(api_version, str):
        raise PatchError(f"failed to parse type meta for {raw!r}")
    return MatchInfo(kind=kind, api_version=api_version)


def split_yaml_documents(stream: str) -> list[str]:
    """Split a YAML stream on lines starting with '---'."""
    documents: list[str] = []
    data = stream
    sep = len(_YAML_SEPARATOR)
    while data:
        index = data.find(_YAML_SEPARATOR)
        if index < 0:
            documents.append(data)
            break
        after = data[index + sep :]
        if not after:
            documents.append(data[:index])
            break
        newline = after.find("\n")
        if newline < 0:
            # an unterminated separator line at the end swallows the rest
            break
        documents.append(data[:index])
        data = after[newline + 1 :]
    return documents


@dataclass
class _Resource:
    data: Any
    match_info: MatchInfo


@dataclass
class _Patch:
    match_info: MatchInfo
    merge: Any = None
    json6902: JsonPatch | None = None


def _parse_resources(stream: str) -> list[_Resource]:
    return [
        _Resource(data=_load_yaml(raw), match_info=parse_match_info(raw))
        for raw in split_yaml_documents(stream)
    ]


def _parse_merge_patches(raw_patches: list[str]) -> list[_Patch]:
    split = [doc for raw in raw_patches for doc in split_yaml_documents(raw)]
    return [_Patch(match_info=parse_match_info(raw), merge=_load_yaml(raw)) for raw in split]


def _convert_json6902_patches(patches: list[PatchJSON6902]) -> list[_Patch]:
    converted = []
    for config_patch in patches:
        operations = _load_yaml(config_patch.patch)
        try:
            json_patch = JsonPatch(operations)
        except JsonPatchError as exc:
            raise PatchError(str(exc)) from exc
        converted.append(
            _Patch(
                match_info=MatchInfo(
                    kind=config_patch.kind,
                    api_version=group_version_to_api_version(
                        config_patch.group, config_patch.version
                    ),
                ),
                json6902=json_patch,
            )
        )
    return converted


def kube_yaml(
    to_patch: str,
    patches: list[str] | None = None,
    patches6902: list[PatchJSON6902] | None = None,
) -> str:
    """Apply matching merge patches then JSON 6902 patches to each document."""
    try:
        resources = _parse_resources(to_patch)
    except PatchError as exc:
        raise PatchError(f"failed to parse yaml to patch: {exc}") from exc
    try:
        merge_patches = _parse_merge_patches(list(patches or []))
    except PatchError as exc:
        raise PatchError(f"failed to parse patches: {exc}") from exc
    try:
        json_patches = _convert_json6902_patches(list(patches6902 or []))
    except PatchError as exc:
        raise PatchError(f"failed to parse JSON 6902 patches: {exc}") from exc

    rendered = []
    for resource in resources:
        for patch in merge_patches:
            if resource.match_info.matches(patch.match_info):
                resource.data = merge_patch(resource.data, patch.merge)
        for patch in json_patches:
            if resource.match_info.matches(patch.match_info):
                try:
                    resource.data = patch.json6902.apply(resource.data)
                except JsonPatchError as exc:
                    raise PatchError(f"failed to apply JSON 6902 patch: {exc}") from exc
        rendered.append(_dump_yaml(resource.data))
    return "---\n".join(rendered)