"""Kubeconfig data model, decoding, encoding and kind-specific helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

__all__ = [
    "KubeconfigError",
    "Cluster",
    "NamedCluster",
    "NamedUser",
    "Context",
    "NamedContext",
    "Config",
    "decode",
    "encode",
    "kind_cluster_key",
    "check_kubeadm_expectations",
    "kind_from_raw_kubeadm",
    "read",
]


class KubeconfigError(Exception):
    """Raised when a kubeconfig cannot be decoded, encoded or validated."""


@dataclass
class Cluster:
    """How to communicate with a kubernetes cluster."""

    server: str = ""
    other_fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class NamedCluster:
    """A cluster entry with its nickname."""

    name: str = ""
    cluster: Cluster = field(default_factory=Cluster)


@dataclass
class NamedUser:
    """A user entry with its nickname; the user data is kept untouched."""

    name: str = ""
    user: dict[str, Any] = field(default_factory=dict)


@dataclass
class Context:
    """References to a cluster and a user, plus any other context fields."""

    cluster: str = ""
    user: str = ""
    other_fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class NamedContext:
    """A context entry with its nickname."""

    name: str = ""
    context: Context = field(default_factory=Context)


@dataclass
class Config:
    """A kubeconfig; fields not modelled here are kept in other_fields."""

    clusters: list[NamedCluster] = field(default_factory=list)
    users: list[NamedUser] = field(default_factory=list)
    contexts: list[NamedContext] = field(default_factory=list)
    current_context: str = ""
    other_fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the plain mapping that this config serialises to."""
        data: dict[str, Any] = dict(self.other_fields)
        if self.clusters:
            data["clusters"] = [_named_cluster_to_dict(c) for c in self.clusters]
        if self.users:
            data["users"] = [
                {"name": u.name, "user": dict(u.user)} for u in self.users
            ]
        if self.contexts:
            data["contexts"] = [_named_context_to_dict(c) for c in self.contexts]
        if self.current_context:
            data["current-context"] = self.current_context
        return data


def _named_cluster_to_dict(named: NamedCluster) -> dict[str, Any]:
    cluster: dict[str, Any] = dict(named.cluster.other_fields)
    if named.cluster.server:
        cluster["server"] = named.cluster.server
    return {"name": named.name, "cluster": cluster}


def _named_context_to_dict(named: NamedContext) -> dict[str, Any]:
    context: dict[str, Any] = dict(named.context.other_fields)
    context["cluster"] = named.context.cluster
    context["user"] = named.context.user
    return {"name": named.name, "context": context}


def _mapping(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise KubeconfigError(f"{what} must be a mapping, got {type(value).__name__}")
    return value


def _sequence(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise KubeconfigError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _string(value: Any, what: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise KubeconfigError(f"{what} must be a scalar")
    return value if isinstance(value, str) else str(value)


def _split(data: dict[str, Any], known: tuple[str, ...]) -> tuple[dict, dict]:
    fields = {key: data[key] for key in known if key in data}
    others = {key: value for key, value in data.items() if key not in known}
    return fields, others


def _cluster_from(value: Any) -> NamedCluster:
    data = _mapping(value, "cluster entry")
    inner, others = _split(_mapping(data.get("cluster"), "cluster"), ("server",))
    return NamedCluster(
        name=_string(data.get("name"), "cluster name"),
        cluster=Cluster(server=_string(inner.get("server"), "server"), other_fields=others),
    )


def _user_from(value: Any) -> NamedUser:
    data = _mapping(value, "user entry")
    return NamedUser(
        name=_string(data.get("name"), "user name"),
        user=dict(_mapping(data.get("user"), "user")),
    )


def _context_from(value: Any) -> NamedContext:
    data = _mapping(value, "context entry")
    inner, others = _split(_mapping(data.get("context"), "context"), ("cluster", "user"))
    return NamedContext(
        name=_string(data.get("name"), "context name"),
        context=Context(
            cluster=_string(inner.get("cluster"), "context cluster"),
            user=_string(inner.get("user"), "context user"),
            other_fields=others,
        ),
    )


def decode(raw: str | bytes) -> Config:
    """Parse kubeconfig YAML into a Config; empty input gives an empty Config."""
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise KubeconfigError(f"failed to parse KUBECONFIG: {exc}") from exc
    data = _mapping(data, "KUBECONFIG")
    fields, others = _split(data, ("clusters", "users", "contexts", "current-context"))
    return Config(
        clusters=[_cluster_from(c) for c in _sequence(fields.get("clusters"), "clusters")],
        users=[_user_from(u) for u in _sequence(fields.get("users"), "users")],
        contexts=[_context_from(c) for c in _sequence(fields.get("contexts"), "contexts")],
        current_context=_string(fields.get("current-context"), "current-context"),
        other_fields=others,
    )


def encode(cfg: Config) -> str:
    """Serialise cfg to normalised YAML; an empty config encodes to ''."""
    try:
        # a JSON round trip normalises values and leaves no shared objects,
        # so the YAML output carries no anchors or aliases
        normalised = json.loads(json.dumps(cfg.to_dict(), default=str))
    except (TypeError, ValueError) as exc:
        raise KubeconfigError(f"failed to encode KUBECONFIG: {exc}") from exc
    if not normalised:
        return ""
    return yaml.safe_dump(
        normalised,
        default_flow_style=False,
        sort_keys=True,
        allow_unicode=True,
        width=2**31 - 1,
    )


def kind_cluster_key(cluster_name: str) -> str:
    """Return the name that identifies a kind cluster in kubeconfig files."""
    return "kind-" + cluster_name


def check_kubeadm_expectations(cfg: Config) -> None:
    """Raise KubeconfigError unless cfg has exactly one cluster, user and context."""
    for what, entries in (
        ("cluster", cfg.clusters),
        ("user", cfg.users),
        ("context", cfg.contexts),
    ):
        if len(entries) != 1:
            raise KubeconfigError(
                f"kubeadm KUBECONFIG should have one {what}, but read {len(entries)}"
            )


def kind_from_raw_kubeadm(raw: str, cluster_name: str, server: str = "") -> Config:
    """Build a kind kubeconfig from a raw kubeadm one; server is ignored if empty."""
    cfg = decode(raw)
    check_kubeadm_expectations(cfg)

    key = kind_cluster_key(cluster_name)
    cfg.clusters[0].name = key
    cfg.users[0].name = key
    cfg.contexts[0].name = key
    cfg.contexts[0].context.user = key
    cfg.contexts[0].context.cluster = key
    cfg.current_context = key

    if server:
        cfg.clusters[0].cluster.server = server
    return cfg


def read(config_path: str | os.PathLike[str]) -> Config:
    """Load the kubeconfig at config_path, or an empty Config if it does not exist."""
    try:
        with open(config_path, "rb") as handle:
            raw = handle.read()
    except FileNotFoundError:
        return Config()
    return decode(raw)