"""Writing, merging and removing kind entries in kubeconfig files on disk."""

from __future__ import annotations

import os

from kindconf.kubeconfig import (
    Config,
    KubeconfigError,
    check_kubeadm_expectations,
    encode,
    kind_cluster_key,
    read,
)
from kindconf.kubeconfig_paths import locked, path_for_merge, paths

__all__ = ["write", "merge", "write_merged", "remove", "remove_kind"]


def write(cfg: Config, config_path: str) -> None:
    """Write cfg to config_path, creating parent directories as needed."""
    encoded = encode(cfg)
    directory = os.path.dirname(config_path) or "."
    if not os.path.exists(directory):
        try:
            os.makedirs(directory, 0o755, exist_ok=True)
        except OSError as exc:
            raise KubeconfigError(f"failed to create directory for KUBECONFIG: {exc}") from exc
    try:
        fd = os.open(config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with open(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(encoded)
    except OSError as exc:
        raise KubeconfigError(f"failed to write KUBECONFIG: {exc}") from exc


def _upsert(entries: list, entry) -> None:
    replaced = False
    for index, current in enumerate(entries):
        if current.name == entry.name:
            entries[index] = entry
            replaced = True
    if not replaced:
        entries.append(entry)


def merge(existing: Config, kind: Config) -> None:
    """Merge the single-entry kind config into existing, in place."""
    check_kubeadm_expectations(kind)

    _upsert(existing.clusters, kind.clusters[0])
    _upsert(existing.users, kind.users[0])
    _upsert(existing.contexts, kind.contexts[0])

    existing.current_context = kind.current_context

    # some clients depend on apiVersion and kind being present
    if not existing.other_fields:
        existing.other_fields = kind.other_fields


def _read_locked(config_path: str, what: str) -> Config:
    try:
        return read(config_path)
    except (KubeconfigError, OSError) as exc:
        raise KubeconfigError(f"{what}: {exc}") from exc


def write_merged(kind_config: Config, explicit_config_path: str) -> None:
    """Merge kind_config into the kubeconfig kubectl would use and write it back."""
    config_path = path_for_merge(explicit_config_path)
    try:
        lock = locked(config_path)
        lock.__enter__()
    except OSError as exc:
        raise KubeconfigError(f"failed to lock config file: {exc}") from exc
    try:
        existing = _read_locked(config_path, "failed to get kubeconfig to merge")
        merge(existing, kind_config)
        write(existing, config_path)
    finally:
        lock.__exit__(None, None, None)


def remove(cfg: Config, kind_cluster_name: str) -> bool:
    """Drop the kind cluster's entries from cfg; return whether anything changed."""
    key = kind_cluster_key(kind_cluster_name)
    before = (len(cfg.clusters), len(cfg.users), len(cfg.contexts))

    cfg.clusters = [c for c in cfg.clusters if c.name != key]
    cfg.users = [u for u in cfg.users if u.name != key]
    cfg.contexts = [c for c in cfg.contexts if c.name != key]
    mutated = before != (len(cfg.clusters), len(cfg.users), len(cfg.contexts))

    if cfg.current_context == key:
        cfg.current_context = ""
        mutated = True
    return mutated


def remove_kind(kind_cluster_name: str, explicit_path: str) -> None:
    """Remove the kind cluster from every kubeconfig file kubectl would consider."""
    for config_path in paths(explicit_path):
        try:
            lock = locked(config_path)
            lock.__enter__()
        except OSError as exc:
            raise KubeconfigError(f"failed to lock config file: {exc}") from exc
        try:
            existing = _read_locked(
                config_path, "failed to read kubeconfig to remove KIND entry"
            )
            if remove(existing, kind_cluster_name):
                write(existing, config_path)
        finally:
            lock.__exit__(None, None, None)