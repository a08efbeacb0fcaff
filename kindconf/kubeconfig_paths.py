"""Locating kubeconfig files the way kubectl does, and locking them for edits."""

from __future__ import annotations

import os
import posixpath
import stat
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager, suppress

__all__ = [
    "paths",
    "path_for_merge",
    "file_exists",
    "home_dir",
    "lock_name",
    "lock_file",
    "unlock_file",
    "locked",
]

KUBECONFIG_ENV = "KUBECONFIG"

GetEnv = Callable[[str], str]


def _environ_get(name: str) -> str:
    return os.environ.get(name, "")


def _current_goos() -> str:
    return "windows" if os.name == "nt" else sys.platform


def _discard_empty_and_duplicates(candidates: list[str]) -> list[str]:
    return list(dict.fromkeys(p for p in candidates if p))


def paths(explicit_path: str, get_env: GetEnv | None = None) -> list[str]:
    """Return the kubeconfig paths to consider.

    An explicit path wins outright; otherwise the entries of $KUBECONFIG
    (empty and duplicate entries dropped) are used; otherwise
    $HOME/.kube/config.
    """
    get_env = get_env or _environ_get
    if explicit_path:
        return [explicit_path]

    env_value = get_env(KUBECONFIG_ENV) or ""
    listed = _discard_empty_and_duplicates(env_value.split(os.pathsep))
    if listed:
        return listed

    home = home_dir(_current_goos(), get_env)
    return [posixpath.normpath(posixpath.join(home, ".kube", "config"))]


def path_for_merge(explicit_path: str, get_env: GetEnv | None = None) -> str:
    """Return the file kubectl would merge into: the first existing one, else the last."""
    candidates = paths(explicit_path, get_env)
    if len(candidates) == 1:
        return candidates[0]
    for filename in candidates:
        if file_exists(filename):
            return filename
    return candidates[-1]


def file_exists(filename: str | os.PathLike[str]) -> bool:
    """Return True if filename exists and is not a directory."""
    try:
        info = os.stat(filename)
    except OSError:
        return False
    return not stat.S_ISDIR(info.st_mode)


def home_dir(goos: str | None = None, get_env: GetEnv | None = None) -> str:
    """Return the user's home directory.

    On Windows the first of HOME, HOMEDRIVE+HOMEPATH, USERPROFILE holding a
    .kube/config wins; then the first of HOME, USERPROFILE, HOMEDRIVE+HOMEPATH
    that is a writeable directory; then the first that exists; then the first
    that is set. Elsewhere this is simply $HOME.
    """
    get_env = get_env or _environ_get
    goos = goos if goos is not None else _current_goos()
    if goos != "windows":
        return get_env("HOME") or ""

    home = get_env("HOME") or ""
    home_drive = get_env("HOMEDRIVE") or ""
    home_path = get_env("HOMEPATH") or ""
    drive_path = home_drive + home_path if home_drive and home_path else ""
    user_profile = get_env("USERPROFILE") or ""

    for candidate in (home, drive_path, user_profile):
        if candidate and os.path.exists(os.path.join(candidate, ".kube", "config")):
            return candidate

    first_set = ""
    first_existing = ""
    for candidate in (home, user_profile, drive_path):
        if not candidate:
            continue
        first_set = first_set or candidate
        try:
            info = os.stat(candidate)
        except OSError:
            continue
        first_existing = first_existing or candidate
        if stat.S_ISDIR(info.st_mode) and stat.S_IMODE(info.st_mode) & stat.S_IWUSR:
            return candidate

    return first_existing or first_set


def lock_name(filename: str) -> str:
    """Return the name of the lock file guarding filename."""
    return filename + ".lock"


def lock_file(filename: str) -> None:
    """Create the lock file for filename, creating its directory if needed.

    Raises FileExistsError if the file is already locked.
    """
    directory = os.path.dirname(filename) or "."
    if not os.path.exists(directory):
        os.makedirs(directory, 0o755, exist_ok=True)
    fd = os.open(lock_name(filename), os.O_CREAT | os.O_EXCL, 0)
    os.close(fd)


def unlock_file(filename: str) -> None:
    """Remove the lock file for filename."""
    os.remove(lock_name(filename))


@contextmanager
def locked(filename: str) -> Iterator[None]:
    """Hold the lock on filename for the duration of the block."""
    lock_file(filename)
    try:
        yield
    finally:
        with suppress(OSError):
            unlock_file(filename)