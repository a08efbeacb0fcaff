import os
import posixpath

import pytest

from kindconf.kubeconfig_paths import (
    file_exists,
    home_dir,
    lock_file,
    lock_name,
    locked,
    path_for_merge,
    paths,
    unlock_file,
)


def _env(mapping):
    return lambda name: mapping.get(name, "")


DUPLICATED = os.pathsep.join(["/foo", "/bar", "", "/foo", "/bar"])


def test_paths_explicit():
    result = paths("foo", _env({"KUBECONFIG": DUPLICATED, "HOME": "/home"}))
    assert result == ["foo"]


def test_paths_kubeconfig_list():
    result = paths("", _env({"KUBECONFIG": DUPLICATED, "HOME": "/home"}))
    assert result == ["/foo", "/bar"]


def test_paths_home_kube_config():
    result = paths("", _env({"HOME": "/home"}))
    assert result == ["/home/.kube/config"]


@pytest.fixture
def fake_kubeconfigs(tmp_path):
    (tmp_path / "fake-home").mkdir()
    created = []
    for name in ("foo", "bar", "baz"):
        p = tmp_path / name
        p.touch()
        created.append(str(p))
    return created


def test_path_for_merge_explicit(fake_kubeconfigs):
    result = path_for_merge("foo", _env({"KUBECONFIG": DUPLICATED, "HOME": "/home"}))
    assert result == "foo"


def test_path_for_merge_kubeconfig_list(fake_kubeconfigs):
    env = _env({"KUBECONFIG": os.pathsep.join(fake_kubeconfigs)})
    assert path_for_merge("", env) == fake_kubeconfigs[0]


def test_path_for_merge_picks_first_existing(fake_kubeconfigs):
    env = _env({"KUBECONFIG": os.pathsep.join(["/bogus/path", fake_kubeconfigs[1]])})
    assert path_for_merge("", env) == fake_kubeconfigs[1]


def test_path_for_merge_last_if_none_exist():
    env = _env({"KUBECONFIG": os.pathsep.join(["/bogus/path", "/bogus/path/two"])})
    assert path_for_merge("", env) == "/bogus/path/two"


def test_file_exists(tmp_path):
    f = tmp_path / "file"
    f.touch()
    assert file_exists(f) is True
    assert file_exists(tmp_path) is False
    assert file_exists(tmp_path / "missing") is False


def test_home_dir_windows_home_with_kube_config(tmp_path):
    fake_home = posixpath.join(str(tmp_path), "fake-home")
    kube_config = posixpath.join(fake_home, ".kube", "config")
    os.makedirs(posixpath.dirname(kube_config))
    open(kube_config, "w").close()
    result = home_dir(
        "windows",
        _env({"HOME": fake_home, "HOMEDRIVE": "ZZ:", "HOMEPATH": r"ZZ:\Users\fake-user-zzz"}),
    )
    assert result == fake_home


def test_home_dir_windows_home_without_kube_config(tmp_path):
    fake_home = str(tmp_path)
    result = home_dir(
        "windows",
        _env(
            {
                "HOME": fake_home,
                "HOMEDRIVE": os.path.splitdrive(fake_home)[0],
                "HOMEPATH": posixpath.join("Users", "fake-user-zzz"),
            }
        ),
    )
    assert result == fake_home


def test_home_dir_windows_none_exist():
    result = home_dir(
        "windows",
        _env(
            {
                "HOME": "Z:/faaaaake",
                "HOMEDRIVE": "Z:/",
                "HOMEPATH": posixpath.join("Users", "fake-user-zzz"),
            }
        ),
    )
    assert result == "Z:/faaaaake"


def test_home_dir_windows_no_path():
    assert home_dir("windows", lambda name: "") == ""


def test_home_dir_non_windows_uses_home():
    assert home_dir("linux", _env({"HOME": "/home/someone", "USERPROFILE": "/x"})) == "/home/someone"


def test_lock_name():
    assert lock_name("/a/config") == "/a/config.lock"


def test_lock_file_creates_directory_and_is_exclusive(tmp_path):
    target = str(tmp_path / "nested" / "dir" / "config")
    lock_file(target)
    assert os.path.exists(lock_name(target))
    with pytest.raises(FileExistsError):
        lock_file(target)
    unlock_file(target)
    assert not os.path.exists(lock_name(target))


def test_locked_releases_on_error(tmp_path):
    target = str(tmp_path / "config")
    seen_inside = []
    with pytest.raises(RuntimeError, match="boom"):
        with locked(target):
            seen_inside.append(os.path.exists(lock_name(target)))
            raise RuntimeError("boom")
    assert seen_inside == [True]
    assert os.path.exists(lock_name(target)) is False
    # the lock can be taken again once released
    lock_file(target)
    assert os.path.exists(lock_name(target)) is True
    unlock_file(target)