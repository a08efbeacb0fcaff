import io
import logging
import os
import stat
import tarfile

import pytest

from kindconf.logs import untar


def _build(entries):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as archive:
        for info, payload in entries:
            archive.addfile(info, io.BytesIO(payload) if payload is not None else None)
    return buffer.getvalue()


def _dir(name):
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    return info, None


def _file(name, payload, mode=0o644):
    info = tarfile.TarInfo(name)
    info.size = len(payload)
    info.mode = mode
    return info, payload


def test_untar_writes_files_and_directories(tmp_path):
    data = _build(
        [
            _dir("./"),
            _dir("./kubelet"),
            _file("./kubelet/log.txt", b"kubelet started\n"),
            _file("./journal.log", b"boot\n"),
        ]
    )
    untar(io.BytesIO(data), tmp_path)
    assert (tmp_path / "kubelet" / "log.txt").read_bytes() == b"kubelet started\n"
    assert (tmp_path / "journal.log").read_bytes() == b"boot\n"
    assert (tmp_path / "kubelet").is_dir()


def test_untar_uses_entry_mode(tmp_path):
    data = _build([_file("secret.log", b"x", mode=0o600)])
    untar(io.BytesIO(data), tmp_path)
    assert stat.S_IMODE((tmp_path / "secret.log").stat().st_mode) == 0o600


def test_existing_directory_is_kept(tmp_path):
    (tmp_path / "pods").mkdir()
    (tmp_path / "pods" / "keep.txt").write_text("kept")
    data = _build([_dir("pods"), _file("pods/new.txt", b"new")])
    untar(io.BytesIO(data), tmp_path)
    assert (tmp_path / "pods" / "keep.txt").read_text() == "kept"
    assert (tmp_path / "pods" / "new.txt").read_bytes() == b"new"


def test_unsupported_entry_is_warned_and_skipped(tmp_path, caplog):
    link = tarfile.TarInfo("link")
    link.type = tarfile.SYMTYPE
    link.linkname = "target"
    data = _build([(link, None), _file("plain.txt", b"ok")])
    logger = logging.getLogger("kindconf-test-logs")
    with caplog.at_level(logging.WARNING, logger="kindconf-test-logs"):
        untar(io.BytesIO(data), tmp_path, logger)
    assert not os.path.lexists(tmp_path / "link")
    assert (tmp_path / "plain.txt").read_bytes() == b"ok"
    assert any("link" in record.getMessage() for record in caplog.records)


def test_stream_is_drained(tmp_path):
    data = _build([_file("a.txt", b"abc")]) + b"\0" * 4096
    stream = io.BytesIO(data)
    untar(stream, tmp_path)
    assert stream.tell() == len(data)
    assert (tmp_path / "a.txt").read_bytes() == b"abc"


def test_corrupt_archive_raises(tmp_path):
    with pytest.raises(tarfile.TarError):
        untar(io.BytesIO(b"not a tar archive" * 64), tmp_path)