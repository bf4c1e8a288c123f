from __future__ import annotations

from pathlib import Path

import pytest

from droid_orchestrator.utils.fs import atomic_write, copy_file, ensure_directory
from droid_orchestrator.utils.hashing import path_fingerprint, sha256_text


def test_atomic_write_replaces_content_and_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "AndroidManifest.xml"
    target.write_text("old", encoding="utf-8")

    atomic_write(target, "new")
    atomic_write(target, b"bytes")

    assert target.read_bytes() == b"bytes"
    assert [path.name for path in tmp_path.iterdir()] == ["AndroidManifest.xml"]


def test_atomic_write_requires_existing_parent(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        atomic_write(tmp_path / "missing" / "file.txt", "x")


def test_copy_file_is_byte_exact(tmp_path: Path) -> None:
    source = tmp_path / "a.bin"
    source.write_bytes(b"\x00\xffdata")

    copy_file(source, tmp_path / "b.bin")

    assert (tmp_path / "b.bin").read_bytes() == b"\x00\xffdata"


def test_ensure_directory_is_idempotent(tmp_path: Path) -> None:
    first = ensure_directory(tmp_path / "a" / "b")
    second = ensure_directory(tmp_path / "a" / "b")

    assert first == second
    assert first.is_dir()


def test_sha256_text_known_vector() -> None:
    assert sha256_text("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_path_fingerprint_tracks_new_files_and_extras(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.clj").write_text("(ns a)", encoding="utf-8")

    base = path_fingerprint([tmp_path / "src"])
    same = path_fingerprint([tmp_path / "src"])
    with_extra = path_fingerprint([tmp_path / "src"], extra=["b.core"])
    (tmp_path / "src" / "b.clj").write_text("(ns b)", encoding="utf-8")
    grown = path_fingerprint([tmp_path / "src"])

    assert base == same
    assert len({base, with_extra, grown}) == 3


def test_path_fingerprint_includes_missing_paths(tmp_path: Path) -> None:
    assert path_fingerprint([tmp_path / "x"]) != path_fingerprint([tmp_path / "y"])
