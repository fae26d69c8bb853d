from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import AppException, ErrorCode
from core.storage.local_provider import LocalAttachmentStore, sanitize_filename
from core.storage.types import DeleteOutcome


def _store(tmp_path: Path) -> LocalAttachmentStore:
    return LocalAttachmentStore(root_dir=str(tmp_path / "files"))


def test_store_writes_under_root_and_returns_canonical_uri(tmp_path: Path):
    store = _store(tmp_path)

    stored = store.store(b"\x89PNG", "cat.png")

    assert stored.path == "cat.png"
    assert stored.canonical_uri == "/files/cat.png"
    assert stored.size == 4
    assert (tmp_path / "files" / "cat.png").read_bytes() == b"\x89PNG"


def test_store_suffixes_instead_of_overwriting(tmp_path: Path):
    store = _store(tmp_path)

    first = store.store(b"one", "cat.png")
    second = store.store(b"two", "cat.png")
    third = store.store(b"three", "cat.png")

    assert [first.path, second.path, third.path] == ["cat.png", "cat-1.png", "cat-2.png"]
    assert (tmp_path / "files" / "cat.png").read_bytes() == b"one"
    assert (tmp_path / "files" / "cat-1.png").read_bytes() == b"two"


@pytest.mark.parametrize(
    "filename",
    ["../../etc/passwd", "/etc/passwd", "..", "", "nested/cat.png", "..\\boot.ini", "C:\\evil.txt", "a\x00b"],
)
def test_store_rejects_unsafe_names_without_touching_disk(tmp_path: Path, filename: str):
    store = _store(tmp_path)

    with pytest.raises(AppException) as exc_info:
        store.store(b"payload", filename)

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail["code"] == ErrorCode.VALIDATION_FAILED.value  # type: ignore
    assert sorted(tmp_path.rglob("*")) == [tmp_path / "files"]


def test_sanitize_filename_rejects_traversal_before_open(monkeypatch: pytest.MonkeyPatch):
    def _no_open(*args, **kwargs):  # pragma: no cover
        raise AssertionError("filesystem must not be touched")

    monkeypatch.setattr("builtins.open", _no_open)

    with pytest.raises(AppException):
        sanitize_filename("../../etc/passwd")


def test_delete_is_benign_when_file_is_already_gone(tmp_path: Path):
    store = _store(tmp_path)
    stored = store.store(b"bytes", "doc.pdf")

    assert store.delete(stored.path) == DeleteOutcome.DELETED
    assert store.delete(stored.path) == DeleteOutcome.NOT_FOUND
    assert not (tmp_path / "files" / "doc.pdf").exists()


def test_delete_reports_unavailable_on_os_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    store = _store(tmp_path)
    store.store(b"bytes", "locked.png")

    def _unlink(self, missing_ok=False):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(Path, "unlink", _unlink)

    assert store.delete("locked.png") == DeleteOutcome.UNAVAILABLE


def test_store_with_replace_overwrites_in_place(tmp_path: Path):
    store = _store(tmp_path)
    store.store(b"old", "owned.png")

    stored = store.store(b"new", "owned.png", replace=True)

    assert stored.path == "owned.png"
    assert stored.canonical_uri == "/files/owned.png"
    assert [p.name for p in (tmp_path / "files").iterdir()] == ["owned.png"]
    assert (tmp_path / "files" / "owned.png").read_bytes() == b"new"


def test_store_with_replace_still_rejects_unsafe_names(tmp_path: Path):
    store = _store(tmp_path)

    with pytest.raises(AppException):
        store.store(b"payload", "../escape.png", replace=True)

    assert list((tmp_path / "files").iterdir()) == []
