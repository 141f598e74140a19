"""Tests for the filesystem storage provider."""

import pytest

from hylian.services.object_storage import (
    LocalStorageService,
    ObjectNotFoundError,
    ObjectStorageError,
)
from tests.conftest import PDF_BYTES


class TestLocalStorage:
    def test_upload_download_delete(self, tmp_path):
        storage = LocalStorageService(tmp_path)
        storage.upload("documents/abc.pdf", PDF_BYTES, "application/pdf")
        assert (tmp_path / "documents" / "abc.pdf").read_bytes() == PDF_BYTES

        stored = storage.download("documents/abc.pdf")
        assert stored.data == PDF_BYTES
        assert stored.content_type is None

        storage.delete("documents/abc.pdf")
        assert not (tmp_path / "documents" / "abc.pdf").exists()
        storage.delete("documents/abc.pdf")

    def test_download_missing_key(self, tmp_path):
        storage = LocalStorageService(tmp_path)
        with pytest.raises(ObjectNotFoundError):
            storage.download("documents/missing.pdf")

    @pytest.mark.parametrize("key", ["../escape.txt", "documents/../../escape.txt"])
    def test_rejects_keys_outside_root(self, tmp_path, key):
        storage = LocalStorageService(tmp_path / "root")
        with pytest.raises(ObjectStorageError, match="Unsafe"):
            storage.upload(key, b"x", None)
        with pytest.raises(ObjectStorageError, match="Unsafe"):
            storage.download(key)
        assert not (tmp_path / "escape.txt").exists()

    def test_filesystem_errors_are_wrapped(self, tmp_path):
        root = tmp_path / "blocked"
        root.write_bytes(b"not a directory")
        storage = LocalStorageService(root)
        with pytest.raises(ObjectStorageError, match="upload"):
            storage.upload("documents/abc.pdf", PDF_BYTES, None)
