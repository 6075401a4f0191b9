"""
Unit tests for file operations.
"""

import pytest

from filecabinet.actions.file_operations import FileOperations
from filecabinet.utils.exceptions import ErrorCode, StateError, VaultIOError


@pytest.fixture
def file_ops():
    return FileOperations()


class TestAtomicWrite:
    """Tests for atomic_write."""

    def test_creates_file(self, file_ops, tmp_path):
        target = tmp_path / "out.bin"

        assert file_ops.atomic_write(target, b"payload") == target
        assert target.read_bytes() == b"payload"

    def test_replaces_existing(self, file_ops, tmp_path):
        target = tmp_path / "out.bin"
        target.write_bytes(b"old content that is longer")

        file_ops.atomic_write(target, b"new")

        assert target.read_bytes() == b"new"

    def test_no_temporary_files_left(self, file_ops, tmp_path):
        file_ops.atomic_write(tmp_path / "out.bin", b"payload")

        assert [p.name for p in tmp_path.iterdir()] == ["out.bin"]

    def test_missing_directory(self, file_ops, tmp_path):
        with pytest.raises(VaultIOError):
            file_ops.atomic_write(tmp_path / "nope" / "out.bin", b"payload")


class TestRenameFile:
    """Tests for rename_file."""

    def test_rename(self, file_ops, tmp_path):
        source = tmp_path / "scan.pdf"
        source.write_bytes(b"x")

        new_path = file_ops.rename_file(source, "2020-01-01_Bank_Statement_1.pdf")

        assert new_path == tmp_path / "2020-01-01_Bank_Statement_1.pdf"
        assert new_path.read_bytes() == b"x"
        assert not source.exists()

    def test_same_name_is_noop(self, file_ops, tmp_path):
        source = tmp_path / "scan.pdf"
        source.write_bytes(b"x")

        assert file_ops.rename_file(source, "scan.pdf") == source
        assert source.exists()

    def test_never_overwrites(self, file_ops, tmp_path):
        source = tmp_path / "scan.pdf"
        source.write_bytes(b"new")
        existing = tmp_path / "taken.pdf"
        existing.write_bytes(b"old")

        with pytest.raises(StateError) as exc_info:
            file_ops.rename_file(source, "taken.pdf")

        assert exc_info.value.error_code == ErrorCode.DESTINATION_EXISTS
        assert existing.read_bytes() == b"old"
        assert source.exists()

    def test_missing_source(self, file_ops, tmp_path):
        with pytest.raises(VaultIOError):
            file_ops.rename_file(tmp_path / "missing.pdf", "other.pdf")


class TestListing:
    """Tests for directory listings."""

    def test_regular_files_only(self, file_ops, tmp_path):
        (tmp_path / "b.pdf").write_bytes(b"")
        (tmp_path / "a.pdf").write_bytes(b"")
        (tmp_path / "sub").mkdir()

        assert file_ops.list_regular_files(tmp_path) == [tmp_path / "a.pdf", tmp_path / "b.pdf"]

    def test_unreadable_directory(self, file_ops, tmp_path):
        with pytest.raises(VaultIOError):
            file_ops.list_regular_files(tmp_path / "missing")

    def test_list_documents(self, file_ops, tmp_path):
        for name in ["a.pdf", "b.JPG", "c.png", "d.pdf.vault", "a.pdf.sha256", "notes.txt"]:
            (tmp_path / name).write_bytes(b"")

        names = [p.name for p in file_ops.list_documents(tmp_path, ".vault")]

        assert names == ["a.pdf", "b.JPG", "c.png", "d.pdf.vault"]

    def test_list_documents_missing_directory(self, file_ops, tmp_path):
        assert file_ops.list_documents(tmp_path / "missing", ".vault") == []
