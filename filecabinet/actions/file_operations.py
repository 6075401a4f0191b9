"""
File Operations
===============

Safe file operations for the vault: atomic replacement of file contents,
renames that never clobber an existing document, and directory listings.
"""

from pathlib import Path
from typing import List, Union
import os
import tempfile

from filecabinet.utils.logging_config import get_logger
from filecabinet.utils.exceptions import VaultIOError, StateError, ErrorCode

logger = get_logger(__name__)

DOCUMENT_EXTENSIONS = (".pdf", ".jpg", ".png")


def _fsync_directory(directory: Path) -> None:
    """Flush a directory entry so a completed rename survives a crash."""
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        # Not supported on every platform (e.g. Windows).
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


class FileOperations:
    """Safe file operations used by the vault pipeline."""

    def read_bytes(self, file_path: Path) -> bytes:
        """Read a whole file.

        Raises:
            VaultIOError: If the file cannot be opened or read.
        """
        try:
            with open(file_path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise VaultIOError(
                f"Cannot read file: {e.strerror or e}",
                file_path=str(file_path),
                cause=e
            ) from e

    def atomic_write(self, target: Path, data: bytes) -> Path:
        """Replace ``target`` with ``data`` in one step.

        The bytes go to a temporary file in the target's directory, which is
        flushed and then renamed over the target. Readers see either the old
        file or the complete new one.

        Args:
            target: Destination path.
            data: Complete new content.

        Returns:
            The target path.

        Raises:
            VaultIOError: If the temporary file cannot be written or renamed.
        """
        target = Path(target)
        directory = target.parent
        tmp_path = None

        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.",
                suffix=".tmp",
                dir=directory
            )
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
            tmp_path = None
        except OSError as e:
            raise VaultIOError(
                f"Cannot write file: {e.strerror or e}",
                file_path=str(target),
                cause=e
            ) from e
        finally:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except OSError:
                    logger.warning(f"Could not remove temporary file: {tmp_path}")

        _fsync_directory(directory)
        return target

    def rename_file(self, file_path: Path, new_name: str) -> Path:
        """Rename a file within its directory.

        Args:
            file_path: Path to file.
            new_name: New filename.

        Returns:
            New file path.

        Raises:
            StateError: If another file already has the new name.
            VaultIOError: If the rename fails.
        """
        file_path = Path(file_path)
        new_path = file_path.parent / new_name

        if new_path == file_path:
            return file_path

        if new_path.exists():
            raise StateError(
                f"Destination already exists: {new_name}",
                file_path=str(file_path),
                error_code=ErrorCode.DESTINATION_EXISTS
            )

        try:
            file_path.rename(new_path)
        except OSError as e:
            raise VaultIOError(
                f"Failed to rename file: {e.strerror or e}",
                file_path=str(file_path),
                cause=e
            ) from e

        logger.info(f"Renamed: {file_path.name} -> {new_path.name}")
        return new_path

    def list_regular_files(self, directory: Union[str, Path]) -> List[Path]:
        """List the regular files directly inside a directory, sorted by name.

        Raises:
            VaultIOError: If the directory cannot be read.
        """
        directory = Path(directory)
        try:
            return sorted(p for p in directory.iterdir() if p.is_file())
        except OSError as e:
            raise VaultIOError(
                f"Cannot list directory: {e.strerror or e}",
                file_path=str(directory),
                cause=e
            ) from e

    def list_documents(
        self,
        directory: Union[str, Path],
        encrypted_suffix: str
    ) -> List[Path]:
        """List scanned documents and encrypted containers in a directory.

        A missing directory yields an empty list.
        """
        directory = Path(directory)
        if not directory.is_dir():
            return []

        wanted = DOCUMENT_EXTENSIONS + (encrypted_suffix,)
        return [
            p for p in self.list_regular_files(directory)
            if p.name.lower().endswith(wanted)
        ]
