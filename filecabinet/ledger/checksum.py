"""
Checksum Ledger
===============

SHA-256 sidecar files for integrity checking.

Each subject ``report.pdf`` gets a sidecar ``report.pdf.sha256`` in the same
directory holding one line in ``sha256sum`` format::

    <64 lowercase hex chars><two spaces><basename>\\n
"""

from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Union
import hashlib
import re

from filecabinet.actions.file_operations import FileOperations
from filecabinet.config.settings import SIDECAR_SUFFIX
from filecabinet.utils.logging_config import get_logger
from filecabinet.utils.exceptions import (
    VaultIOError,
    FormatError,
    MissingReferenceError,
)

logger = get_logger(__name__)

SEPARATOR = "  "
DIGEST_PATTERN = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class ChecksumRecord:
    """One parsed sidecar line.

    Attributes:
        digest: Lowercase hex SHA-256 digest.
        filename: Name of the subject, relative to the sidecar's directory.
    """
    digest: str
    filename: str

    def to_line(self) -> str:
        return f"{self.digest}{SEPARATOR}{self.filename}\n"


def sidecar_path(path: Union[str, Path]) -> Path:
    """Return the sidecar path for a subject file."""
    path = Path(path)
    return path.with_name(path.name + SIDECAR_SUFFIX)


def is_sidecar(path: Union[str, Path]) -> bool:
    """Check whether a path names a checksum sidecar."""
    return Path(path).name.endswith(SIDECAR_SUFFIX)


class ChecksumLedger:
    """Generates and validates SHA-256 sidecar files.

    Files are streamed through the hash in fixed-size chunks so memory use
    does not grow with file size.
    """

    BUFFER_SIZE = 65536  # 64KB buffer

    def __init__(
        self,
        buffer_size: int = BUFFER_SIZE,
        file_ops: Optional[FileOperations] = None
    ):
        """Initialize the ledger.

        Args:
            buffer_size: Chunk size in bytes for streaming reads.
            file_ops: File operations helper used to write sidecars.

        Raises:
            ValueError: If ``buffer_size`` is not positive.
        """
        if buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")
        self.buffer_size = buffer_size
        self.file_ops = file_ops or FileOperations()

    def compute_digest(self, file_path: Path) -> str:
        """Compute the full SHA-256 digest of a file.

        Args:
            file_path: Path to the file.

        Returns:
            Lowercase hexadecimal digest.

        Raises:
            VaultIOError: If the file cannot be read.
        """
        hasher = hashlib.sha256()

        try:
            with open(file_path, 'rb') as f:
                while True:
                    data = f.read(self.buffer_size)
                    if not data:
                        break
                    hasher.update(data)
        except OSError as e:
            raise VaultIOError(
                f"Cannot read file: {e.strerror or e}",
                file_path=str(file_path),
                cause=e
            ) from e

        return hasher.hexdigest()

    def generate(self, file_path: Union[str, Path]) -> Path:
        """Write a sidecar for ``file_path``, replacing any existing one.

        Args:
            file_path: Subject file.

        Returns:
            Path of the written sidecar.

        Raises:
            VaultIOError: If the subject is unreadable or the sidecar cannot be written.
        """
        file_path = Path(file_path)
        record = ChecksumRecord(
            digest=self.compute_digest(file_path),
            filename=file_path.name
        )
        output_path = self.file_ops.atomic_write(
            sidecar_path(file_path),
            record.to_line().encode("utf-8")
        )

        logger.debug(f"Wrote checksum: {output_path.name}")
        return output_path

    def read_record(self, sidecar: Union[str, Path]) -> ChecksumRecord:
        """Parse a sidecar file.

        Raises:
            VaultIOError: If the sidecar cannot be read.
            FormatError: If the line is not ``<digest>  <filename>``.
        """
        sidecar = Path(sidecar)
        try:
            with open(sidecar, 'r', encoding='utf-8') as f:
                line = f.readline().rstrip("\r\n")
        except UnicodeDecodeError as e:
            raise FormatError(
                "Sidecar is not valid UTF-8",
                file_path=str(sidecar),
                cause=e
            ) from e
        except OSError as e:
            raise VaultIOError(
                f"Cannot read sidecar: {e.strerror or e}",
                file_path=str(sidecar),
                cause=e
            ) from e

        digest, sep, filename = line.partition(SEPARATOR)
        if not sep or not filename:
            raise FormatError(
                "Sidecar line has no two-space separator",
                file_path=str(sidecar)
            )
        if not DIGEST_PATTERN.match(digest):
            raise FormatError(
                "Sidecar digest is not 64 lowercase hex characters",
                file_path=str(sidecar)
            )
        if Path(filename).name != filename or filename in (".", ".."):
            raise FormatError(
                "Sidecar must name a file in its own directory",
                file_path=str(sidecar)
            )
        return ChecksumRecord(digest=digest, filename=filename)

    def validate(self, sidecar: Union[str, Path]) -> bool:
        """Check that the file a sidecar names still matches its digest.

        Args:
            sidecar: Path to the ``.sha256`` file.

        Returns:
            True if the digests match, False if the file changed.

        Raises:
            FormatError: If the sidecar is malformed.
            MissingReferenceError: If the referenced file does not exist.
            VaultIOError: If either file cannot be read.
        """
        sidecar = Path(sidecar)
        record = self.read_record(sidecar)
        subject = sidecar.parent / record.filename

        if not subject.is_file():
            raise MissingReferenceError(
                f"Referenced file does not exist: {record.filename}",
                file_path=str(subject)
            )

        matches = self.compute_digest(subject) == record.digest
        if not matches:
            logger.warning(f"Checksum mismatch: {subject.name}")
        return matches
