"""
Batch Operations
================

The operation a caller asks for, as a single tagged value. Exactly one
kind is chosen per run; the paths it carries mean different things per kind
(one directory for verify, explicit files otherwise, none for serve).
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Tuple


class OperationKind(Enum):
    """Kinds of operation an invocation can select."""

    VERIFY = "verify"
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"
    NORMALIZE = "normalize"
    SERVE = "serve"

    @property
    def requires_password(self) -> bool:
        return self not in (OperationKind.VERIFY, OperationKind.NORMALIZE)

    @property
    def is_batch(self) -> bool:
        return self is not OperationKind.SERVE


@dataclass(frozen=True)
class Operation:
    """A selected operation and its targets.

    Attributes:
        kind: What to do.
        paths: Targets in caller order.
    """
    kind: OperationKind
    paths: Tuple[Path, ...] = ()

    @classmethod
    def verify(cls, directory) -> "Operation":
        return cls(OperationKind.VERIFY, (Path(directory),))

    @classmethod
    def encrypt(cls, paths: Iterable) -> "Operation":
        return cls(OperationKind.ENCRYPT, tuple(Path(p) for p in paths))

    @classmethod
    def decrypt(cls, paths: Iterable) -> "Operation":
        return cls(OperationKind.DECRYPT, tuple(Path(p) for p in paths))

    @classmethod
    def normalize(cls, paths: Iterable) -> "Operation":
        return cls(OperationKind.NORMALIZE, tuple(Path(p) for p in paths))

    @classmethod
    def serve(cls) -> "Operation":
        return cls(OperationKind.SERVE)

    @property
    def directory(self) -> Path:
        """The directory a verify operation scans."""
        if self.kind is not OperationKind.VERIFY:
            raise AttributeError(f"{self.kind.value} does not operate on a directory")
        return self.paths[0]


@dataclass(frozen=True)
class BatchJob:
    """An operation plus the password it needs, if any.

    Attributes:
        operation: Selected operation.
        password: Vault password; required for encrypt and decrypt.
    """
    operation: Operation
    password: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if not self.operation.kind.is_batch:
            raise ValueError(f"{self.operation.kind.value} is not a batch operation")
        if self.operation.kind.requires_password and not self.password:
            raise ValueError(f"{self.operation.kind.value} requires a password")
