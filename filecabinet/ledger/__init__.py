"""Checksum ledger for integrity verification."""

from .checksum import ChecksumLedger, ChecksumRecord, sidecar_path, is_sidecar

__all__ = [
    "ChecksumLedger",
    "ChecksumRecord",
    "sidecar_path",
    "is_sidecar",
]
