"""Filename metadata codec."""

from .metadata import (
    DocumentMetadata,
    PartialMetadata,
    decode,
    encode,
    canonical_name,
    is_canonical,
)

__all__ = [
    "DocumentMetadata",
    "PartialMetadata",
    "decode",
    "encode",
    "canonical_name",
    "is_canonical",
]
