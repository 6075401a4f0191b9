"""
filecabinet
===========

A personal document vault for scanned files.

Features:
- Password-based AES-256-GCM encryption at rest with Argon2id key derivation
- SHA-256 checksum sidecars for integrity checks
- Canonical ``date_institution_title_page`` filenames
- Concurrent batch runs that isolate per-file failures

All processing occurs locally.
"""

__version__ = "0.1.0"
