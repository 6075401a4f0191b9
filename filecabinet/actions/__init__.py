"""Actions module for file operations."""

from .file_operations import FileOperations, DOCUMENT_EXTENSIONS

__all__ = [
    "FileOperations",
    "DOCUMENT_EXTENSIONS",
]
