"""Batch operations over many vault files."""

from .operations import Operation, OperationKind, BatchJob
from .engine import (
    BatchEngine,
    BatchReport,
    BatchResult,
    Outcome,
    Partition,
)
from .reporting import BatchReporter, ConsoleReporter, LoggingReporter

__all__ = [
    "Operation",
    "OperationKind",
    "BatchJob",
    "BatchEngine",
    "BatchReport",
    "BatchResult",
    "Outcome",
    "Partition",
    "BatchReporter",
    "ConsoleReporter",
    "LoggingReporter",
]
