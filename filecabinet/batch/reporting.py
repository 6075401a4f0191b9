"""
Batch Reporting
===============

Progress sinks for batch runs. The engine's aggregator is the only caller,
but the console sink still takes a lock per line so it can be shared.
"""

import sys
import threading
from typing import TYPE_CHECKING, List, Optional, TextIO
from pathlib import Path

from filecabinet.batch.operations import Operation, OperationKind
from filecabinet.utils.logging_config import get_logger

if TYPE_CHECKING:
    from filecabinet.batch.engine import BatchReport, BatchResult

logger = get_logger(__name__)


class BatchReporter:
    """Receives batch events. The base class ignores them all."""

    def started(self, operation: Operation, total: int, excluded: List[Path]) -> None:
        pass

    def target_done(self, completed: int, total: int, result: "BatchResult") -> None:
        pass

    def missing_checksums(self, paths: List[Path]) -> None:
        pass

    def finished(self, report: "BatchReport") -> None:
        pass


class ConsoleReporter(BatchReporter):
    """Writes human-readable progress and a final tally to a stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        """Initialize the reporter.

        Args:
            stream: Output stream. Defaults to stdout at write time.
        """
        self._stream = stream
        self._lock = threading.Lock()

    def _write(self, line: str) -> None:
        stream = self._stream or sys.stdout
        with self._lock:
            stream.write(line + "\n")
            stream.flush()

    def started(self, operation, total, excluded):
        self._write(f"{operation.kind.value}: {total} target(s), {len(excluded)} excluded")

    def target_done(self, completed, total, result):
        if result.ok:
            line = f"[{completed}/{total}] OK   {result.path}"
        else:
            line = f"[{completed}/{total}] FAIL {result.path}: {result.reason}"
        self._write(line)

    def missing_checksums(self, paths):
        for path in paths:
            self._write(f"Missing checksum: {path}")

    def finished(self, report):
        self._write(
            f"{report.operation.kind.value} complete: "
            f"{report.succeeded} succeeded, {report.failed} failed"
        )
        if report.operation.kind is OperationKind.VERIFY:
            self._write(f"Missing checksum: {len(report.missing_checksum)} file(s)")
        self._write(f"Excluded: {[str(p) for p in report.excluded]}")


class LoggingReporter(BatchReporter):
    """Sends batch events to the ``filecabinet`` logger."""

    def started(self, operation, total, excluded):
        logger.info(f"Starting {operation.kind.value} on {total} target(s)")
        for path in excluded:
            logger.debug(f"Excluded: {path}")

    def target_done(self, completed, total, result):
        extra = {"file_path": str(result.path), "outcome": result.outcome.value}
        if result.ok:
            logger.debug(f"[{completed}/{total}] {result.path}", extra=extra)
        else:
            logger.warning(f"[{completed}/{total}] {result.path}: {result.reason}", extra=extra)

    def missing_checksums(self, paths):
        if paths:
            logger.warning(f"{len(paths)} file(s) have no checksum")

    def finished(self, report):
        logger.info(
            f"Finished {report.operation.kind.value}: "
            f"{report.succeeded} succeeded, {report.failed} failed, "
            f"{len(report.excluded)} excluded"
        )
