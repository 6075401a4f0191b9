"""
Batch Engine
============

Runs one operation over many files on a thread pool.

Targets are partitioned up front into included and excluded sets. Included
targets are processed independently; a failure is recorded against its own
path and never stops the others. Workers only return results. The calling
thread collects them as they complete and is the sole writer to the
reporters and the final report.
"""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from filecabinet.actions.file_operations import FileOperations
from filecabinet.batch.operations import BatchJob, Operation, OperationKind
from filecabinet.batch.reporting import BatchReporter, LoggingReporter
from filecabinet.codec.metadata import canonical_name
from filecabinet.config.settings import Config
from filecabinet.ledger.checksum import ChecksumLedger, is_sidecar, sidecar_path
from filecabinet.security.encryption import VaultCrypto
from filecabinet.utils.logging_config import (
    Timer,
    get_logger,
    new_correlation_id,
    set_correlation_id,
)
from filecabinet.utils.exceptions import ChecksumMismatchError, VaultError

logger = get_logger(__name__)

# Normalize fills in a missing page number; date, institution and title
# must come from the filename.
DEFAULT_PAGE = 1


class Outcome(Enum):
    """Result of processing one target."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class BatchResult:
    """Outcome for a single target.

    Attributes:
        path: Target path as given.
        outcome: Success or failure.
        reason: Human-readable failure reason.
        output: File produced or renamed to, if any.
    """
    path: Path
    outcome: Outcome
    reason: Optional[str] = None
    output: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "outcome": self.outcome.value,
            "reason": self.reason,
            "output": str(self.output) if self.output else None,
        }


@dataclass
class Partition:
    """Targets split before any work starts."""
    included: List[Path] = field(default_factory=list)
    excluded: List[Path] = field(default_factory=list)


@dataclass
class BatchReport:
    """Aggregated result of a batch run.

    Attributes:
        operation: The operation that ran.
        results: Per-target results in completion order.
        excluded: Inputs skipped before execution.
        missing_checksum: Verify only: files with no sidecar.
    """
    operation: Operation
    results: List[BatchResult] = field(default_factory=list)
    excluded: List[Path] = field(default_factory=list)
    missing_checksum: List[Path] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def failures(self) -> List[BatchResult]:
        return [r for r in self.results if not r.ok]

    def result_for(self, path) -> Optional[BatchResult]:
        path = Path(path)
        for result in self.results:
            if result.path == path:
                return result
        return None

    def to_dict(self) -> dict:
        return {
            "operation": self.operation.kind.value,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
            "excluded": [str(p) for p in self.excluded],
            "missing_checksum": [str(p) for p in self.missing_checksum],
        }


class BatchEngine:
    """Concurrent verify / encrypt / decrypt / normalize runs.

    Features:
    - Partition of targets before any work
    - Thread pool sized to the CPU count
    - Continue-on-error with per-target failure reasons
    - Progress events delivered from a single aggregating thread
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        crypto: Optional[VaultCrypto] = None,
        ledger: Optional[ChecksumLedger] = None,
        file_ops: Optional[FileOperations] = None,
        reporters: Optional[Sequence[BatchReporter]] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize the engine.

        Args:
            config: Application configuration. Defaults are used if omitted.
            crypto: Vault cipher. Built from ``config.security`` if omitted.
            ledger: Checksum ledger. Built from ``config.batch`` if omitted.
            file_ops: File operations helper.
            reporters: Progress sinks. Logs only if omitted.
            max_workers: Pool size. Falls back to config, then the CPU count.
        """
        self.config = config or Config()
        self.file_ops = file_ops or FileOperations()
        self.crypto = crypto or VaultCrypto.from_config(self.config.security)
        self.ledger = ledger or ChecksumLedger(
            buffer_size=self.config.batch.hash_buffer_size,
            file_ops=self.file_ops
        )
        self.reporters = list(reporters) if reporters is not None else [LoggingReporter()]
        self.max_workers = (
            max_workers
            or self.config.batch.max_workers
            or os.cpu_count()
            or 1
        )

    # ------------------------------------------------------------------
    # Partitioning
    # ------------------------------------------------------------------

    def partition(self, operation: Operation) -> Partition:
        """Split an operation's targets into included and excluded.

        Excluded targets are already in the state the operation would
        produce, or are files the operation must not touch. Repeated paths
        are excluded after their first occurrence.
        """
        if operation.kind is OperationKind.VERIFY:
            return Partition(included=list(operation.paths))

        rules = {
            OperationKind.ENCRYPT: self._eligible_for_encrypt,
            OperationKind.DECRYPT: self._eligible_for_decrypt,
            OperationKind.NORMALIZE: self._eligible_for_normalize,
        }
        try:
            eligible = rules[operation.kind]
        except KeyError:
            raise ValueError(f"{operation.kind.value} is not a batch operation") from None

        result = Partition()
        seen = set()
        for path in operation.paths:
            if path in seen or not eligible(path):
                result.excluded.append(path)
            else:
                result.included.append(path)
            seen.add(path)
        return result

    def _eligible_for_encrypt(self, path: Path) -> bool:
        return not (self.crypto.is_encrypted(path) or is_sidecar(path))

    def _eligible_for_decrypt(self, path: Path) -> bool:
        return self.crypto.is_encrypted(path) and not is_sidecar(path)

    def _eligible_for_normalize(self, path: Path) -> bool:
        return (
            path.is_file()
            and not is_sidecar(path)
            and not self.crypto.is_encrypted(path)
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, job: BatchJob) -> BatchReport:
        """Run a batch job to completion.

        Per-target errors are folded into the report. Only problems that
        prevent the run from starting at all (for example an unreadable
        verify directory) propagate.

        Args:
            job: Operation and password.

        Returns:
            BatchReport with every included target's result.
        """
        operation = job.operation
        correlation_id = new_correlation_id()
        set_correlation_id(correlation_id)

        with Timer(logger, f"batch.{operation.kind.value}"):
            if operation.kind is OperationKind.VERIFY:
                report = self._run_verify(operation, correlation_id)
            else:
                report = self._run_files(job, correlation_id)

        self._emit("finished", report)
        return report

    def _run_files(self, job: BatchJob, correlation_id: str) -> BatchReport:
        operation = job.operation
        parts = self.partition(operation)
        report = BatchReport(operation=operation, excluded=parts.excluded)

        handlers = {
            OperationKind.ENCRYPT: lambda p: self._encrypt_one(p, job.password),
            OperationKind.DECRYPT: lambda p: self.crypto.decrypt_file(p, job.password),
            OperationKind.NORMALIZE: self._normalize_one,
        }

        self._emit("started", operation, len(parts.included), parts.excluded)
        report.results = self._fan_out(handlers[operation.kind], parts.included, correlation_id)
        return report

    def _run_verify(self, operation: Operation, correlation_id: str) -> BatchReport:
        files = self.file_ops.list_regular_files(operation.directory)
        sidecars = [p for p in files if is_sidecar(p)]
        sidecar_names = {p.name for p in sidecars}
        missing = [
            p for p in files
            if not is_sidecar(p) and sidecar_path(p).name not in sidecar_names
        ]

        report = BatchReport(operation=operation, missing_checksum=missing)
        self._emit("started", operation, len(sidecars), [])
        self._emit("missing_checksums", missing)
        report.results = self._fan_out(self._verify_one, sidecars, correlation_id)
        return report

    def _fan_out(
        self,
        handler: Callable[[Path], Optional[Path]],
        targets: List[Path],
        correlation_id: str
    ) -> List[BatchResult]:
        """Run ``handler`` over every target and collect results as they finish."""
        results: List[BatchResult] = []
        total = len(targets)
        if not total:
            return results

        workers = min(self.max_workers, total)
        logger.debug(f"Processing {total} target(s) with {workers} worker(s)")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="batch") as executor:
            futures = [
                executor.submit(self._process_target, handler, path, correlation_id)
                for path in targets
            ]
            for completed, future in enumerate(as_completed(futures), start=1):
                result = future.result()
                results.append(result)
                self._emit("target_done", completed, total, result)

        return results

    def _process_target(
        self,
        handler: Callable[[Path], Optional[Path]],
        path: Path,
        correlation_id: str
    ) -> BatchResult:
        """Run one target, turning any error into a failure result."""
        set_correlation_id(correlation_id)
        try:
            output = handler(path)
        except VaultError as e:
            return BatchResult(path, Outcome.FAILURE, reason=e.reason)
        except OSError as e:
            return BatchResult(path, Outcome.FAILURE, reason=e.strerror or str(e))
        except Exception as e:
            logger.exception(f"Unexpected error processing {path}")
            return BatchResult(path, Outcome.FAILURE, reason=f"{type(e).__name__}: {e}")
        return BatchResult(path, Outcome.SUCCESS, output=output)

    def _emit(self, event: str, *args) -> None:
        for reporter in self.reporters:
            getattr(reporter, event)(*args)

    # ------------------------------------------------------------------
    # Per-target work
    # ------------------------------------------------------------------

    def _encrypt_one(self, path: Path, password: str) -> Path:
        container = self.crypto.encrypt_file(path, password)
        self.ledger.generate(container)
        return container

    def _normalize_one(self, path: Path) -> Path:
        new_name = canonical_name(path.name, page=DEFAULT_PAGE)
        return self.file_ops.rename_file(path, new_name)

    def _verify_one(self, sidecar: Path) -> Path:
        if not self.ledger.validate(sidecar):
            raise ChecksumMismatchError(file_path=str(sidecar))
        return sidecar
