"""
Recording of executed operations.

RecordingExecutor wraps another OsRun and keeps an OperationRecord for every
executable run and function call that passes through it.  A ChainRun groups
the records made while executing one operation (usually a chain) along with
the overall outcome, and can be serialized for the run history.
"""

import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .environment import EnvSpec
from .execution import (
    BadDirectory,
    ExecError,
    ExecFailed,
    FunctionCall,
    Good,
    OsRun,
    OsRunResult,
    RunError,
)
from .files import ActualFile, TempFile

logger = logging.getLogger(__name__)


def _outcome(result: OsRunResult) -> str:
    if isinstance(result, Good):
        return "good"
    if isinstance(result, ExecFailed):
        return "exec-failed"
    if isinstance(result, ExecError):
        return "exec-error"
    if isinstance(result, RunError):
        return "run-error"
    if isinstance(result, BadDirectory):
        return "bad-directory"
    return "unknown"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass
class OperationRecord:
    """
    Represents a single executable run or function call.

    Records are made for dry runs too; the outcome then reflects what the
    executor reported rather than an actual process.
    """

    kind: str  # "exe" or "call"
    label: str
    outcome: str  # "good", "exec-failed", "exec-error", "run-error", "bad-directory"
    exe: str | None = None  # Executable file (None for function calls)
    args: list[str] = field(default_factory=list)
    directory: str | None = None  # None when run in the current directory
    returncode: int | None = None
    stderr: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == "good"

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary format (for JSON serialization)."""
        return {
            "kind": self.kind,
            "label": self.label,
            "outcome": self.outcome,
            "exe": self.exe,
            "args": list(self.args),
            "directory": self.directory,
            "returncode": self.returncode,
            "stderr": self.stderr,
            "started_at": _iso(self.started_at),
            "finished_at": _iso(self.finished_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OperationRecord":
        """Create record from dictionary format."""
        return cls(
            kind=data["kind"],
            label=data["label"],
            outcome=data["outcome"],
            exe=data.get("exe"),
            args=list(data.get("args") or []),
            directory=data.get("directory"),
            returncode=data.get("returncode"),
            stderr=data.get("stderr"),
            started_at=_from_iso(data.get("started_at")),
            finished_at=_from_iso(data.get("finished_at")),
        )


@dataclass
class ChainRun:
    """
    Represents one execution of an operation or chain with its history.

    success is None while the run is in progress.
    """

    id: str
    label: str
    operations: list[OperationRecord] = field(default_factory=list)
    success: bool | None = None
    error: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    output: list[str] = field(default_factory=list)  # Final output path(s)
    # Set by listings, which do not load the operations themselves
    operation_count: int | None = field(default=None, compare=False)

    @classmethod
    def new(cls, label: str) -> "ChainRun":
        return cls(id=str(uuid.uuid4()), label=label, start_time=datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert run to dictionary format, including every operation."""
        return {
            "id": self.id,
            "label": self.label,
            "success": self.success,
            "error": self.error,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "output": list(self.output),
            "operations": [op.to_dict() for op in self.operations],
        }

    def to_summary_dict(self) -> dict[str, Any]:
        """Convert run to summary format (without operations, for listings)."""
        return {
            "id": self.id,
            "label": self.label,
            "success": self.success,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "operation_count": (
                self.operation_count
                if self.operation_count is not None
                else len(self.operations)
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChainRun":
        """Create run from dictionary format (full or summary)."""
        return cls(
            id=data["id"],
            label=data["label"],
            success=data.get("success"),
            error=data.get("error"),
            start_time=_from_iso(data.get("start_time")),
            end_time=_from_iso(data.get("end_time")),
            output=list(data.get("output") or []),
            operations=[
                OperationRecord.from_dict(op) for op in data.get("operations") or []
            ],
            operation_count=data.get("operation_count"),
        )


class RecordingExecutor(OsRun):
    """
    Executor that records each operation while delegating to another one.

    Example:
        recorder = RecordingExecutor(Executor(RunMode.NORMAL_WITH_ECHO))
        with recorder.recording(chain.label()) as run:
            chain.execute(recorder, srcdir)
        print(run.to_dict())
    """

    def __init__(self, inner: OsRun):
        self.inner = inner
        self.records: list[OperationRecord] = []

    def __repr__(self) -> str:
        return f"RecordingExecutor({self.inner!r}, {len(self.records)} record(s))"

    def run_executable(
        self,
        label: str,
        exe_file: Path,
        args: list[str],
        env: EnvSpec,
        fromdir: Path | None,
    ) -> OsRunResult:
        started = datetime.now(UTC)
        result = self.inner.run_executable(label, exe_file, args, env, fromdir)
        record = OperationRecord(
            kind="exe",
            label=label,
            outcome=_outcome(result),
            exe=os.fspath(exe_file),
            args=list(args),
            directory=os.fspath(fromdir) if fromdir is not None else None,
            started_at=started,
            finished_at=datetime.now(UTC),
        )
        if isinstance(result, ExecError):
            record.returncode = result.returncode
            record.stderr = result.stderr
        elif isinstance(result, (ExecFailed, BadDirectory)):
            record.stderr = str(result.error)
        self.records.append(record)
        return result

    def run_function(
        self,
        name: str,
        call: FunctionCall,
        inpfiles: ActualFile,
        outfile: ActualFile,
        fromdir: Path | None,
    ) -> OsRunResult:
        started = datetime.now(UTC)
        result = self.inner.run_function(name, call, inpfiles, outfile, fromdir)
        record = OperationRecord(
            kind="call",
            label=name,
            outcome=_outcome(result),
            directory=os.fspath(fromdir) if fromdir is not None else None,
            started_at=started,
            finished_at=datetime.now(UTC),
        )
        if isinstance(result, (RunError, BadDirectory)):
            record.stderr = repr(result.error)
        self.records.append(record)
        return result

    def glob_search(self, globpat: str) -> list[Path]:
        return self.inner.glob_search(globpat)

    def mk_tempfile(self, suffix: str) -> TempFile:
        return self.inner.mk_tempfile(suffix)

    @contextmanager
    def recording(self, label: str) -> Iterator[ChainRun]:
        """
        Collect the records made within the block into a ChainRun.

        The run is completed when the block exits; an exception raised in
        the block marks the run as failed and is propagated.
        """
        run = ChainRun.new(label)
        first = len(self.records)
        logger.debug(f"Recording run {run.id} ({label})")
        try:
            yield run
        except Exception as e:
            run.success = False
            run.error = str(e)
            raise
        else:
            run.success = True
        finally:
            run.end_time = datetime.now(UTC)
            run.operations = self.records[first:]
            logger.info(
                f"Run {run.id} ({label}) finished: success={run.success}, "
                f"{len(run.operations)} operation(s)"
            )
