"""
Common interface for operations (sub-process runs, local calls, chains).
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path

from ..errors import (
    BadDirectoryError,
    CommandSetupError,
    ExecutingError,
    RunningCommandError,
)
from ..execution import (
    BadDirectory,
    ExecError,
    ExecFailed,
    Good,
    OsRun,
    OsRunResult,
    RunError,
)
from ..files import ActualFile


class OpInterface(ABC):
    """
    Interface for an operation that can be performed.

    Executing an operation may update the operation itself (a chain sets the
    input files of its elements as it goes), so a single operation instance
    should not be executed concurrently.
    """

    @abstractmethod
    def label(self) -> str:
        """Short identifier of this operation, for presentation to the user."""
        pass

    @abstractmethod
    def set_label(self, new_label: str):
        """Change the label of this operation; returns self."""
        pass

    @abstractmethod
    def execute(
        self, executor: OsRun, cwd: str | os.PathLike | None = None
    ) -> ActualFile:
        """
        Execute this operation and return the output file written (if any).

        The cwd is the default directory to execute in.  If the operation's
        directory was set with set_dir(), a relative setting is interpreted
        from cwd and an absolute setting replaces it.

        Input and output files are passed to the operation exactly as
        specified and are *not* combined with the directory: relative names
        must be valid from the directory the operation runs in.
        """
        pass


def execute_here(op: OpInterface, executor: OsRun) -> ActualFile:
    """Execute an operation in the current directory."""
    return op.execute(executor, None)


def run_directory(
    cwd: str | os.PathLike | None, in_dir: Path | None
) -> Path | None:
    """Combine the execution directory with the operation's own directory."""
    if cwd is None:
        return in_dir
    if in_dir is None:
        return Path(cwd)
    return Path(cwd) / in_dir


def check_run_result(
    result: OsRunResult, cmd: str, args: list[str], fromdir: Path | None
) -> None:
    """Raise the ChainsopError corresponding to a failed OsRunResult."""
    if isinstance(result, Good):
        return
    if isinstance(result, RunError):
        raise ExecutingError(cmd, args, result.error, fromdir) from result.error
    if isinstance(result, ExecFailed):
        raise CommandSetupError(cmd, args, result.error, fromdir) from result.error
    if isinstance(result, ExecError):
        raise RunningCommandError(cmd, args, result.returncode, fromdir, result.stderr)
    if isinstance(result, BadDirectory):
        raise BadDirectoryError(cmd, result.path, result.error) from result.error
    raise TypeError(f"Unexpected run result: {result!r}")
