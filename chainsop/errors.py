"""
Error types raised by chainsop operations.

All errors derive from ChainsopError (a RuntimeError) so callers can catch
every failure of an operation or chain with a single except clause, while
still being able to distinguish the specific cause.
"""

from pathlib import Path
from typing import Any


class ChainsopError(RuntimeError):
    """Base class for all chainsop errors."""


class MissingFileError(ChainsopError):
    """An operation needed a file but none was specified."""

    def __init__(self) -> None:
        super().__init__("Missing file for operation")


class BadDirectoryError(ChainsopError):
    """The directory an operation should run in is not usable."""

    def __init__(self, cmd: str, path: Path, error: OSError):
        self.cmd = cmd
        self.path = path
        self.error = error
        super().__init__(
            f"Target directory {str(path)!r} error running command {cmd!r}: {error}"
        )


class RunningCommandError(ChainsopError):
    """The command ran but exited with a failure status."""

    def __init__(
        self,
        cmd: str,
        args: list[str],
        returncode: int | None,
        directory: Path | None,
        stderr: str,
    ):
        self.cmd = cmd
        self.args_list = list(args)
        self.returncode = returncode
        self.directory = directory
        self.stderr = stderr
        super().__init__(
            f"Error {returncode} running command {cmd!r} {self.args_list} "
            f"in dir {_dir_str(directory)}\n{stderr}"
        )


class CommandSetupError(ChainsopError):
    """The command could not be started."""

    def __init__(
        self, cmd: str, args: list[str], error: OSError, directory: Path | None
    ):
        self.cmd = cmd
        self.args_list = list(args)
        self.error = error
        self.directory = directory
        super().__init__(
            f"Error {error} setting up running command {cmd!r} {self.args_list} "
            f"in dir {_dir_str(directory)}"
        )


class ExecutingError(ChainsopError):
    """A local function (or custom executor) failed while performing the operation."""

    def __init__(
        self, cmd: str, args: list[str], error: BaseException, directory: Path | None
    ):
        self.cmd = cmd
        self.args_list = list(args)
        self.error = error
        self.directory = directory
        super().__init__(
            f"Error {error!r} executing command {cmd!r} {self.args_list} "
            f"in dir {_dir_str(directory)}"
        )


class UnsupportedFileError(ChainsopError):
    """A file designation cannot be used for this command."""

    def __init__(self, cmd: str, file_arg: Any):
        self.cmd = cmd
        self.file_arg = file_arg
        super().__init__(f"Unsupported file for command {cmd!r}: {file_arg!r}")


class UnsupportedActualFileError(ChainsopError):
    """The resolved files do not have the shape required by the caller."""

    def __init__(self, description: str):
        self.description = description
        super().__init__(f"Invalid operation actual file specification: {description}")


class InvalidOperationError(ChainsopError):
    """Something that is not a valid operation was given where one was expected."""

    def __init__(self, detail: str | None = None):
        self.detail = detail
        msg = "No valid operation specified"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class ChainDefinitionError(ChainsopError):
    """A chain definition document is malformed."""


def _dir_str(directory: Path | None) -> str:
    return repr(str(directory)) if directory is not None else "(current)"
