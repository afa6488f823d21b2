"""
Executors: the lowest level of chainsop, which actually performs operations.

The rest of chainsop decides *what* should be done and in what sequence;
the executor performs the OS interactions (running processes, calling local
functions, globbing, creating temporary files).  Keeping these interactions
behind the OsRun interface isolates them so they can be echoed, simulated,
recorded, or replaced in tests.
"""

import glob
import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .environment import EnvSpec
from .files import ActualFile, TempFile

logger = logging.getLogger(__name__)

FunctionCall = Callable[[Path, ActualFile, ActualFile], None]


# ============================================================================
# Results
# ============================================================================


class OsRunResult:
    """Result of running an executable or function via an OsRun executor."""


@dataclass
class Good(OsRunResult):
    pass


@dataclass
class ExecFailed(OsRunResult):
    """The process could not be started."""

    error: OSError


@dataclass
class ExecError(OsRunResult):
    """The process ran but exited with a failure status."""

    returncode: int | None
    stderr: str


@dataclass
class RunError(OsRunResult):
    """A local function (or the executor itself) raised an error."""

    error: BaseException


@dataclass
class BadDirectory(OsRunResult):
    """The directory to run in is not usable."""

    path: Path
    error: OSError


# ============================================================================
# Executor interface
# ============================================================================


class OsRun(ABC):
    """
    Interface for performing the operations chainsop has determined.

    The default implementation is Executor.  Alternative implementations
    can adjust, redirect, simulate or record the actual operations.
    """

    @abstractmethod
    def run_executable(
        self,
        label: str,
        exe_file: Path,
        args: list[str],
        env: EnvSpec,
        fromdir: Path | None,
    ) -> OsRunResult:
        """
        Run the executable with the arguments and environment.

        Args:
            label: User-facing identification of the operation
            exe_file: Executable to run
            args: Final argument list (not including the executable)
            env: Environment specification for the process
            fromdir: Directory to run in (None for the current directory)
        """
        pass

    @abstractmethod
    def run_function(
        self,
        name: str,
        call: FunctionCall,
        inpfiles: ActualFile,
        outfile: ActualFile,
        fromdir: Path | None,
    ) -> OsRunResult:
        """Call the local function with the reference directory and files."""
        pass

    @abstractmethod
    def glob_search(self, globpat: str) -> list[Path]:
        """Return the files matching a glob pattern."""
        pass

    @abstractmethod
    def mk_tempfile(self, suffix: str) -> TempFile:
        """
        Create a temporary file with the suffix.

        A temporary file is a managed resource which only exists while the
        returned object does, so even simulating executors are expected to
        create a real one.
        """
        pass


# ============================================================================
# Default executor
# ============================================================================


class RunMode(Enum):
    NORMAL_RUN = "normal"
    NORMAL_WITH_ECHO = "echo"
    NORMAL_WITH_LABEL = "label"
    DRY_RUN = "dry-run"


class Executor(OsRun):
    """
    Default executor, performing operations on the current system.

    Modes:
        NORMAL_RUN: perform operations silently
        NORMAL_WITH_ECHO: print each command to stderr before performing it
        NORMAL_WITH_LABEL: print each operation's label before performing it
        DRY_RUN: print each command to stderr but do not perform it
    """

    def __init__(self, mode: RunMode = RunMode.NORMAL_RUN):
        self.mode = mode

    def __repr__(self) -> str:
        return f"Executor({self.mode.name})"

    @property
    def performs(self) -> bool:
        return self.mode is not RunMode.DRY_RUN

    @property
    def echoes(self) -> bool:
        return self.mode in (RunMode.NORMAL_WITH_ECHO, RunMode.DRY_RUN)

    def _get_dir(self, fromdir: Path | None) -> Path:
        if fromdir is not None:
            return Path(fromdir)
        return Path(os.getcwd())

    def run_executable(
        self,
        label: str,
        exe_file: Path,
        args: list[str],
        env: EnvSpec,
        fromdir: Path | None,
    ) -> OsRunResult:
        try:
            tgtdir = self._get_dir(fromdir)
        except OSError as e:
            return BadDirectory(Path("."), e)

        if self.mode is RunMode.NORMAL_WITH_LABEL:
            print(f"#=> {label}", file=sys.stderr)
        elif self.echoes:
            print(f"#: {exe_file} {' '.join(args)} [in {tgtdir}]", file=sys.stderr)

        if not self.performs:
            logger.debug(f"Dry run: {exe_file} {args} in {tgtdir}")
            return Good()

        if not tgtdir.is_dir():
            return BadDirectory(tgtdir, NotADirectoryError(f"Not a directory: {tgtdir}"))

        logger.info(f"Running {label}: {exe_file} {args} in {tgtdir}")
        try:
            completed = subprocess.run(
                [os.fspath(exe_file), *args],
                cwd=tgtdir,
                env=env.resolve(os.environ),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            logger.warning(f"Failed to start {exe_file}: {e}")
            return ExecFailed(e)

        if completed.returncode != 0:
            logger.warning(f"{label} exited with status {completed.returncode}")
            return ExecError(
                completed.returncode, completed.stderr.decode(errors="replace")
            )
        return Good()

    def run_function(
        self,
        name: str,
        call: FunctionCall,
        inpfiles: ActualFile,
        outfile: ActualFile,
        fromdir: Path | None,
    ) -> OsRunResult:
        try:
            tgtdir = self._get_dir(fromdir)
        except OSError as e:
            return BadDirectory(Path("."), e)

        if self.mode is RunMode.NORMAL_WITH_LABEL:
            print(f"=> {name}", file=sys.stderr)
        elif self.echoes:
            print(
                f"Call {name!r}, input={inpfiles!r}, output={outfile!r} [in {tgtdir}]",
                file=sys.stderr,
            )

        if not self.performs:
            return Good()

        if not tgtdir.is_dir():
            return BadDirectory(tgtdir, NotADirectoryError(f"Not a directory: {tgtdir}"))

        logger.info(f"Calling {name} in {tgtdir}")
        try:
            call(tgtdir, inpfiles, outfile)
        except Exception as e:
            logger.warning(f"Function {name} failed: {e}")
            return RunError(e)
        return Good()

    def glob_search(self, globpat: str) -> list[Path]:
        if not self.performs:
            return []
        return [Path(p) for p in sorted(glob.glob(globpat))]

    def mk_tempfile(self, suffix: str) -> TempFile:
        # Temporary files are created even for a dry run
        tf = TempFile(suffix)
        if self.mode is RunMode.NORMAL_WITH_LABEL:
            print(f"Created temp file {tf.path}", file=sys.stderr)
        logger.debug(f"Created temp file {tf.path}")
        return tf
