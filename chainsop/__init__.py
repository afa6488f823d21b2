"""
chainsop: chained sub-process operations.

This package describes executables, the operations that run them (or call
local functions in their place), and chains of operations where the output
file of each step feeds the input of the next.  The executor layer performs
the actual OS interactions, so chains can be echoed, dry-run or recorded.

The core package has no dependencies on the persistence or CLI packages.
"""

from .environment import EnvSpec
from .errors import (
    BadDirectoryError,
    ChainDefinitionError,
    ChainsopError,
    CommandSetupError,
    ExecutingError,
    InvalidOperationError,
    MissingFileError,
    RunningCommandError,
    UnsupportedActualFileError,
    UnsupportedFileError,
)
from .executable import Executable, ExeFileSpec
from .execution import Executor, OsRun, RunMode
from .files import (
    ActualFile,
    FileArg,
    MultiFile,
    NoActualFile,
    SingleFile,
    StaticFile,
    TempFile,
)
from .operations import (
    Activation,
    ChainedOpRef,
    ChainedOps,
    FunctionOperation,
    OpInterface,
    SubProcOperation,
    execute_here,
)
from .recording import ChainRun, OperationRecord, RecordingExecutor

__all__ = [
    "Activation",
    "ActualFile",
    "BadDirectoryError",
    "ChainDefinitionError",
    "ChainRun",
    "ChainedOpRef",
    "ChainedOps",
    "ChainsopError",
    "CommandSetupError",
    "EnvSpec",
    "Executable",
    "ExeFileSpec",
    "ExecutingError",
    "Executor",
    "FileArg",
    "FunctionOperation",
    "InvalidOperationError",
    "MissingFileError",
    "MultiFile",
    "NoActualFile",
    "OpInterface",
    "OperationRecord",
    "OsRun",
    "RecordingExecutor",
    "RunMode",
    "RunningCommandError",
    "SingleFile",
    "StaticFile",
    "SubProcOperation",
    "TempFile",
    "UnsupportedActualFileError",
    "UnsupportedFileError",
    "execute_here",
]
