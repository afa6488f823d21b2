"""
Generic description of an executable program.

An Executable is the template for running a program: the executable file,
the arguments supplied on every invocation, and the manner in which input
and output files are given to it.  A SubProcOperation is created from an
Executable for each specific invocation.
"""

import dataclasses
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .files import ActualFile


class ExeFileSpec:
    """
    How a file is provided to an Executable on its command line.

    There is no provision for stdin/stdout/stderr: an executable is assumed
    to consume files named on the command line and write a file that is
    also named on the command line.
    """

    @staticmethod
    def no_file() -> "NoFileUsed":
        return NoFileUsed()

    @staticmethod
    def append() -> "Append":
        return Append()

    @staticmethod
    def option(optname: str) -> "OptionSpec":
        return OptionSpec(str(optname))

    @staticmethod
    def via_call(
        fn: Callable[[list[str], Path | None, "ActualFile"], None],
    ) -> "ViaCall":
        return ViaCall(fn)


@dataclass(frozen=True, repr=False)
class NoFileUsed(ExeFileSpec):
    """No file provided or needed."""

    def __repr__(self) -> str:
        return "<none>"


@dataclass(frozen=True, repr=False)
class Append(ExeFileSpec):
    """
    Append the file(s) to the command line.

    If both input and output use Append, the input files come first.
    """

    def __repr__(self) -> str:
        return "append"


@dataclass(frozen=True, repr=False)
class OptionSpec(ExeFileSpec):
    """
    Give the file(s) via an option flag.

    ``OptionSpec("-f")`` produces ``CMD -f FILE``; a flag ending in ``=``,
    such as ``OptionSpec("--file=")``, produces the single argument
    ``--file=FILE``.  Multiple files are comma-joined.
    """

    flag: str

    def __repr__(self) -> str:
        return f"option({self.flag})"


@dataclass(frozen=True, repr=False)
class ViaCall(ExeFileSpec):
    """
    Add the file to the argument list by calling a function.

    The function is called with the argument list (to be modified in place),
    the directory the command will run in, and the ActualFile.  It should
    not add that directory to the file it places in the arguments; the
    command is run from that directory.
    """

    fn: Callable[[list[str], Path | None, "ActualFile"], None]

    def __repr__(self) -> str:
        return "via function call"


@dataclass(frozen=True)
class Executable:
    """
    Template describing how to invoke an executable.

    Example:
        compile = Executable("cc", ExeFileSpec.append(), ExeFileSpec.option("-o"))
        compile = compile.push_arg("-c").push_arg("-O0")
    """

    exe_file: Path
    inp_file: ExeFileSpec = dataclasses.field(default_factory=Append)
    out_file: ExeFileSpec = dataclasses.field(default_factory=Append)
    base_args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Frozen, so normalise through object.__setattr__
        object.__setattr__(self, "exe_file", Path(self.exe_file))
        object.__setattr__(self, "base_args", tuple(str(a) for a in self.base_args))

    def push_arg(self, arg: str) -> "Executable":
        """Return a new Executable with an additional base argument."""
        return dataclasses.replace(self, base_args=(*self.base_args, str(arg)))

    def set_exe(self, exe: str | os.PathLike) -> "Executable":
        """Return a new Executable running a different executable file."""
        return dataclasses.replace(self, exe_file=Path(exe))
