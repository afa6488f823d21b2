"""
Running an Executable as a sub-process operation.
"""

import logging
import os
from pathlib import Path

from ..environment import EnvSpec
from ..executable import Append, Executable, ExeFileSpec, NoFileUsed, OptionSpec, ViaCall
from ..execution import OsRun
from ..files import (
    ActualFile,
    FileArg,
    FilesPrep,
    FileTransformation,
    NoActualFile,
    missing_file_error,
    setup_file,
)
from .base import OpInterface, check_run_result, run_directory

logger = logging.getLogger(__name__)


class SubProcOperation(FilesPrep, OpInterface):
    """
    A single command to run as a sub-process, with its specific arguments,
    environment, and input and output files.

    Example:
        compile_foo = (
            SubProcOperation(compile)
            .set_dir("src/")
            .set_input_file(FileArg.loc("foo.c"))
            .set_output_file(FileArg.loc("../build/foo.o"))
            .push_arg("-DDEBUG=1")
        )
        compile_foo.execute(Executor(RunMode.DRY_RUN), "/home/user/myapp-src")
    """

    def __init__(self, executing: Executable):
        self.name = str(executing.exe_file)
        self.exec = executing
        self.args: list[str] = list(executing.base_args)
        self.env = EnvSpec.std_env()
        self.files = FileTransformation()

    def __repr__(self) -> str:
        return (
            f"SubProcOperation({self.name!r}, exe={self.exec!r}, args={self.args!r}, "
            f"env={self.env!r}, files={self.files!r})"
        )

    def copy(self) -> "SubProcOperation":
        """Return an independent copy of this operation."""
        dup = SubProcOperation(self.exec)
        dup.name = self.name
        dup.args = list(self.args)
        dup.env = self.env
        dup.files = self.files.copy()
        return dup

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_executable(self, exe: str | os.PathLike) -> "SubProcOperation":
        """Change the executable to run (the label follows it)."""
        self.exec = self.exec.set_exe(exe)
        self.name = str(self.exec.exe_file)
        return self

    def push_arg(self, arg: str) -> "SubProcOperation":
        """Add an argument for this invocation."""
        self.args.append(os.fspath(arg) if isinstance(arg, os.PathLike) else str(arg))
        return self

    def clear_env(self) -> "SubProcOperation":
        """
        Run with an empty environment, discarding previous settings.

        By default the current environment is inherited.
        """
        self.env = self.env.clear()
        return self

    def set_env(self, var_name: str, var_value: str) -> "SubProcOperation":
        """Set an environment variable for the execution."""
        self.env = self.env.add(var_name, var_value)
        return self

    def prepend_env(self, var: str, value: str, sep: str) -> "SubProcOperation":
        """Prepend a value (with separator) to an environment variable."""
        self.env = self.env.prepend(var, value, sep)
        return self

    def append_env(self, var: str, value: str, sep: str) -> "SubProcOperation":
        """Append a value (with separator) to an environment variable."""
        self.env = self.env.append(var, value, sep)
        return self

    def unset_env(self, var_name: str) -> "SubProcOperation":
        """Remove an environment variable; no effect if it is not set."""
        self.env = self.env.rmv(var_name)
        return self

    def get_full_env(self) -> EnvSpec:
        return self.env

    def set_full_env(self, new_env: EnvSpec) -> "SubProcOperation":
        self.env = new_env
        return self

    def set_base_env(self, base_env: EnvSpec) -> "SubProcOperation":
        """Use base_env as the environment this operation's settings modify."""
        self.env = self.env.set_base(base_env)
        return self

    # ------------------------------------------------------------------
    # OpInterface
    # ------------------------------------------------------------------

    def label(self) -> str:
        return self.name

    def set_label(self, new_label: str) -> "SubProcOperation":
        self.name = new_label
        return self

    def execute(
        self, executor: OsRun, cwd: str | os.PathLike | None = None
    ) -> ActualFile:
        fromdir = run_directory(cwd, self.files.in_dir)
        args, inpfiles, outfile = self.finalize_args(executor, fromdir)
        try:
            result = executor.run_executable(
                self.label(), self.exec.exe_file, args, self.env, fromdir
            )
            check_run_result(result, repr(self.exec), args, fromdir)
        except BaseException:
            outfile.cleanup()
            raise
        finally:
            inpfiles.cleanup()
        return outfile

    # ------------------------------------------------------------------
    # Argument preparation
    # ------------------------------------------------------------------

    def finalize_args(
        self, executor: OsRun, fromdir: Path | None = None
    ) -> tuple[list[str], ActualFile, ActualFile]:
        """
        Prepare the final argument list, resolving the files it references.

        Returns the arguments along with the resolved input and output files.
        """
        args = list(self.args)
        # Order matters: resolving each file appends to args
        created: list[ActualFile] = []
        try:
            if self._emit_output_file_first():
                outfile = self._setup_output(executor, args, fromdir, created)
                inpfiles = self._setup_inputs(executor, args, fromdir, created)
            else:
                inpfiles = self._setup_inputs(executor, args, fromdir, created)
                outfile = self._setup_output(executor, args, fromdir, created)
        except BaseException:
            for af in created:
                af.cleanup()
            raise
        return args, inpfiles, outfile

    def _emit_output_file_first(self) -> bool:
        """
        Output options go before positional input files because some
        commands' parsers require it; otherwise the input comes first (as
        in "cp inpfile outfile").
        """
        return isinstance(self.exec.out_file, OptionSpec) and isinstance(
            self.exec.inp_file, Append
        )

    def _setup_inputs(
        self,
        executor: OsRun,
        args: list[str],
        fromdir: Path | None,
        created: list[ActualFile],
    ) -> ActualFile:
        inpfiles: ActualFile = NoActualFile()
        for inpf in self.files.inp_filenames:
            af = self._setup_exe_file(executor, args, fromdir, self.exec.inp_file, inpf)
            created.append(af)
            inpfiles = inpfiles.extend(af)
        return inpfiles

    def _setup_output(
        self,
        executor: OsRun,
        args: list[str],
        fromdir: Path | None,
        created: list[ActualFile],
    ) -> ActualFile:
        af = self._setup_exe_file(
            executor, args, fromdir, self.exec.out_file, self.files.out_filename
        )
        created.append(af)
        return af

    def _setup_exe_file(
        self,
        executor: OsRun,
        args: list[str],
        fromdir: Path | None,
        spec: ExeFileSpec,
        candidate: FileArg,
    ) -> ActualFile:
        if isinstance(spec, NoFileUsed):
            return NoActualFile()

        af = setup_file(executor, candidate, missing_file_error, self.name)
        try:
            if isinstance(spec, Append):
                args.extend(os.fspath(p) for p in af.to_paths())
            elif isinstance(spec, OptionSpec):
                fnames = ",".join(os.fspath(p) for p in af.to_paths())
                if spec.flag.endswith("="):
                    args.append(spec.flag + fnames)
                else:
                    args.extend([spec.flag, fnames])
            elif isinstance(spec, ViaCall):
                spec.fn(args, fromdir, af)
            else:
                raise TypeError(f"Unknown file specification: {spec!r}")
        except BaseException:
            af.cleanup()
            raise
        logger.debug(f"{self.name}: {candidate!r} resolved to {af!r}")
        return af
