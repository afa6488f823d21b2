"""
Performing a local function as an operation.
"""

import os

from ..execution import FunctionCall, OsRun
from ..files import (
    ActualFile,
    FilesPrep,
    FileTransformation,
    NoActualFile,
    missing_file_ok,
    setup_file,
)
from .base import OpInterface, check_run_result, run_directory


class FunctionOperation(FilesPrep, OpInterface):
    """
    An operation performed by calling a local function instead of running an
    Executable in a sub-process.

    This allows local processing to be interleaved, in proper sequence, with
    the commands of a chain.  For example, a chain that needs a tar file
    midway could run "tar" in a SubProcOperation, or it could use a
    FunctionOperation that builds the file with the tarfile module.

    The function is called as ``fn(refdir, inpfiles, outfile)``.  The
    reference directory is where the command would have run had it been a
    SubProcOperation; the process' current directory is *not* changed, so
    handling the reference directory is left to the function.  Only an
    output file is passed on to the next operation in a chain: any richer
    data needs to be serialized into that file.
    """

    def __init__(self, name: str, call: FunctionCall):
        self.name = name  # informational only
        self.call = call
        self.files = FileTransformation()

    @classmethod
    def calling(cls, name: str, call: FunctionCall) -> "FunctionOperation":
        """Create an operation that calls the given function."""
        return cls(name, call)

    def __repr__(self) -> str:
        return f"Local function call {self.name!r} {self.files!r}"

    def copy(self) -> "FunctionOperation":
        dup = FunctionOperation(self.name, self.call)
        dup.files = self.files.copy()
        return dup

    def label(self) -> str:
        return self.name

    def set_label(self, new_label: str) -> "FunctionOperation":
        self.name = new_label
        return self

    def execute(
        self, executor: OsRun, cwd: str | os.PathLike | None = None
    ) -> ActualFile:
        inpfiles: ActualFile = NoActualFile()
        outfile: ActualFile = NoActualFile()
        try:
            for inpf in self.files.inp_filenames:
                af = setup_file(executor, inpf, missing_file_ok, self.name)
                inpfiles = inpfiles.extend(af)
            outfile = setup_file(
                executor, self.files.out_filename, missing_file_ok, self.name
            )
            return self._run_with_files(executor, cwd, inpfiles, outfile)
        except BaseException:
            outfile.cleanup()
            raise
        finally:
            inpfiles.cleanup()

    def _run_with_files(
        self,
        executor: OsRun,
        cwd: str | os.PathLike | None,
        inpfiles: ActualFile,
        outfile: ActualFile,
    ) -> ActualFile:
        fromdir = run_directory(cwd, self.files.in_dir)
        result = executor.run_function(self.name, self.call, inpfiles, outfile, fromdir)
        check_run_result(result, repr(self), [], fromdir)
        return outfile
