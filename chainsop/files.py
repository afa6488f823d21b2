"""
File designations and resolved files for chainsop operations.

An operation is told about its files with FileArg values (a location, a glob
search, a temporary file, or "to be determined").  When the operation is
executed the FileArg values are resolved, via the executor, into ActualFile
values that refer to zero or more concrete files.  Temporary files are owned
by their FileRef and are removed when cleaned up or garbage collected.
"""

import logging
import os
import tempfile
import weakref
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Union

from .errors import MissingFileError, UnsupportedActualFileError, UnsupportedFileError

if TYPE_CHECKING:
    from .execution import OsRun

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


# ============================================================================
# File designations
# ============================================================================


class FileArg:
    """
    Designates a file that can be identified by name on the command line.

    Use the constructors below rather than the variant classes directly:

        FileArg.loc("build/foo.o")
        FileArg.glob_in("build/", "*.test_out")
        FileArg.temp(".o")
        FileArg.tbd()
    """

    @staticmethod
    def loc(fpath: PathLike) -> "LocArg":
        """Reference to an actual file path (which may not exist yet)."""
        return LocArg(Path(fpath))

    @staticmethod
    def glob_in(dpath: PathLike, pattern: str) -> "GlobArg":
        """All files matching the glob pattern in the specified directory."""
        return GlobArg(Path(dpath), pattern)

    @staticmethod
    def temp(suffix: str = "") -> "TempArg":
        """A temporary file to be created, with the given filename suffix."""
        return TempArg(suffix)

    @staticmethod
    def tbd() -> "TbdArg":
        """
        Placeholder for a file that will be determined later.

        Executing an operation that still has a TBD file is handled by the
        operation (usually an error).
        """
        return TbdArg()


@dataclass(frozen=True)
class LocArg(FileArg):
    path: Path


@dataclass(frozen=True)
class GlobArg(FileArg):
    directory: Path
    pattern: str


@dataclass(frozen=True)
class TempArg(FileArg):
    suffix: str = ""


@dataclass(frozen=True)
class TbdArg(FileArg):
    pass


# ============================================================================
# Input/output specification for an operation
# ============================================================================


@dataclass
class FileTransformation:
    """Input files, output file, and run directory for an operation."""

    inp_filenames: list[FileArg] = field(default_factory=list)
    out_filename: FileArg = field(default_factory=TbdArg)
    in_dir: Path | None = None

    def copy(self) -> "FileTransformation":
        return FileTransformation(
            inp_filenames=list(self.inp_filenames),
            out_filename=self.out_filename,
            in_dir=self.in_dir,
        )

    def __repr__(self) -> str:
        return (
            f"transforming {self.inp_filenames!r} into {self.out_filename!r} "
            f"in {self.in_dir!r}"
        )


class FilesPrep:
    """
    Mixin providing the standard file preparation calls.

    The class using this mixin must have a ``files`` attribute holding a
    FileTransformation.  Every setter returns ``self`` so calls can be
    chained.
    """

    files: FileTransformation

    def set_dir(self, tgtdir: PathLike):
        """
        Set the directory from which the operation will be performed.

        This is usually relative, and is interpreted from the directory given
        to ``execute()`` (or the current directory).  The caller is
        responsible for ensuring that any location file arguments are valid
        from that directory.
        """
        self.files.in_dir = Path(tgtdir)
        return self

    def set_input_file(self, fname: FileArg):
        """Set the input file, replacing any previous input files."""
        self.files.inp_filenames = [fname]
        return self

    def add_input_file(self, fname: FileArg):
        """Append an additional input file."""
        self.files.inp_filenames.append(fname)
        return self

    def has_input_file(self) -> bool:
        return bool(self.files.inp_filenames)

    def set_output_file(self, fname: FileArg):
        """Set the output file, replacing any previous output file."""
        self.files.out_filename = fname
        return self

    def has_explicit_output_file(self) -> bool:
        """True if the output file is an explicit location (not TBD, glob, or temp)."""
        return isinstance(self.files.out_filename, LocArg)


# ============================================================================
# Resolved files
# ============================================================================


@dataclass(frozen=True)
class StaticFile:
    """Reference to a plain file path."""

    path: Path


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


class TempFile:
    """
    Reference to a temporary file which this object owns.

    The file exists on disk for as long as this object is alive; it is
    removed by cleanup() or when the object is garbage collected, unless
    keep() was called first.
    """

    def __init__(self, suffix: str = "", directory: PathLike | None = None):
        fd, name = tempfile.mkstemp(suffix=suffix, dir=directory)
        os.close(fd)
        self.path = Path(name)
        self._finalizer = weakref.finalize(self, _remove_quietly, name)
        self.kept = False

    def cleanup(self) -> None:
        """Remove the temporary file now."""
        self._finalizer()

    def keep(self) -> Path:
        """Give up ownership: the file is left in place from now on."""
        if self._finalizer.detach() is not None:
            self.kept = True
        return self.path

    @property
    def removed(self) -> bool:
        return not self.kept and not self._finalizer.alive

    def __repr__(self) -> str:
        return f"TempFile({str(self.path)!r})"


FileRef = Union[StaticFile, TempFile]


class ActualFile:
    """
    The actual file(s) used as the input or output of an executed operation.

    One of NoActualFile, SingleFile or MultiFile.
    """

    refs: tuple[FileRef, ...] = ()

    def __len__(self) -> int:
        return len(self.refs)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.refs == other.refs  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self.refs))

    def extend(self, more: "ActualFile") -> "ActualFile":
        """Combine with another ActualFile; the file count is the sum of both."""
        if isinstance(self, NoActualFile):
            return more
        if isinstance(more, NoActualFile):
            return self
        return MultiFile(self.refs + more.refs)

    def to_path(self, cwd: PathLike | None = None) -> Path:
        """
        Get the single path for this ActualFile.

        Raises MissingFileError if there is no file and
        UnsupportedActualFileError if there are multiple files.
        """
        raise NotImplementedError

    def to_paths(self, cwd: PathLike | None = None) -> list[Path]:
        """
        Get the paths (possibly several) for this ActualFile.

        Raises MissingFileError if there is no file at all.
        """
        raise NotImplementedError

    def cleanup(self) -> None:
        """Remove any temporary files referenced."""
        for ref in self.refs:
            if isinstance(ref, TempFile):
                ref.cleanup()

    def keep(self) -> None:
        """Keep any temporary files referenced after this object is gone."""
        for ref in self.refs:
            if isinstance(ref, TempFile):
                ref.keep()

    @staticmethod
    def _get_path(cwd: PathLike | None, ref: FileRef) -> Path:
        if cwd is None:
            return ref.path
        # An absolute ref.path replaces cwd entirely
        return Path(cwd) / ref.path


class NoActualFile(ActualFile):
    def to_path(self, cwd: PathLike | None = None) -> Path:
        raise MissingFileError()

    def to_paths(self, cwd: PathLike | None = None) -> list[Path]:
        raise MissingFileError()

    def __repr__(self) -> str:
        return "NoActualFile"


class SingleFile(ActualFile):
    def __init__(self, ref: FileRef):
        self.ref = ref
        self.refs = (ref,)

    def to_path(self, cwd: PathLike | None = None) -> Path:
        return self._get_path(cwd, self.ref)

    def to_paths(self, cwd: PathLike | None = None) -> list[Path]:
        return [self._get_path(cwd, self.ref)]

    def __repr__(self) -> str:
        return f"SingleFile({self.ref!r})"


class MultiFile(ActualFile):
    def __init__(self, refs: Iterable[FileRef]):
        self.refs = tuple(refs)

    def to_path(self, cwd: PathLike | None = None) -> Path:
        raise UnsupportedActualFileError(repr(self))

    def to_paths(self, cwd: PathLike | None = None) -> list[Path]:
        return [self._get_path(cwd, ref) for ref in self.refs]

    def __repr__(self) -> str:
        return f"MultiFile({list(self.refs)!r})"


# ============================================================================
# Resolution
# ============================================================================


def setup_file(
    executor: "OsRun",
    candidate: FileArg,
    on_missing: Callable[[], ActualFile],
    cmd: str = "(unnamed)",
) -> ActualFile:
    """
    Resolve a FileArg into the ActualFile it designates.

    The result may own a temporary file which is removed when the result is
    cleaned up, so the caller should hold on to it for as long as the file
    is needed.  Anything other than a FileArg variant raises
    UnsupportedFileError naming the command it was given to.
    """
    if isinstance(candidate, TbdArg):
        return on_missing()
    if isinstance(candidate, TempArg):
        return SingleFile(executor.mk_tempfile(candidate.suffix))
    if isinstance(candidate, LocArg):
        return SingleFile(StaticFile(candidate.path))
    if isinstance(candidate, GlobArg):
        matches = with_globbed_matches(executor, candidate.directory, candidate.pattern)
        return MultiFile(StaticFile(p) for p in matches)
    raise UnsupportedFileError(cmd, candidate)


def with_globbed_matches(
    executor: "OsRun", in_dir: PathLike, for_glob: str
) -> list[Path]:
    """Run the executor's glob search for the pattern within the directory."""
    globpat = f"{os.fspath(in_dir)}/{for_glob}"
    matches = executor.glob_search(globpat)
    logger.debug(f"Glob {globpat} matched {len(matches)} file(s)")
    return matches


def missing_file_error() -> ActualFile:
    """on_missing handler for operations that require the file."""
    raise MissingFileError()


def missing_file_ok() -> ActualFile:
    """on_missing handler for operations where the file is optional."""
    return NoActualFile()
