"""
Shared fixtures for chainsop unit tests.

The collectors are OsRun executors that record what would be run instead of
running it; temporary files are still created for real.
"""

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from chainsop.environment import EnvSpec
from chainsop.errors import MissingFileError
from chainsop.execution import Good, OsRun, RunError
from chainsop.files import TempFile


@dataclass
class RunExec:
    name: str
    exe: Path
    args: list[str]
    dir: Path | None
    env: EnvSpec | None = field(default=None, compare=False)


@dataclass
class RunFunc:
    fname: str
    inpfiles: list[Path]
    outfile: Path | None
    dir: Path | None


class TestCollector(OsRun):
    """Records executable runs and function calls without performing them."""

    __test__ = False  # not a test class

    def __init__(self):
        self.collected: list[RunExec | RunFunc] = []

    def run_executable(self, label, exe_file, args, env, fromdir):
        self.collected.append(RunExec(label, Path(exe_file), list(args), fromdir, env))
        return Good()

    def run_function(self, name, call, inpfiles, outfile, fromdir):
        try:
            inps = inpfiles.to_paths()
        except MissingFileError:
            inps = []
        try:
            out = outfile.to_path()
        except MissingFileError:
            out = None
        self.collected.append(RunFunc(name, inps, out, fromdir))
        return Good()

    def glob_search(self, globpat):
        raise NotImplementedError("glob_search not supported by TestCollector")

    def mk_tempfile(self, suffix):
        return TempFile(suffix)


class ArgCollector(TestCollector):
    """Records executable runs; function calls are reported as failures."""

    def run_function(self, name, call, inpfiles, outfile, fromdir):
        return RunError(NotImplementedError(f"run_function {name} not supported"))


@pytest.fixture
def collector():
    """Provide a fresh TestCollector."""
    return TestCollector()


@pytest.fixture
def arg_collector():
    """Provide a fresh ArgCollector."""
    return ArgCollector()
