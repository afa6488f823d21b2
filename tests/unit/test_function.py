"""
Unit tests for FunctionOperation.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from chainsop.errors import BadDirectoryError, ExecutingError
from chainsop.execution import Executor, RunMode
from chainsop.files import FileArg, NoActualFile, SingleFile, StaticFile
from chainsop.operations import FunctionOperation, execute_here


def concatenate(refdir, inpfiles, outfile):
    """Write the contents of all input files to the output file."""
    data = "".join(p.read_text() for p in inpfiles.to_paths(refdir))
    outfile.to_path(refdir).write_text(data)


class TestFunctionOperation:
    """Test suite for local function operations."""

    def test_call_with_files(self, tmp_path):
        (tmp_path / "a.txt").write_text("A")
        (tmp_path / "b.txt").write_text("B")
        op = (
            FunctionOperation.calling("concat", concatenate)
            .set_input_file(FileArg.loc("a.txt"))
            .add_input_file(FileArg.loc("b.txt"))
            .set_output_file(FileArg.loc("ab.txt"))
        )

        result = op.execute(Executor(), tmp_path)

        assert result == SingleFile(StaticFile(Path("ab.txt")))
        assert (tmp_path / "ab.txt").read_text() == "AB"

    def test_tbd_files_are_optional(self, tmp_path):
        call = MagicMock()
        op = FunctionOperation.calling("fn", call)

        result = op.execute(Executor(), tmp_path)

        assert result == NoActualFile()
        call.assert_called_once_with(tmp_path, NoActualFile(), NoActualFile())

    def test_directory_combined(self, tmp_path):
        (tmp_path / "sub").mkdir()
        call = MagicMock()
        op = FunctionOperation.calling("fn", call).set_dir("sub")

        op.execute(Executor(), tmp_path)

        assert call.call_args.args[0] == tmp_path / "sub"

    def test_missing_directory(self, tmp_path):
        call = MagicMock()
        op = FunctionOperation.calling("fn", call).set_dir("absent")

        with pytest.raises(BadDirectoryError) as excinfo:
            op.execute(Executor(), tmp_path)

        assert excinfo.value.path == tmp_path / "absent"
        call.assert_not_called()

    def test_raising_function(self, tmp_path):
        def explode(refdir, inpfiles, outfile):
            raise ValueError("cannot process")

        op = FunctionOperation.calling("explode", explode)

        with pytest.raises(ExecutingError) as excinfo:
            op.execute(Executor(), tmp_path)

        assert isinstance(excinfo.value.error, ValueError)
        assert excinfo.value.args_list == []
        assert "explode" in str(excinfo.value)

    def test_raising_function_removes_temp_output(self, tmp_path):
        seen = []

        def explode(refdir, inpfiles, outfile):
            seen.append(outfile.to_path())
            raise RuntimeError("no")

        op = FunctionOperation.calling("explode", explode).set_output_file(FileArg.temp())

        with pytest.raises(ExecutingError):
            execute_here(op, Executor())

        assert not seen[0].exists()

    def test_dry_run_does_not_call(self, tmp_path):
        call = MagicMock()
        op = FunctionOperation.calling("fn", call).set_output_file(FileArg.loc("o"))

        result = op.execute(Executor(RunMode.DRY_RUN), tmp_path)

        call.assert_not_called()
        assert result == SingleFile(StaticFile(Path("o")))

    def test_copy_and_label(self):
        op = FunctionOperation.calling("fn", concatenate).set_input_file(FileArg.loc("a"))
        dup = op.copy().set_label("renamed")
        dup.add_input_file(FileArg.loc("b"))

        assert op.label() == "fn"
        assert dup.label() == "renamed"
        assert op.files.inp_filenames == [FileArg.loc("a")]
        assert repr(op).startswith("Local function call 'fn'")
