"""
Unit tests for chainsop.execution.

Runs real (POSIX) commands through the default Executor.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from chainsop.environment import EnvSpec
from chainsop.execution import (
    BadDirectory,
    ExecError,
    ExecFailed,
    Executor,
    Good,
    RunError,
    RunMode,
)
from chainsop.files import NoActualFile


class TestRunExecutable:
    """Test suite for running executables."""

    def test_success(self, tmp_path):
        result = Executor().run_executable(
            "touch", Path("touch"), ["made"], EnvSpec.std_env(), tmp_path
        )
        assert result == Good()
        assert (tmp_path / "made").exists()

    def test_failure_status_and_stderr(self, tmp_path):
        result = Executor().run_executable(
            "sh",
            Path("sh"),
            ["-c", "echo broken >&2; exit 3"],
            EnvSpec.std_env(),
            tmp_path,
        )
        assert isinstance(result, ExecError)
        assert result.returncode == 3
        assert result.stderr == "broken\n"

    def test_missing_executable(self, tmp_path):
        result = Executor().run_executable(
            "nope",
            Path("no-such-executable-chainsop"),
            [],
            EnvSpec.std_env(),
            tmp_path,
        )
        assert isinstance(result, ExecFailed)
        assert isinstance(result.error, OSError)

    def test_missing_directory(self, tmp_path):
        result = Executor().run_executable(
            "true", Path("true"), [], EnvSpec.std_env(), tmp_path / "absent"
        )
        assert isinstance(result, BadDirectory)
        assert result.path == tmp_path / "absent"

    def test_unreadable_current_directory(self):
        with patch("chainsop.execution.os.getcwd", side_effect=FileNotFoundError()):
            result = Executor().run_executable(
                "true", Path("true"), [], EnvSpec.std_env(), None
            )
        assert isinstance(result, BadDirectory)

    def test_environment_applied(self, tmp_path):
        env = EnvSpec.blank_env().add("CHAINSOP_TEST_VAR", "hello").add(
            "PATH", "/usr/bin:/bin"
        )
        result = Executor().run_executable(
            "sh",
            Path("sh"),
            ["-c", 'test "$CHAINSOP_TEST_VAR" = hello && test -z "$HOME"'],
            env,
            tmp_path,
        )
        assert result == Good()


class TestRunModes:
    """Test suite for echo, label and dry-run modes."""

    def test_normal_run_is_silent(self, tmp_path, capsys):
        Executor(RunMode.NORMAL_RUN).run_executable(
            "true", Path("true"), [], EnvSpec.std_env(), tmp_path
        )
        assert capsys.readouterr().err == ""

    def test_echo(self, tmp_path, capsys):
        result = Executor(RunMode.NORMAL_WITH_ECHO).run_executable(
            "touch", Path("touch"), ["a", "b"], EnvSpec.std_env(), tmp_path
        )
        assert result == Good()
        assert capsys.readouterr().err == f"#: touch a b [in {tmp_path}]\n"
        assert (tmp_path / "a").exists()

    def test_label(self, tmp_path, capsys):
        Executor(RunMode.NORMAL_WITH_LABEL).run_executable(
            "making things", Path("true"), [], EnvSpec.std_env(), tmp_path
        )
        assert capsys.readouterr().err == "#=> making things\n"

    def test_dry_run_does_not_execute(self, tmp_path, capsys):
        result = Executor(RunMode.DRY_RUN).run_executable(
            "touch", Path("touch"), ["made"], EnvSpec.std_env(), tmp_path
        )
        assert result == Good()
        assert not (tmp_path / "made").exists()
        assert capsys.readouterr().err == f"#: touch made [in {tmp_path}]\n"

    def test_dry_run_tolerates_missing_directory(self, tmp_path):
        result = Executor(RunMode.DRY_RUN).run_executable(
            "true", Path("true"), [], EnvSpec.std_env(), tmp_path / "later"
        )
        assert result == Good()


class TestRunFunction:
    """Test suite for local function calls."""

    def test_call_receives_directory_and_files(self, tmp_path):
        call = MagicMock()
        inp, out = NoActualFile(), NoActualFile()

        result = Executor().run_function("fn", call, inp, out, tmp_path)

        assert result == Good()
        call.assert_called_once_with(tmp_path, inp, out)

    def test_call_defaults_to_current_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        call = MagicMock()

        Executor().run_function("fn", call, NoActualFile(), NoActualFile(), None)

        assert call.call_args.args[0] == tmp_path

    def test_raising_call(self, tmp_path):
        err = ValueError("bad input")
        call = MagicMock(side_effect=err)

        result = Executor().run_function("fn", call, NoActualFile(), NoActualFile(), tmp_path)

        assert result == RunError(err)

    def test_missing_directory(self, tmp_path):
        call = MagicMock()
        missing = tmp_path / "nope"

        result = Executor().run_function("fn", call, NoActualFile(), NoActualFile(), missing)

        assert isinstance(result, BadDirectory)
        assert result.path == missing
        call.assert_not_called()

    def test_dry_run_skips_call(self, tmp_path, capsys):
        call = MagicMock()

        result = Executor(RunMode.DRY_RUN).run_function(
            "fn", call, NoActualFile(), NoActualFile(), tmp_path
        )

        assert result == Good()
        call.assert_not_called()
        assert capsys.readouterr().err == (
            f"Call 'fn', input=NoActualFile, output=NoActualFile [in {tmp_path}]\n"
        )

    def test_label_mode(self, tmp_path, capsys):
        Executor(RunMode.NORMAL_WITH_LABEL).run_function(
            "summarize", MagicMock(), NoActualFile(), NoActualFile(), tmp_path
        )
        assert capsys.readouterr().err == "=> summarize\n"


class TestGlobAndTemp:
    """Test suite for glob searches and temporary files."""

    def test_glob_search_sorted(self, tmp_path):
        for name in ["b.o", "a.o", "c.txt"]:
            (tmp_path / name).write_text("")

        matches = Executor().glob_search(f"{tmp_path}/*.o")

        assert matches == [tmp_path / "a.o", tmp_path / "b.o"]

    def test_dry_run_glob_is_empty(self, tmp_path):
        (tmp_path / "a.o").write_text("")
        assert Executor(RunMode.DRY_RUN).glob_search(f"{tmp_path}/*.o") == []

    @pytest.mark.parametrize("mode", list(RunMode))
    def test_tempfile_always_created(self, mode):
        tf = Executor(mode).mk_tempfile(".x")
        try:
            assert tf.path.exists()
            assert tf.path.name.endswith(".x")
        finally:
            tf.cleanup()

    def test_label_mode_reports_tempfile(self, capsys):
        tf = Executor(RunMode.NORMAL_WITH_LABEL).mk_tempfile("")
        assert capsys.readouterr().err == f"Created temp file {tf.path}\n"
        tf.cleanup()
