"""
Unit tests for loading chain definitions.
"""

import json
from pathlib import Path

import pytest

from chainsop.environment import EnvSpec
from chainsop.errors import ChainDefinitionError
from chainsop.executable import Append, NoFileUsed, OptionSpec
from chainsop.files import FileArg
from chainsop.operations import FunctionOperation, SubProcOperation
from chainsop_cli.chain_loader import (
    build_chain,
    load_chain_file,
    parse_exe_spec,
    parse_file_arg,
    resolve_callable,
)


def uppercase(refdir, inpfiles, outfile):
    """Callable referenced by the definitions below."""


FULL_DEFINITION = {
    "label": "build",
    "dir": "src",
    "input": ["main.c", {"glob": "*.h", "in": "include"}],
    "output": {"loc": "../build/app"},
    "env": {"set": {"LANG": "C"}, "prepend": {"PATH": ["/opt/bin", ":"]}},
    "operations": [
        {
            "exe": "cc",
            "input_spec": "append",
            "output_spec": {"option": "-o"},
            "base_args": ["-c"],
            "args": ["-O2"],
            "output": {"temp": ".o"},
            "env": {"unset": ["CFLAGS"]},
        },
        {"call": f"{__name__}:uppercase", "label": "shout", "dir": "out"},
        {"exe": "strip", "output_spec": "none", "active": False},
    ],
}


class TestParsers:
    """Test suite for the individual value parsers."""

    def test_file_args(self):
        assert parse_file_arg("a.c") == FileArg.loc("a.c")
        assert parse_file_arg({"loc": "a.c"}) == FileArg.loc("a.c")
        assert parse_file_arg({"glob": "*.o", "in": "out"}) == FileArg.glob_in("out", "*.o")
        assert parse_file_arg({"temp": ".o"}) == FileArg.temp(".o")
        assert parse_file_arg({"tbd": True}) == FileArg.tbd()

    @pytest.mark.parametrize(
        "value",
        [42, {"loc": "a", "temp": ""}, {"glob": "*.o"}, {"tbd": False}, {"what": "x"}],
    )
    def test_bad_file_args(self, value):
        with pytest.raises(ChainDefinitionError):
            parse_file_arg(value)

    def test_exe_specs(self):
        assert parse_exe_spec("append") == Append()
        assert parse_exe_spec("none") == NoFileUsed()
        assert parse_exe_spec({"option": "--out="}) == OptionSpec("--out=")
        with pytest.raises(ChainDefinitionError):
            parse_exe_spec("stdin")

    def test_resolve_callable(self):
        assert resolve_callable(f"{__name__}:uppercase") is uppercase
        assert resolve_callable("os.path:join") is __import__("os").path.join

    @pytest.mark.parametrize(
        "name",
        ["no_colon", "no_such_module_chainsop:fn", f"{__name__}:missing", f"{__name__}:FULL_DEFINITION"],
    )
    def test_resolve_callable_errors(self, name):
        with pytest.raises(ChainDefinitionError):
            resolve_callable(name)


class TestBuildChain:
    """Test suite for building chains from definitions."""

    def test_full_definition(self):
        chain = build_chain(FULL_DEFINITION)

        assert chain.label() == "build"
        assert chain.files.in_dir == Path("src")
        assert chain.files.inp_filenames == [
            FileArg.loc("main.c"),
            FileArg.glob_in("include", "*.h"),
        ]
        assert chain.files.out_filename == FileArg.loc("../build/app")
        assert chain.env == EnvSpec.std_env().add("LANG", "C").prepend("PATH", "/opt/bin", ":")

        cc, shout, strip = chain.chain
        assert isinstance(cc, SubProcOperation)
        assert cc.label() == "cc"
        assert cc.exec.base_args == ("-c",)
        assert cc.args == ["-c", "-O2"]
        assert cc.exec.out_file == OptionSpec("-o")
        assert cc.files.out_filename == FileArg.temp(".o")
        assert cc.env == EnvSpec.std_env().rmv("CFLAGS")

        assert isinstance(shout, FunctionOperation)
        assert shout.label() == "shout"
        assert shout.call is uppercase
        assert shout.files.in_dir == Path("out")

        assert isinstance(strip, SubProcOperation)
        assert strip.exec.out_file == NoFileUsed()
        assert chain.enabled_indices() == [0, 1]

    def test_operation_inputs_are_preset(self):
        chain = build_chain(
            {
                "label": "x",
                "operations": [{"exe": "a"}, {"exe": "b", "input": "fixed.in"}],
            }
        )
        assert chain.preset_inputs == {1}

    def test_clear_env(self):
        chain = build_chain(
            {"label": "x", "env": {"clear": True, "set": {"A": "1"}}, "operations": [{"exe": "a"}]}
        )
        assert chain.env == EnvSpec.blank_env().add("A", "1")

    @pytest.mark.parametrize(
        "definition",
        [
            [],
            {"operations": [{"exe": "a"}]},
            {"label": "", "operations": [{"exe": "a"}]},
            {"label": "x"},
            {"label": "x", "operations": []},
            {"label": "x", "operations": [{}]},
            {"label": "x", "operations": [{"exe": "a", "bogus": 1}]},
            {"label": "x", "operations": [{"call": "os.path:join", "args": ["-x"]}]},
            {"label": "x", "operations": [{"exe": "a", "active": "no"}]},
            {"label": "x", "operations": [{"exe": "a", "args": "-x"}]},
            {"label": "x", "operations": [{"exe": ["a"]}]},
            {"label": "x", "env": {"prepend": {"P": ["only-one"]}}, "operations": [{"exe": "a"}]},
            {"label": "x", "env": {"export": {}}, "operations": [{"exe": "a"}]},
            {"label": "x", "extra": True, "operations": [{"exe": "a"}]},
        ],
    )
    def test_malformed_definitions(self, definition):
        with pytest.raises(ChainDefinitionError):
            build_chain(definition)


class TestLoadChainFile:
    """Test suite for reading definition files."""

    def test_load(self, tmp_path):
        path = tmp_path / "chain.json"
        path.write_text(json.dumps({"label": "from file", "operations": [{"exe": "true"}]}))

        chain = load_chain_file(path)

        assert chain.label() == "from file"
        assert len(chain) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "chain.json"
        path.write_text("{not json")

        with pytest.raises(ChainDefinitionError, match="invalid JSON"):
            load_chain_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ChainDefinitionError):
            load_chain_file(tmp_path / "absent.json")
