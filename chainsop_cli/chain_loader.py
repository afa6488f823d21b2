"""
Loading chain definitions from JSON documents.

A definition describes one ChainedOps:

    {
        "label": "build",
        "dir": "src",
        "input": ["main.c"],
        "output": {"loc": "../build/app"},
        "env": {"set": {"LANG": "C"}},
        "operations": [
            {"exe": "cc", "output_spec": {"option": "-o"}, "args": ["-O2"]},
            {"call": "mypkg.post:strip_symbols", "label": "strip"}
        ]
    }

Any malformed content raises ChainDefinitionError naming where the problem
is.
"""

import importlib
import json
import logging
from pathlib import Path
from typing import Any

from chainsop.errors import ChainDefinitionError
from chainsop.executable import Executable, ExeFileSpec
from chainsop.files import FileArg
from chainsop.operations import (
    Activation,
    ChainedOps,
    FunctionOperation,
    SubProcOperation,
)

logger = logging.getLogger(__name__)

CHAIN_KEYS = {"label", "dir", "input", "output", "env", "operations"}
COMMON_OP_KEYS = {"label", "dir", "input", "output", "active"}
EXE_OP_KEYS = COMMON_OP_KEYS | {
    "exe",
    "input_spec",
    "output_spec",
    "base_args",
    "args",
    "env",
}
CALL_OP_KEYS = COMMON_OP_KEYS | {"call"}
ENV_KEYS = {"clear", "set", "unset", "prepend", "append"}


def load_chain_file(path: str | Path) -> ChainedOps:
    """Read and parse the chain definition in a JSON file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ChainDefinitionError(f"{path}: invalid JSON: {e}") from e
    except OSError as e:
        raise ChainDefinitionError(f"{path}: cannot read chain definition: {e}") from e
    logger.debug(f"Loaded chain definition from {path}")
    return build_chain(data)


def build_chain(data: Any) -> ChainedOps:
    """Build a ChainedOps from a parsed chain definition."""
    _check_mapping(data, CHAIN_KEYS, "chain")
    label = data.get("label")
    if not isinstance(label, str) or not label:
        raise ChainDefinitionError("chain: 'label' must be a non-empty string")

    chain = ChainedOps(label)
    if "dir" in data:
        chain.set_dir(_string(data["dir"], "chain.dir"))
    for fa in _file_list(data.get("input"), "chain.input"):
        chain.add_input_file(fa)
    if "output" in data:
        chain.set_output_file(parse_file_arg(data["output"], "chain.output"))
    if "env" in data:
        _apply_env(chain, data["env"], "chain.env")

    operations = data.get("operations")
    if not isinstance(operations, list) or not operations:
        raise ChainDefinitionError("chain: 'operations' must be a non-empty list")
    for idx, opdata in enumerate(operations):
        _add_operation(chain, opdata, f"operations[{idx}]")
    return chain


def _add_operation(chain: ChainedOps, data: Any, where: str) -> None:
    if isinstance(data, dict) and "call" in data:
        _check_mapping(data, CALL_OP_KEYS, where)
        name = _string(data["call"], f"{where}.call")
        op: SubProcOperation | FunctionOperation = FunctionOperation.calling(
            _string(data.get("label", name), f"{where}.label"),
            resolve_callable(name, where),
        )
    else:
        _check_mapping(data, EXE_OP_KEYS, where)
        if "exe" not in data:
            raise ChainDefinitionError(f"{where}: needs either 'exe' or 'call'")
        executable = Executable(
            _string(data["exe"], f"{where}.exe"),
            parse_exe_spec(data.get("input_spec", "append"), f"{where}.input_spec"),
            parse_exe_spec(data.get("output_spec", "append"), f"{where}.output_spec"),
        )
        for arg in _string_list(data.get("base_args"), f"{where}.base_args"):
            executable = executable.push_arg(arg)
        op = SubProcOperation(executable)
        for arg in _string_list(data.get("args"), f"{where}.args"):
            op.push_arg(arg)
        if "env" in data:
            _apply_env(op, data["env"], f"{where}.env")
        if "label" in data:
            op.set_label(_string(data["label"], f"{where}.label"))

    if "dir" in data:
        op.set_dir(_string(data["dir"], f"{where}.dir"))
    for fa in _file_list(data.get("input"), f"{where}.input"):
        op.add_input_file(fa)
    if "output" in data:
        op.set_output_file(parse_file_arg(data["output"], f"{where}.output"))

    if isinstance(op, FunctionOperation):
        ref = chain.push_call(op)
    else:
        ref = chain.push_op(op)

    active = data.get("active", True)
    if not isinstance(active, bool):
        raise ChainDefinitionError(f"{where}.active: must be true or false")
    if not active:
        ref.active(Activation.DISABLED)


def parse_file_arg(value: Any, where: str = "file") -> FileArg:
    """
    Parse a file designation.

    A plain string is a location; otherwise an object with exactly one of
    "loc", "glob" (with "in"), "temp", or "tbd".
    """
    if isinstance(value, str):
        return FileArg.loc(value)
    if not isinstance(value, dict):
        raise ChainDefinitionError(f"{where}: file must be a string or an object")
    if set(value) == {"loc"}:
        return FileArg.loc(_string(value["loc"], f"{where}.loc"))
    if set(value) == {"glob", "in"}:
        return FileArg.glob_in(
            _string(value["in"], f"{where}.in"), _string(value["glob"], f"{where}.glob")
        )
    if set(value) == {"temp"}:
        return FileArg.temp(_string(value["temp"], f"{where}.temp"))
    if set(value) == {"tbd"} and value["tbd"] is True:
        return FileArg.tbd()
    raise ChainDefinitionError(f"{where}: unrecognized file designation {value!r}")


def parse_exe_spec(value: Any, where: str = "spec") -> ExeFileSpec:
    """Parse "append", "none", or {"option": flag}."""
    if value == "append":
        return ExeFileSpec.append()
    if value == "none":
        return ExeFileSpec.no_file()
    if isinstance(value, dict) and set(value) == {"option"}:
        return ExeFileSpec.option(_string(value["option"], f"{where}.option"))
    raise ChainDefinitionError(f"{where}: unrecognized file specification {value!r}")


def resolve_callable(name: str, where: str = "call"):
    """Import the function named by "package.module:function"."""
    module_name, sep, attr = name.partition(":")
    if not sep or not module_name or not attr:
        raise ChainDefinitionError(f"{where}: call must be 'module:function', got {name!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ChainDefinitionError(f"{where}: cannot import {module_name!r}: {e}") from e
    fn = module
    for part in attr.split("."):
        try:
            fn = getattr(fn, part)
        except AttributeError as e:
            raise ChainDefinitionError(f"{where}: {name!r} not found") from e
    if not callable(fn):
        raise ChainDefinitionError(f"{where}: {name!r} is not callable")
    return fn


def _apply_env(target: ChainedOps | SubProcOperation, value: Any, where: str) -> None:
    _check_mapping(value, ENV_KEYS, where)
    clear = value.get("clear", False)
    if not isinstance(clear, bool):
        raise ChainDefinitionError(f"{where}.clear: must be true or false")
    if clear:
        target.clear_env()

    settings = value.get("set", {})
    if not isinstance(settings, dict):
        raise ChainDefinitionError(f"{where}.set: must be an object")
    for name, val in settings.items():
        target.set_env(name, _string(val, f"{where}.set.{name}"))

    for name in _string_list(value.get("unset"), f"{where}.unset"):
        target.unset_env(name)

    for action in ("prepend", "append"):
        entries = value.get(action, {})
        if not isinstance(entries, dict):
            raise ChainDefinitionError(f"{where}.{action}: must be an object")
        for name, pair in entries.items():
            if (
                not isinstance(pair, list)
                or len(pair) != 2
                or not all(isinstance(p, str) for p in pair)
            ):
                raise ChainDefinitionError(
                    f"{where}.{action}.{name}: must be [value, separator]"
                )
            getattr(target, f"{action}_env")(name, pair[0], pair[1])


def _check_mapping(value: Any, allowed: set[str], where: str) -> None:
    if not isinstance(value, dict):
        raise ChainDefinitionError(f"{where}: must be an object")
    unknown = set(value) - allowed
    if unknown:
        raise ChainDefinitionError(f"{where}: unknown key(s) {sorted(unknown)}")


def _string(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise ChainDefinitionError(f"{where}: must be a string")
    return value


def _string_list(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ChainDefinitionError(f"{where}: must be a list of strings")
    return value


def _file_list(value: Any, where: str) -> list[FileArg]:
    if value is None:
        return []
    if isinstance(value, list):
        return [parse_file_arg(v, f"{where}[{i}]") for i, v in enumerate(value)]
    return [parse_file_arg(value, where)]
