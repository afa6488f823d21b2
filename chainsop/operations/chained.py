"""
Chains of operations, where the output of each operation feeds the next.

Typical usage:

    build = ChainedOps("myapp build")
    compile_op = build.push_op(SubProcOperation(compiler))
    compile_op.push_arg("-O2")
    build.push_call(FunctionOperation.calling("summarize", summarize))
    build.set_input_file(FileArg.loc("main.c"))
    build.set_output_file(FileArg.loc("summary.txt"))
    build.execute(Executor(), "/home/user/myapp-src")
"""

import logging
import os
import threading
from enum import Enum
from pathlib import Path

from ..environment import EnvSpec
from ..errors import InvalidOperationError, MissingFileError
from ..execution import OsRun
from ..files import ActualFile, FileArg, FilesPrep, FileTransformation, NoActualFile
from .base import OpInterface, run_directory
from .function import FunctionOperation
from .subproc import SubProcOperation

logger = logging.getLogger(__name__)

RunnableOp = SubProcOperation | FunctionOperation


class Activation(Enum):
    """Whether an operation in a chain is performed when the chain executes."""

    ENABLED = "enabled"
    DISABLED = "disabled"


class ChainedOps(FilesPrep, OpInterface):
    """
    A sequence of operations performed in order.

    When the chain is executed, the output file of each operation becomes
    the input file of the next (unless that operation's input was set
    explicitly), the chain's input files are given to the first operation,
    and the chain's explicit output file is given to the last.  Temporary
    files produced in the middle of the chain are removed once the chain is
    done.  Execution stops at the first operation that fails.
    """

    def __init__(self, label: str):
        self.name = label
        self.chain: list[RunnableOp] = []
        self.files = FileTransformation()
        self.env = EnvSpec.std_env()
        # Chain index -> Activation; missing entries are enabled.
        self.opstate: dict[int, Activation] = {}
        # Indices of operations whose input files were preset and must not
        # be replaced by the previous operation's output.
        self.preset_inputs: set[int] = set()
        self.execution_count = 0
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        ops = ", ".join(repr(op) for op in self.chain)
        return f"ChainedOps({self.name!r}, [{ops}], files={self.files!r})"

    def __len__(self) -> int:
        return len(self.chain)

    def __iter__(self):
        return (ChainedOpRef(self, i) for i in range(len(self.chain)))

    def _push(self, op: RunnableOp) -> "ChainedOpRef":
        self.chain.append(op.copy())
        opidx = len(self.chain) - 1
        if op.has_input_file():
            self.preset_inputs.add(opidx)
        return ChainedOpRef(self, opidx)

    def push_op(self, op: SubProcOperation) -> "ChainedOpRef":
        """
        Add a (copy of the) SubProcOperation to the end of the chain.

        Returns a reference for further modification of the operation as it
        exists in the chain.
        """
        if not isinstance(op, SubProcOperation):
            raise InvalidOperationError(f"push_op requires a SubProcOperation, got {op!r}")
        return self._push(op)

    def push_call(self, op: FunctionOperation) -> "ChainedOpRef":
        """Add a (copy of the) FunctionOperation to the end of the chain."""
        if not isinstance(op, FunctionOperation):
            raise InvalidOperationError(
                f"push_call requires a FunctionOperation, got {op!r}"
            )
        return self._push(op)

    # ------------------------------------------------------------------
    # Chain-wide environment
    # ------------------------------------------------------------------

    def clear_env(self) -> "ChainedOps":
        self.env = self.env.clear()
        return self

    def set_env(self, var_name: str, var_value: str) -> "ChainedOps":
        self.env = self.env.add(var_name, var_value)
        return self

    def prepend_env(self, var: str, value: str, sep: str) -> "ChainedOps":
        self.env = self.env.prepend(var, value, sep)
        return self

    def append_env(self, var: str, value: str, sep: str) -> "ChainedOps":
        self.env = self.env.append(var, value, sep)
        return self

    def unset_env(self, var_name: str) -> "ChainedOps":
        self.env = self.env.rmv(var_name)
        return self

    # ------------------------------------------------------------------
    # OpInterface
    # ------------------------------------------------------------------

    def label(self) -> str:
        return self.name

    def set_label(self, new_label: str) -> "ChainedOps":
        self.name = new_label
        return self

    def enabled_indices(self) -> list[int]:
        return [
            i
            for i in range(len(self.chain))
            if self.opstate.get(i, Activation.ENABLED) is Activation.ENABLED
        ]

    def execute(
        self, executor: OsRun, cwd: str | os.PathLike | None = None
    ) -> ActualFile:
        """
        Execute the enabled operations in sequence, returning the output of
        the last one.

        Each operation runs in the chain directory (cwd combined with the
        chain's set_dir()) unless it set its own directory, which is
        interpreted relative to the chain directory.
        """
        # Executing updates the input files of chain elements, so runs of
        # the same chain must not overlap.
        with self._lock:
            self.execution_count += 1

            enabled = self.enabled_indices()
            if not enabled:
                logger.info(f"Chain {self.name!r} has no enabled operations")
                return NoActualFile()

            first_op, last_op = enabled[0], enabled[-1]
            chain_inps = self.files.inp_filenames
            if chain_inps:
                self.chain[first_op].set_input_file(chain_inps[0])
                for f in chain_inps[1:]:
                    self.chain[first_op].add_input_file(f)

            tgtdir = run_directory(cwd, self.files.in_dir)

            if self.has_explicit_output_file():
                self.chain[last_op].set_output_file(self.files.out_filename)

            logger.info(
                f"Executing chain {self.name!r}: {len(enabled)} of "
                f"{len(self.chain)} operation(s) enabled"
            )
            return self._execute_chain(executor, enabled, tgtdir)

    def _execute_chain(
        self, executor: OsRun, op_idxs: list[int], cwd: Path | None
    ) -> ActualFile:
        intermediates: list[ActualFile] = []
        try:
            for pos, op_idx in enumerate(op_idxs):
                op = self.chain[op_idx]
                outfile = self._run_op(executor, op, cwd)
                if pos == len(op_idxs) - 1:
                    return outfile
                intermediates.append(outfile)

                try:
                    paths = outfile.to_paths()
                except MissingFileError:
                    # The next operation may not need an input file; if it
                    # does, its own setup reports the problem.
                    logger.debug(f"Chained operation {op.label()!r} had no output file")
                    continue

                next_idx = op_idxs[pos + 1]
                if paths and next_idx not in self.preset_inputs:
                    nxt = self.chain[next_idx]
                    nxt.set_input_file(FileArg.loc(paths[0]))
                    for p in paths[1:]:
                        nxt.add_input_file(FileArg.loc(p))
            raise AssertionError("unreachable: chain has at least one operation")
        finally:
            for af in intermediates:
                af.cleanup()

    def _run_op(self, executor: OsRun, op: RunnableOp, cwd: Path | None) -> ActualFile:
        if not isinstance(op, SubProcOperation):
            return op.execute(executor, cwd)
        saved_env = op.get_full_env()
        op.set_base_env(self.env)
        try:
            return op.execute(executor, cwd)
        finally:
            op.set_full_env(saved_env)


class ChainedOpRef(FilesPrep):
    """
    Reference to an operation within a ChainedOps, returned when the
    operation is added.  Allows the operation to be customized in place.
    """

    def __init__(self, chain: ChainedOps, opidx: int):
        self._chain = chain
        self.opidx = opidx

    def __repr__(self) -> str:
        return f"ChainedOpRef({self._chain.name!r}[{self.opidx}])"

    @property
    def operation(self) -> RunnableOp:
        return self._chain.chain[self.opidx]

    @property
    def files(self) -> FileTransformation:  # type: ignore[override]
        return self.operation.files

    def label(self) -> str:
        return self.operation.label()

    def set_label(self, new_label: str) -> "ChainedOpRef":
        self.operation.set_label(new_label)
        return self

    def push_arg(self, arg: str) -> "ChainedOpRef":
        """Add an argument to this operation (ignored for function calls)."""
        op = self.operation
        if isinstance(op, SubProcOperation):
            op.push_arg(arg)
        return self

    def active(self, state: Activation) -> "ChainedOpRef":
        """
        Enable or disable this operation in the chain.  Operations are
        enabled when added; disabled operations are skipped on execution.
        """
        if state is Activation.ENABLED:
            self._chain.opstate.pop(self.opidx, None)
        else:
            self._chain.opstate[self.opidx] = state
        return self

    def is_active(self) -> bool:
        return self.opidx not in self._chain.opstate

    def set_input_file(self, fname: FileArg) -> "ChainedOpRef":
        """
        Set the input file for this operation.

        This overrides the default of using the previous operation's output.
        For the first operation of the chain, the chain's own input files
        (if any) still take precedence.
        """
        super().set_input_file(fname)
        self._chain.preset_inputs.add(self.opidx)
        return self

    def add_input_file(self, fname: FileArg) -> "ChainedOpRef":
        """Append an input file; has the same effect on chaining as set_input_file."""
        super().add_input_file(fname)
        self._chain.preset_inputs.add(self.opidx)
        return self

    def set_output_file(self, fname: FileArg) -> "ChainedOpRef":
        """
        Set the output file for this operation, which also becomes the next
        operation's input.  For the last operation, the chain's explicit
        output file (if any) takes precedence.
        """
        return super().set_output_file(fname)
