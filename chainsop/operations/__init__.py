"""
Operations: single sub-process runs, local function calls, and chains of
them.
"""

from .base import OpInterface, execute_here
from .chained import Activation, ChainedOpRef, ChainedOps
from .function import FunctionOperation
from .subproc import SubProcOperation

__all__ = [
    "Activation",
    "ChainedOpRef",
    "ChainedOps",
    "FunctionOperation",
    "OpInterface",
    "SubProcOperation",
    "execute_here",
]
