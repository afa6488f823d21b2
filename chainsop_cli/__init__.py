"""
chainsop CLI module.

Command line entry point for running chain definitions and browsing the
run history kept by chainsop_persistence.
"""

from .chain_loader import build_chain, load_chain_file
from .cli import cli

__all__ = ["build_chain", "cli", "load_chain_file"]
