"""
chainsop persistence module.

This module stores the history of recorded chain runs.  Currently supports
SQLite, behind the RunRepository interface.

The persistence layer depends on chainsop for the run records, and is used
by chainsop_cli.
"""

from .repository import RunRepository
from .sqlite_repository import SQLiteRunRepository

__all__ = ["RunRepository", "SQLiteRunRepository"]
