"""
Abstract repository interface for chain run history.

This module defines the contract that any storage implementation must
follow, so the history can be kept in SQLite or another database.
"""

from abc import ABC, abstractmethod

from chainsop.recording import ChainRun


class RunRepository(ABC):
    """
    Abstract base class for run history storage.

    Implementations handle their own connection management and must be
    initialized before use.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create the storage schema if it does not exist."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release any held connection."""
        pass

    @abstractmethod
    async def save_run(self, run: ChainRun) -> None:
        """
        Store a run with all its operation records.

        Saving a run with an existing ID replaces the stored run.

        Args:
            run: ChainRun to persist
        """
        pass

    @abstractmethod
    async def get_run(self, run_id: str) -> ChainRun | None:
        """
        Retrieve a run by its ID.

        Args:
            run_id: UUID of the run to retrieve

        Returns:
            ChainRun with its operations if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_runs(self, limit: int | None = None) -> list[ChainRun]:
        """
        List runs, most recent first.

        Operation records are not loaded; the returned runs carry an empty
        operations list.

        Args:
            limit: Maximum number of runs to return (None for all)
        """
        pass

    @abstractmethod
    async def delete_run(self, run_id: str) -> bool:
        """
        Delete a run and its operation records.

        Returns:
            True if the run existed, False otherwise
        """
        pass
