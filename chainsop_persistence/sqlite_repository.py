"""
SQLite implementation of the run history repository.

Uses aiosqlite for async operations.
"""

import json
import logging
from datetime import datetime

import aiosqlite

from chainsop.recording import ChainRun, OperationRecord

from .repository import RunRepository

logger = logging.getLogger(__name__)


def _bool_or_none(value: int | None) -> bool | None:
    return bool(value) if value is not None else None


def _int_or_none(value: bool | None) -> int | None:
    return 1 if value is True else (0 if value is False else None)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteRunRepository(RunRepository):
    """
    SQLite-based run history storage.

    Uses a single database file with two tables:
    - runs: One row per chain run
    - operations: Operation records with foreign key to runs
    """

    def __init__(self, db_path: str = "chainsop_history.db"):
        """
        Initialize the SQLite repository.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = await aiosqlite.connect(self.db_path)
            # Required for the operations cascade
            await self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    async def initialize(self) -> None:
        """
        Create database tables if they don't exist.

        Schema:
        - runs table: id, label, success, error, start/end times, output paths
        - operations table: sequential operation records for each run
        """
        conn = await self._get_connection()

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS runs (
                id TEXT PRIMARY KEY,
                label TEXT NOT NULL,
                success INTEGER,
                error TEXT,
                start_time TEXT,
                end_time TEXT,
                output TEXT
            )
        """)

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS operations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                label TEXT NOT NULL,
                outcome TEXT NOT NULL,
                exe TEXT,
                args TEXT,
                directory TEXT,
                returncode INTEGER,
                stderr TEXT,
                started_at TEXT,
                finished_at TEXT,
                FOREIGN KEY (run_id) REFERENCES runs(id) ON DELETE CASCADE
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_operations_run_id
            ON operations(run_id)
        """)

        await conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def save_run(self, run: ChainRun) -> None:
        conn = await self._get_connection()

        # Replacing the run row cascades to its previous operations
        await conn.execute("DELETE FROM runs WHERE id = ?", (run.id,))
        await conn.execute(
            """
            INSERT INTO runs (id, label, success, error, start_time, end_time, output)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                run.id,
                run.label,
                _int_or_none(run.success),
                run.error,
                _iso(run.start_time),
                _iso(run.end_time),
                json.dumps(run.output),
            ),
        )
        await conn.executemany(
            """
            INSERT INTO operations (
                run_id, kind, label, outcome, exe, args, directory,
                returncode, stderr, started_at, finished_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    run.id,
                    op.kind,
                    op.label,
                    op.outcome,
                    op.exe,
                    json.dumps(op.args),
                    op.directory,
                    op.returncode,
                    op.stderr,
                    _iso(op.started_at),
                    _iso(op.finished_at),
                )
                for op in run.operations
            ],
        )
        await conn.commit()
        logger.debug(f"Saved run {run.id} with {len(run.operations)} operation(s)")

    async def get_run(self, run_id: str) -> ChainRun | None:
        conn = await self._get_connection()

        cursor = await conn.execute(
            "SELECT id, label, success, error, start_time, end_time, output FROM runs WHERE id = ?",
            (run_id,),
        )
        row = await cursor.fetchone()

        if row is None:
            return None

        run = self._row_to_run(row)
        run.operations = await self._get_operations(run_id)
        return run

    async def _get_operations(self, run_id: str) -> list[OperationRecord]:
        conn = await self._get_connection()

        cursor = await conn.execute(
            """
            SELECT kind, label, outcome, exe, args, directory,
                   returncode, stderr, started_at, finished_at
            FROM operations
            WHERE run_id = ?
            ORDER BY id
            """,
            (run_id,),
        )
        rows = await cursor.fetchall()

        operations = []
        for row in rows:
            (
                kind,
                label,
                outcome,
                exe,
                args,
                directory,
                returncode,
                stderr,
                started_at,
                finished_at,
            ) = row
            operations.append(
                OperationRecord(
                    kind=kind,
                    label=label,
                    outcome=outcome,
                    exe=exe,
                    args=json.loads(args) if args else [],
                    directory=directory,
                    returncode=returncode,
                    stderr=stderr,
                    started_at=_from_iso(started_at),
                    finished_at=_from_iso(finished_at),
                )
            )
        return operations

    async def list_runs(self, limit: int | None = None) -> list[ChainRun]:
        conn = await self._get_connection()

        cursor = await conn.execute(
            """
            SELECT r.id, r.label, r.success, r.error, r.start_time, r.end_time, r.output,
                   (SELECT COUNT(*) FROM operations o WHERE o.run_id = r.id)
            FROM runs r
            ORDER BY r.start_time DESC
            LIMIT ?
            """,
            (limit if limit is not None else -1,),
        )
        rows = await cursor.fetchall()

        # Operations are not loaded for listing efficiency, only counted
        runs = []
        for row in rows:
            run = self._row_to_run(row[:7])
            run.operation_count = row[7]
            runs.append(run)
        return runs

    async def delete_run(self, run_id: str) -> bool:
        conn = await self._get_connection()

        cursor = await conn.execute("DELETE FROM runs WHERE id = ?", (run_id,))
        await conn.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_run(row) -> ChainRun:
        run_id, label, success, error, start_time, end_time, output = row
        return ChainRun(
            id=run_id,
            label=label,
            success=_bool_or_none(success),
            error=error,
            start_time=_from_iso(start_time),
            end_time=_from_iso(end_time),
            output=json.loads(output) if output else [],
        )
