"""DuckDB-backed persistence for file records.

Database Schema:
    file_records table:
        - id: Identity drawn from file_records_seq, never reused
        - content_hash / pathname_hash: SHA-1 digests
        - context_id, component, filearea, item_id: logical coordinates
        - filepath, filename, user_id, filesize, mimetype, status
        - source, author, license: descriptive metadata
        - time_created, time_modified: epoch seconds
        - sort_order, reference_file_id

Indexes cover the coordinate lookup, reference counting by content hash and
the retention scan by creation time.

Thread Safety:
    One DuckDB connection is shared by the whole process. Sync FastAPI
    endpoints run on a threadpool, so every statement is executed under a
    lock. Cross-record invariants (reference counts) are still read-then-act
    and therefore best effort.
"""
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import duckdb

from ..errors import FileRecordNotFoundError
from .schemas import DRAFT_COMPONENT, DRAFT_FILEAREA, FileRecord

logger = logging.getLogger(__name__)

_COLUMNS = [
    "id", "content_hash", "pathname_hash", "context_id", "component",
    "filearea", "item_id", "filepath", "filename", "user_id", "filesize",
    "mimetype", "status", "source", "author", "license", "time_created",
    "time_modified", "sort_order", "reference_file_id",
]
_MUTABLE_COLUMNS = _COLUMNS[1:]
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM file_records"


class FileRecordRepository:
    """Find / save / delete / query operations over file records."""

    _db_path: str = "file_records.duckdb"

    def __init__(self, db_path: Optional[str] = None) -> None:
        """Open (or create) the database at *db_path*; ":memory:" works too."""
        if db_path:
            self._db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self._initialize_db()

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Create the sequence, table and indexes (idempotent)."""
        conn = self._get_connection()
        conn.execute("CREATE SEQUENCE IF NOT EXISTS file_records_seq START 1")
        # Identity is unique through the sequence alone. DuckDB rewrites an
        # UPDATE touching indexed columns as delete+insert, which a PRIMARY KEY
        # would reject inside the same statement.
        conn.execute("""
            CREATE TABLE IF NOT EXISTS file_records (
                id BIGINT NOT NULL DEFAULT nextval('file_records_seq'),
                content_hash VARCHAR(40) NOT NULL,
                pathname_hash VARCHAR(40) NOT NULL,
                context_id BIGINT NOT NULL,
                component VARCHAR(100) NOT NULL,
                filearea VARCHAR(50) NOT NULL,
                item_id BIGINT NOT NULL,
                filepath VARCHAR(255) NOT NULL,
                filename VARCHAR(255) NOT NULL,
                user_id BIGINT,
                filesize BIGINT NOT NULL,
                mimetype VARCHAR(100),
                status BIGINT NOT NULL,
                source VARCHAR,
                author VARCHAR(255),
                license VARCHAR(255),
                time_created BIGINT NOT NULL,
                time_modified BIGINT NOT NULL,
                sort_order BIGINT NOT NULL,
                reference_file_id BIGINT
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_file_records_coordinates
            ON file_records(context_id, component, filearea, item_id)
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_file_records_content_hash ON file_records(content_hash)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_file_records_pathname_hash ON file_records(pathname_hash)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_file_records_time_created ON file_records(time_created)"
        )

    def _execute(self, sql: str, params: Optional[list] = None) -> duckdb.DuckDBPyConnection:
        with self._lock:
            return self._get_connection().execute(sql, params or [])

    def _fetchall(self, sql: str, params: Optional[list] = None) -> List[tuple]:
        with self._lock:
            return self._get_connection().execute(sql, params or []).fetchall()

    def _fetchone(self, sql: str, params: Optional[list] = None) -> Optional[tuple]:
        with self._lock:
            return self._get_connection().execute(sql, params or []).fetchone()

    @staticmethod
    def _row_to_record(row: tuple) -> FileRecord:
        return FileRecord(**dict(zip(_COLUMNS, row)))

    @staticmethod
    def _where(criteria: Dict[str, Any]) -> tuple:
        clauses = []
        params = []
        for column, value in criteria.items():
            if column not in _COLUMNS:
                raise ValueError(f"Unknown file record column: {column}")
            if value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = ?")
                params.append(value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    # -----------------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------------

    def find(self, file_id: int) -> Optional[FileRecord]:
        """Get a record by identity."""
        row = self._fetchone(f"{_SELECT} WHERE id = ?", [file_id])
        return self._row_to_record(row) if row else None

    def get(self, file_id: int) -> FileRecord:
        """Like find, but a missing record raises FileRecordNotFoundError."""
        record = self.find(file_id)
        if record is None:
            raise FileRecordNotFoundError(file_id)
        return record

    def find_by(self, **criteria: Any) -> List[FileRecord]:
        """All records whose columns equal *criteria* (None matches NULL), oldest first."""
        where, params = self._where(criteria)
        rows = self._fetchall(f"{_SELECT}{where} ORDER BY id ASC", params)
        return [self._row_to_record(r) for r in rows]

    def find_one_by(self, **criteria: Any) -> Optional[FileRecord]:
        """First record matching *criteria*, or None."""
        where, params = self._where(criteria)
        row = self._fetchone(f"{_SELECT}{where} ORDER BY id ASC LIMIT 1", params)
        return self._row_to_record(row) if row else None

    def find_by_coordinates(
        self,
        component: str,
        filearea: str,
        item_id: int,
        context_id: Optional[int] = None,
    ) -> List[FileRecord]:
        criteria = {"component": component, "filearea": filearea, "item_id": item_id}
        if context_id is not None:
            criteria["context_id"] = context_id
        return self.find_by(**criteria)

    def count_same_content(
        self,
        content_hash: str,
        exclude_ids: Iterable[int] = (),
    ) -> int:
        """Number of records referencing *content_hash*, not counting *exclude_ids*."""
        exclude_ids = [i for i in exclude_ids if i is not None]
        sql = "SELECT COUNT(id) FROM file_records WHERE content_hash = ?"
        params: list = [content_hash]
        if exclude_ids:
            sql += f" AND id NOT IN ({', '.join('?' for _ in exclude_ids)})"
            params.extend(exclude_ids)
        return int(self._fetchone(sql, params)[0])

    def find_older_than(
        self,
        timestamp: int,
        component: str = DRAFT_COMPONENT,
        filearea: str = DRAFT_FILEAREA,
    ) -> List[FileRecord]:
        """Records in (component, filearea) created strictly before *timestamp*."""
        rows = self._fetchall(
            f"""
            {_SELECT}
            WHERE component = ? AND filearea = ? AND time_created < ?
            ORDER BY id ASC
            """,
            [component, filearea, timestamp],
        )
        return [self._row_to_record(r) for r in rows]

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    def save(self, record: FileRecord) -> FileRecord:
        """Insert a new record (assigning its id) or update an existing one."""
        values = [getattr(record, c) for c in _MUTABLE_COLUMNS]
        if record.id is None:
            row = self._fetchone(
                f"""
                INSERT INTO file_records ({', '.join(_MUTABLE_COLUMNS)})
                VALUES ({', '.join('?' for _ in _MUTABLE_COLUMNS)})
                RETURNING id
                """,
                values,
            )
            record.id = int(row[0])
            logger.debug("Inserted file record %s", record.id)
        else:
            set_clause = ", ".join(f"{c} = ?" for c in _MUTABLE_COLUMNS)
            self._execute(
                f"UPDATE file_records SET {set_clause} WHERE id = ?",
                values + [record.id],
            )
            logger.debug("Updated file record %s", record.id)
        return record

    def delete(self, file_id: int) -> bool:
        row = self._fetchone("DELETE FROM file_records WHERE id = ? RETURNING id", [file_id])
        return row is not None

    def delete_many(self, file_ids: Iterable[int]) -> int:
        """Delete several records in one statement; returns how many went."""
        file_ids = list(file_ids)
        if not file_ids:
            return 0
        rows = self._fetchall(
            f"DELETE FROM file_records WHERE id IN ({', '.join('?' for _ in file_ids)}) RETURNING id",
            file_ids,
        )
        return len(rows)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
