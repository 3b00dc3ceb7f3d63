from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Generator, List, Optional, Tuple

from .errors import PersistenceError
from .models import NewTask, TaskEntity, TaskPatch, TaskPriority, TaskStatus
from .repositories import ListQuery, Repository, new_task_id, utc_now
from .utils import page_offset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    owner_id: str = "owner_id"
    title: str = "title"
    description: str = "description"
    due_date: str = "due_date"
    priority: str = "priority"
    status: str = "status"
    summary: str = "summary"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()

# TaskPatch field -> column. Only these columns are ever written by update().
_PATCH_COLUMNS = {
    "title": _COLS.title,
    "description": _COLS.description,
    "due_date": _COLS.due_date,
    "priority": _COLS.priority,
    "status": _COLS.status,
    "summary": _COLS.summary,
}


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.

    Each operation runs in its own connection and transaction; a failed
    statement rolls the whole write back, so no partial field updates are
    ever committed.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            logger.exception("Unable to open task database at %s", self._db_path)
            raise PersistenceError() from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.exception("Task database operation failed")
            raise PersistenceError() from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.owner_id} TEXT NOT NULL,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NOT NULL,
                    {_COLS.due_date} TEXT NOT NULL,
                    {_COLS.priority} TEXT NOT NULL,
                    {_COLS.status} TEXT NOT NULL DEFAULT 'todo',
                    {_COLS.summary} TEXT NULL,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_owner_priority "
                f"ON {_COLS.table}({_COLS.owner_id}, {_COLS.priority})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_owner_due_date "
                f"ON {_COLS.table}({_COLS.owner_id}, {_COLS.due_date})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_COLS.id]),
            "owner_id": str(row[_COLS.owner_id]),
            "title": str(row[_COLS.title]),
            "description": str(row[_COLS.description]),
            "due_date": date.fromisoformat(row[_COLS.due_date]),
            "priority": TaskPriority(row[_COLS.priority]),
            "status": TaskStatus(row[_COLS.status]),
            "summary": row[_COLS.summary],
            "created_at": datetime.fromisoformat(row[_COLS.created_at]),
            "updated_at": datetime.fromisoformat(row[_COLS.updated_at]),
        }

    def _select_owned(self, conn: sqlite3.Connection, task_id: str, owner_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?",
            (task_id, owner_id),
        ).fetchone()

    def create(self, task: NewTask) -> TaskEntity:
        now = utc_now().isoformat()
        task_id = new_task_id()
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.owner_id}, {_COLS.title}, {_COLS.description},
                    {_COLS.due_date}, {_COLS.priority}, {_COLS.status}, {_COLS.summary},
                    {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?, NULL, ?, ?)
                """,
                (
                    task_id,
                    task.owner_id,
                    task.title,
                    task.description,
                    task.due_date.isoformat(),
                    task.priority.value,
                    TaskStatus.TODO.value,
                    now,
                    now,
                ),
            )
            row = self._select_owned(conn, task_id, task.owner_id)
            assert row is not None
            return self._row_to_entity(row)

    def find_one(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = self._select_owned(conn, task_id, owner_id)
            return self._row_to_entity(row) if row else None

    def find_many(self, owner_id: str, query: Optional[ListQuery] = None) -> Tuple[List[TaskEntity], int]:
        q = query or ListQuery()
        clauses = [f"{_COLS.owner_id} = ?"]
        params: list = [owner_id]

        if q.priority is not None:
            clauses.append(f"{_COLS.priority} = ?")
            params.append(q.priority.value)

        if q.due_on_or_before is not None:
            # ISO dates compare correctly as text
            clauses.append(f"{_COLS.due_date} <= ?")
            params.append(q.due_on_or_before.isoformat())

        where_sql = f"WHERE {' AND '.join(clauses)}"
        order_sql = f"ORDER BY {_COLS.due_date} ASC, {_COLS.id} ASC"

        with self._conn() as conn:
            count_row = conn.execute(
                f"SELECT COUNT(*) as cnt FROM {_COLS.table} {where_sql}", params
            ).fetchone()
            total = int(count_row["cnt"]) if count_row else 0

            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                {where_sql}
                {order_sql}
                LIMIT ? OFFSET ?
                """,
                [*params, q.page_size, page_offset(q.page, q.page_size)],
            ).fetchall()
            return [self._row_to_entity(r) for r in rows], total

    def update(self, task_id: str, owner_id: str, patch: TaskPatch) -> Optional[TaskEntity]:
        changes = patch.changes()
        assignments = [f"{_PATCH_COLUMNS[name]} = ?" for name in changes]
        values = [_to_db(v) for v in changes.values()]
        assignments.append(f"{_COLS.updated_at} = ?")
        values.append(utc_now().isoformat())

        with self._conn() as conn:
            cur = conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {', '.join(assignments)}
                WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?
                """,
                (*values, task_id, owner_id),
            )
            if cur.rowcount == 0:
                return None
            row = self._select_owned(conn, task_id, owner_id)
            assert row is not None
            return self._row_to_entity(row)

    def delete(self, task_id: str, owner_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ? AND {_COLS.owner_id} = ?",
                (task_id, owner_id),
            )
            return cur.rowcount > 0
