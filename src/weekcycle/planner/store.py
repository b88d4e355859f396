# src/weekcycle/planner/store.py

from __future__ import annotations

import contextlib
import copy
import json
import logging
import sqlite3
from collections.abc import Callable, Iterator
from datetime import date, datetime
from pathlib import Path
from typing import Any

from ..core.errors import StoreError
from .models import (
    Attachment,
    Day,
    DayStatus,
    Task,
    TaskCategory,
    TaskZone,
    Week,
    WeekStatus,
)

logger = logging.getLogger(__name__)


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _str_to_dt(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


class PlannerStore:
    """
    SQLite store for the Week -> Day -> Task graph.

    Weeks are loaded as whole aggregates into an identity map keyed by week_key,
    so every fetch of the same key returns the same object. Mutations stay in
    memory until save(), which writes every changed aggregate in one transaction.
    A failed save() keeps the in-memory state; the next save() retries it.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    All sqlite3 errors surface as StoreError.
    """

    def __init__(self, db_path: str | Path = "planner.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._weeks: dict[str, Week] = {}
        # Last persisted copy of each loaded aggregate; save() skips unchanged ones.
        self._clean: dict[str, Week] = {}
        self._deleted: set[str] = set()

        self._ensure_schema()
        try:
            total = self.count_weeks()
        except StoreError:
            total = -1
        logger.info("PlannerStore ready db=%s weeks=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreError(f"cannot open {self._db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            with contextlib.suppress(sqlite3.Error):
                conn.rollback()
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._conn() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS weeks (
                    week_key TEXT PRIMARY KEY,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    completed_count INTEGER NOT NULL DEFAULT 0,
                    expired_count INTEGER NOT NULL DEFAULT 0,
                    started_days INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS days (
                    day_key TEXT PRIMARY KEY,
                    week_key TEXT NOT NULL,
                    date TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'empty',
                    deadline_hour INTEGER NOT NULL DEFAULT 20,
                    deadline_minute INTEGER NOT NULL DEFAULT 0,
                    started_at TEXT,
                    closed_at TEXT,
                    expired_count INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    task_id TEXT PRIMARY KEY,
                    day_key TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL DEFAULT 'regular',
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    zone TEXT NOT NULL DEFAULT 'planning',
                    started_at TEXT,
                    ended_at TEXT,
                    completed_order INTEGER NOT NULL DEFAULT 0,
                    steps TEXT NOT NULL DEFAULT '[]'
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_attachments (
                    attachment_id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    file_name TEXT NOT NULL,
                    file_type TEXT NOT NULL,
                    data BLOB,
                    created_at TEXT NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            def add_cols(table: str, decls: dict[str, str]) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                for name, decl in decls.items():
                    if name in cols:
                        continue
                    cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                    logger.info("PlannerStore migration: added column %s.%s", table, name)

            add_cols(
                "weeks",
                {
                    "completed_count": "INTEGER NOT NULL DEFAULT 0",
                    "expired_count": "INTEGER NOT NULL DEFAULT 0",
                    "started_days": "INTEGER NOT NULL DEFAULT 0",
                },
            )
            add_cols(
                "days",
                {
                    "deadline_hour": "INTEGER NOT NULL DEFAULT 20",
                    "deadline_minute": "INTEGER NOT NULL DEFAULT 0",
                    "started_at": "TEXT",
                    "closed_at": "TEXT",
                    "expired_count": "INTEGER NOT NULL DEFAULT 0",
                },
            )
            add_cols(
                "tasks",
                {
                    "description": "TEXT NOT NULL DEFAULT ''",
                    "category": "TEXT NOT NULL DEFAULT 'regular'",
                    "completed_order": "INTEGER NOT NULL DEFAULT 0",
                    "steps": "TEXT NOT NULL DEFAULT '[]'",
                },
            )

            cur.execute("CREATE INDEX IF NOT EXISTS idx_weeks_status ON weeks(status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_days_week ON days(week_key)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_day ON tasks(day_key)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_attachments_task ON task_attachments(task_id)")

            conn.commit()

    @staticmethod
    def _steps_to_str(steps: list[str] | None) -> str:
        return json.dumps(list(steps or []), ensure_ascii=False)

    @staticmethod
    def _str_to_steps(s: str | None) -> list[str]:
        if not s:
            return []
        try:
            val = json.loads(s)
        except ValueError:
            return []
        return [str(x) for x in val] if isinstance(val, list) else []

    def _load_week(self, conn: sqlite3.Connection, week_key: str) -> Week | None:
        cur = conn.cursor()
        cur.execute("SELECT * FROM weeks WHERE week_key = ?", (week_key,))
        row = cur.fetchone()
        if row is None:
            return None

        week = Week(
            week_key=str(row["week_key"]),
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
            status=WeekStatus.from_db(row["status"]),
            completed_count=int(row["completed_count"] or 0),
            expired_count=int(row["expired_count"] or 0),
            started_days=int(row["started_days"] or 0),
        )

        cur.execute("SELECT * FROM days WHERE week_key = ? ORDER BY date ASC", (week_key,))
        for drow in cur.fetchall():
            week.days.append(
                Day(
                    day_key=str(drow["day_key"]),
                    week_key=week.week_key,
                    date=date.fromisoformat(drow["date"]),
                    status=DayStatus.from_db(drow["status"]),
                    deadline_hour=int(drow["deadline_hour"]),
                    deadline_minute=int(drow["deadline_minute"]),
                    started_at=_str_to_dt(drow["started_at"]),
                    closed_at=_str_to_dt(drow["closed_at"]),
                    expired_count=int(drow["expired_count"] or 0),
                )
            )

        days = {d.day_key: d for d in week.days}
        if not days:
            return week

        placeholders = ",".join("?" for _ in days)
        cur.execute(
            f"SELECT * FROM tasks WHERE day_key IN ({placeholders}) ORDER BY sort_order ASC",
            list(days),
        )
        tasks: dict[str, Task] = {}
        for trow in cur.fetchall():
            task = Task(
                task_id=str(trow["task_id"]),
                day_key=str(trow["day_key"]),
                title=str(trow["title"] or ""),
                order=int(trow["sort_order"] or 0),
                zone=TaskZone.from_db(trow["zone"]),
                category=TaskCategory.from_db(trow["category"]),
                description=str(trow["description"] or ""),
                started_at=_str_to_dt(trow["started_at"]),
                ended_at=_str_to_dt(trow["ended_at"]),
                completed_order=int(trow["completed_order"] or 0),
                steps=self._str_to_steps(trow["steps"]),
            )
            days[task.day_key].tasks.append(task)
            tasks[task.task_id] = task

        if tasks:
            placeholders = ",".join("?" for _ in tasks)
            cur.execute(
                f"SELECT * FROM task_attachments WHERE task_id IN ({placeholders}) ORDER BY created_at ASC",
                list(tasks),
            )
            for arow in cur.fetchall():
                tasks[arow["task_id"]].attachments.append(
                    Attachment(
                        attachment_id=str(arow["attachment_id"]),
                        file_name=str(arow["file_name"]),
                        file_type=str(arow["file_type"]),
                        data=arow["data"],
                        created_at=_str_to_dt(arow["created_at"]) or datetime.now(),
                    )
                )

        return week

    def _track(self, week: Week) -> Week:
        self._weeks[week.week_key] = week
        self._clean[week.week_key] = copy.deepcopy(week)
        return week

    @staticmethod
    def _write_week(conn: sqlite3.Connection, week: Week) -> None:
        conn.execute(
            """
            INSERT INTO weeks(week_key, start_date, end_date, status,
                              completed_count, expired_count, started_days)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(week_key) DO UPDATE SET
                start_date = excluded.start_date,
                end_date = excluded.end_date,
                status = excluded.status,
                completed_count = excluded.completed_count,
                expired_count = excluded.expired_count,
                started_days = excluded.started_days
            """,
            (
                week.week_key,
                week.start_date.isoformat(),
                week.end_date.isoformat(),
                week.status.value,
                int(week.completed_count),
                int(week.expired_count),
                int(week.started_days),
            ),
        )

        for day in week.days:
            conn.execute(
                """
                INSERT INTO days(day_key, week_key, date, status, deadline_hour, deadline_minute,
                                 started_at, closed_at, expired_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(day_key) DO UPDATE SET
                    week_key = excluded.week_key,
                    date = excluded.date,
                    status = excluded.status,
                    deadline_hour = excluded.deadline_hour,
                    deadline_minute = excluded.deadline_minute,
                    started_at = excluded.started_at,
                    closed_at = excluded.closed_at,
                    expired_count = excluded.expired_count
                """,
                (
                    day.day_key,
                    week.week_key,
                    day.date.isoformat(),
                    day.status.value,
                    int(day.deadline_hour),
                    int(day.deadline_minute),
                    _dt_to_str(day.started_at),
                    _dt_to_str(day.closed_at),
                    int(day.expired_count),
                ),
            )

            # Tasks are rewritten per day: the in-memory list is authoritative.
            conn.execute(
                "DELETE FROM task_attachments WHERE task_id IN (SELECT task_id FROM tasks WHERE day_key = ?)",
                (day.day_key,),
            )
            conn.execute("DELETE FROM tasks WHERE day_key = ?", (day.day_key,))
            for task in day.tasks:
                conn.execute(
                    """
                    INSERT INTO tasks(task_id, day_key, title, description, category, sort_order,
                                      zone, started_at, ended_at, completed_order, steps)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        task.task_id,
                        day.day_key,
                        task.title,
                        task.description,
                        task.category.value,
                        int(task.order),
                        task.zone.value,
                        _dt_to_str(task.started_at),
                        _dt_to_str(task.ended_at),
                        int(task.completed_order),
                        PlannerStore._steps_to_str(task.steps),
                    ),
                )
                for att in task.attachments:
                    conn.execute(
                        """
                        INSERT INTO task_attachments(attachment_id, task_id, file_name, file_type, data, created_at)
                        VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (
                            att.attachment_id,
                            task.task_id,
                            att.file_name,
                            att.file_type,
                            att.data,
                            att.created_at.isoformat(),
                        ),
                    )

    @staticmethod
    def _erase_week(conn: sqlite3.Connection, week_key: str) -> None:
        conn.execute(
            """
            DELETE FROM task_attachments WHERE task_id IN (
                SELECT t.task_id FROM tasks t JOIN days d ON d.day_key = t.day_key
                WHERE d.week_key = ?
            )
            """,
            (week_key,),
        )
        conn.execute(
            "DELETE FROM tasks WHERE day_key IN (SELECT day_key FROM days WHERE week_key = ?)",
            (week_key,),
        )
        conn.execute("DELETE FROM days WHERE week_key = ?", (week_key,))
        conn.execute("DELETE FROM weeks WHERE week_key = ?", (week_key,))

    # ---- public API ----

    def count_weeks(self) -> int:
        with self._conn() as conn:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM weeks")
            (n,) = cur.fetchone()
            return int(n)

    def fetch_week(self, week_key: str) -> Week | None:
        if week_key in self._weeks:
            return self._weeks[week_key]
        if week_key in self._deleted:
            return None

        with self._conn() as conn:
            week = self._load_week(conn, week_key)
        if week is None:
            return None
        logger.debug("Loaded week %s status=%s", week.week_key, week.status.value)
        return self._track(week)

    def fetch_weeks(
        self,
        predicate: Callable[[Week], bool] | None = None,
        *,
        status: WeekStatus | None = None,
    ) -> list[Week]:
        """
        All weeks matching `status` and `predicate`, sorted by week_key.

        Filtering runs on the in-memory objects, so unsaved mutations are honored.
        """
        with self._conn() as conn:
            cur = conn.cursor()
            cur.execute("SELECT week_key FROM weeks")
            keys = {str(r["week_key"]) for r in cur.fetchall()}

        keys |= set(self._weeks)
        keys -= self._deleted

        out: list[Week] = []
        for key in sorted(keys):
            week = self.fetch_week(key)
            if week is None:
                continue
            if status is not None and week.status != status:
                continue
            if predicate is not None and not predicate(week):
                continue
            out.append(week)
        return out

    def fetch_day(self, day_key: str) -> Day | None:
        for week in self._weeks.values():
            day = week.day(day_key)
            if day is not None:
                return day

        with self._conn() as conn:
            cur = conn.cursor()
            cur.execute("SELECT week_key FROM days WHERE day_key = ?", (day_key,))
            row = cur.fetchone()
        if row is None:
            return None

        week = self.fetch_week(str(row["week_key"]))
        return week.day(day_key) if week is not None else None

    def insert(self, week: Week) -> None:
        if self.fetch_week(week.week_key) is not None:
            raise StoreError(f"week {week.week_key} already exists")
        self._weeks[week.week_key] = week
        self._deleted.discard(week.week_key)
        logger.debug("Inserted week %s status=%s", week.week_key, week.status.value)

    def delete(self, entity: Week | Task) -> None:
        if isinstance(entity, Week):
            self._weeks.pop(entity.week_key, None)
            self._clean.pop(entity.week_key, None)
            self._deleted.add(entity.week_key)
            logger.debug("Deleted week %s", entity.week_key)
            return

        if isinstance(entity, Task):
            day = self.fetch_day(entity.day_key)
            if day is not None and entity in day.tasks:
                day.tasks.remove(entity)
                logger.debug("Deleted task %s from day %s", entity.task_id, entity.day_key)
            return

        raise TypeError(f"cannot delete {type(entity).__name__}")

    def save(self) -> None:
        dirty = [w for key, w in self._weeks.items() if self._clean.get(key) != w]
        deleted = sorted(self._deleted)
        if not dirty and not deleted:
            return

        with self._conn() as conn:
            for key in deleted:
                self._erase_week(conn, key)
            for week in dirty:
                self._write_week(conn, week)
            conn.commit()

        self._deleted.difference_update(deleted)
        for week in dirty:
            self._clean[week.week_key] = copy.deepcopy(week)
        logger.debug("Saved weeks=%s deleted=%s", [w.week_key for w in dirty], deleted)

    def stats(self) -> dict[str, Any]:
        with self._conn() as conn:
            cur = conn.cursor()
            cur.execute("SELECT status, COUNT(*) AS n FROM weeks GROUP BY status")
            by_status = {str(r["status"]): int(r["n"]) for r in cur.fetchall()}
            cur.execute("SELECT COUNT(*) FROM tasks")
            (tasks,) = cur.fetchone()
        return {"weeks": by_status, "tasks": int(tasks)}
