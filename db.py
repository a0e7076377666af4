import asyncio
import datetime
import logging
import sqlite3
from contextlib import contextmanager, asynccontextmanager
from typing import Iterable, List, Optional, Tuple

import aiosqlite

from config import YamlConfig
from models import Baseline, Prescription, RepQuality, SchemeType, SetLog, SetType
from settings_schema import validate_settings

logger = logging.getLogger(__name__)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "programs": (
            """CREATE TABLE programs (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    created_at TEXT NOT NULL
                );""",
            ["id", "name", "description", "created_at"],
        ),
        "plans": (
            """CREATE TABLE plans (
                    id TEXT PRIMARY KEY,
                    program_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    days_per_week INTEGER NOT NULL,
                    FOREIGN KEY(program_id) REFERENCES programs(id) ON DELETE CASCADE
                );""",
            ["id", "program_id", "name", "days_per_week"],
        ),
        "workout_days": (
            """CREATE TABLE workout_days (
                    id TEXT PRIMARY KEY,
                    plan_id TEXT NOT NULL,
                    day_number INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    focus TEXT,
                    estimated_duration INTEGER,
                    FOREIGN KEY(plan_id) REFERENCES plans(id) ON DELETE CASCADE
                );""",
            ["id", "plan_id", "day_number", "name", "focus", "estimated_duration"],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    canonical_name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    movement_pattern TEXT NOT NULL,
                    equipment TEXT NOT NULL DEFAULT '',
                    is_calisthenics INTEGER NOT NULL DEFAULT 0,
                    form_notes TEXT
                );""",
            [
                "id",
                "name",
                "canonical_name",
                "category",
                "movement_pattern",
                "equipment",
                "is_calisthenics",
                "form_notes",
            ],
        ),
        "exercise_blocks": (
            """CREATE TABLE exercise_blocks (
                    id TEXT PRIMARY KEY,
                    day_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    block_type TEXT NOT NULL DEFAULT 'straight',
                    rest_seconds INTEGER NOT NULL DEFAULT 120,
                    exercise_ids TEXT NOT NULL DEFAULT '',
                    FOREIGN KEY(day_id) REFERENCES workout_days(id) ON DELETE CASCADE
                );""",
            ["id", "day_id", "position", "block_type", "rest_seconds", "exercise_ids"],
        ),
        "day_exercises": (
            """CREATE TABLE day_exercises (
                    id TEXT PRIMARY KEY,
                    day_id TEXT NOT NULL,
                    block_id TEXT,
                    exercise_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    scheme_type TEXT NOT NULL,
                    is_optional INTEGER NOT NULL DEFAULT 0,
                    sets_min INTEGER NOT NULL,
                    sets_max INTEGER NOT NULL,
                    reps_min INTEGER NOT NULL,
                    reps_max INTEGER NOT NULL,
                    rest_seconds INTEGER NOT NULL,
                    notes TEXT,
                    current_phase_reps INTEGER NOT NULL,
                    FOREIGN KEY(day_id) REFERENCES workout_days(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id)
                );""",
            [
                "id",
                "day_id",
                "block_id",
                "exercise_id",
                "position",
                "scheme_type",
                "is_optional",
                "sets_min",
                "sets_max",
                "reps_min",
                "reps_max",
                "rest_seconds",
                "notes",
                "current_phase_reps",
            ],
        ),
        "sessions": (
            """CREATE TABLE sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    plan_id TEXT NOT NULL,
                    day_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    bodyweight_kg REAL,
                    notes TEXT NOT NULL DEFAULT '',
                    completed INTEGER NOT NULL DEFAULT 0
                );""",
            [
                "id",
                "plan_id",
                "day_id",
                "date",
                "start_time",
                "end_time",
                "bodyweight_kg",
                "notes",
                "completed",
            ],
        ),
        "set_logs": (
            """CREATE TABLE set_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id INTEGER NOT NULL,
                    exercise_id TEXT NOT NULL,
                    day_exercise_id TEXT NOT NULL,
                    block_id TEXT,
                    set_number INTEGER NOT NULL,
                    set_type TEXT NOT NULL DEFAULT 'working',
                    weight_kg REAL NOT NULL,
                    external_load_kg REAL NOT NULL DEFAULT 0,
                    reps INTEGER NOT NULL,
                    rpe INTEGER,
                    rep_quality TEXT NOT NULL DEFAULT 'ok',
                    tempo TEXT,
                    notes TEXT NOT NULL DEFAULT '',
                    modifiers TEXT NOT NULL DEFAULT '',
                    timestamp TEXT NOT NULL,
                    UNIQUE (session_id, day_exercise_id, set_number),
                    FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE,
                    FOREIGN KEY(day_exercise_id) REFERENCES day_exercises(id)
                );""",
            [
                "id",
                "session_id",
                "exercise_id",
                "day_exercise_id",
                "block_id",
                "set_number",
                "set_type",
                "weight_kg",
                "external_load_kg",
                "reps",
                "rpe",
                "rep_quality",
                "tempo",
                "notes",
                "modifiers",
                "timestamp",
            ],
        ),
        "baselines": (
            """CREATE TABLE baselines (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    exercise_id TEXT NOT NULL,
                    day_exercise_id TEXT NOT NULL,
                    set_number INTEGER NOT NULL,
                    weight_kg REAL NOT NULL,
                    reps INTEGER NOT NULL,
                    established_at TEXT NOT NULL,
                    phase_reps INTEGER NOT NULL,
                    UNIQUE (day_exercise_id, set_number, phase_reps),
                    FOREIGN KEY(day_exercise_id) REFERENCES day_exercises(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "exercise_id",
                "day_exercise_id",
                "set_number",
                "weight_kg",
                "reps",
                "established_at",
                "phase_reps",
            ],
        ),
        "session_exercise_notes": (
            """CREATE TABLE session_exercise_notes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id INTEGER NOT NULL,
                    exercise_id TEXT NOT NULL,
                    note TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(session_id) REFERENCES sessions(id) ON DELETE CASCADE
                );""",
            ["id", "session_id", "exercise_id", "note", "created_at"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        logger.info("migrating table %s", table)
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col == "set_type":
                        return "'working'"
                    if col == "rep_quality":
                        return "'ok'"
                    if col in ("notes", "modifiers", "equipment", "exercise_ids"):
                        return "''"
                    if col in ("external_load_kg", "completed", "is_optional", "is_calisthenics"):
                        return "0"
                    if col in ("created_at", "timestamp", "established_at", "start_time"):
                        return "CURRENT_TIMESTAMP"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            "weight_unit": "kg",
            "current_plan_id": "plan-a",
            "current_week": "1",
            "current_phase": "1",
            "log_level": "INFO",
            "app_version": "1.0.0",
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


def _now() -> str:
    return datetime.datetime.now().isoformat()


def _validate_set(reps: int, weight_kg: float) -> None:
    if reps < 0:
        raise ValueError("reps must be non-negative")
    if weight_kg < 0:
        raise ValueError("weight must be non-negative")


def _begin_write(conn) -> None:
    # Take the write lock before reading MAX(set_number).
    conn.execute("BEGIN IMMEDIATE;")


def _next_set_number(conn, session_id: int, prescription_id: str) -> int:
    row = conn.execute(
        "SELECT COALESCE(MAX(set_number), 0) + 1 FROM set_logs WHERE session_id = ? AND day_exercise_id = ?;",
        (session_id, prescription_id),
    ).fetchone()
    return int(row[0])


_SET_COLUMNS = (
    "id, session_id, exercise_id, day_exercise_id, block_id, set_number, set_type, "
    "weight_kg, external_load_kg, reps, rpe, rep_quality, tempo, notes, modifiers, timestamp"
)


def _row_to_set_log(row: Tuple) -> SetLog:
    (
        sid,
        session_id,
        exercise_id,
        prescription_id,
        block_id,
        set_number,
        set_type,
        weight,
        external,
        reps,
        rpe,
        quality,
        tempo,
        notes,
        modifiers,
        timestamp,
    ) = row
    return SetLog(
        id=sid,
        session_id=session_id,
        exercise_id=exercise_id,
        prescription_id=prescription_id,
        block_id=block_id,
        set_number=int(set_number),
        set_type=SetType(set_type),
        weight_kg=float(weight),
        external_load_kg=float(external),
        reps=int(reps),
        rpe=rpe,
        rep_quality=RepQuality(quality),
        tempo=tempo,
        notes=notes or "",
        modifiers=tuple(m for m in (modifiers or "").split("|") if m),
        timestamp=datetime.datetime.fromisoformat(timestamp) if timestamp else None,
    )


class ProgramRepository(BaseRepository):
    """Repository for programs table operations."""

    def upsert(self, program_id: str, name: str, description: str | None = None) -> None:
        self.execute(
            "INSERT INTO programs (id, name, description, created_at) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET name=excluded.name, description=excluded.description;",
            (program_id, name, description, _now()),
        )

    def fetch_all_programs(self) -> List[Tuple[str, str, Optional[str], str]]:
        return self.fetch_all(
            "SELECT id, name, description, created_at FROM programs ORDER BY name;"
        )


class PlanRepository(BaseRepository):
    """Repository for plans table operations."""

    def upsert(self, plan_id: str, program_id: str, name: str, days_per_week: int) -> None:
        self.execute(
            "INSERT INTO plans (id, program_id, name, days_per_week) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET program_id=excluded.program_id, name=excluded.name, days_per_week=excluded.days_per_week;",
            (plan_id, program_id, name, days_per_week),
        )

    def fetch_for_program(self, program_id: str) -> List[Tuple[str, str, int]]:
        return self.fetch_all(
            "SELECT id, name, days_per_week FROM plans WHERE program_id = ? ORDER BY id;",
            (program_id,),
        )

    def fetch_detail(self, plan_id: str) -> Tuple[str, str, str, int]:
        rows = self.fetch_all(
            "SELECT id, program_id, name, days_per_week FROM plans WHERE id = ?;",
            (plan_id,),
        )
        if not rows:
            raise ValueError("plan not found")
        return rows[0]


class WorkoutDayRepository(BaseRepository):
    """Repository for workout_days table operations."""

    def upsert(
        self,
        day_id: str,
        plan_id: str,
        day_number: int,
        name: str,
        focus: str | None = None,
        estimated_duration: int | None = None,
    ) -> None:
        self.execute(
            "INSERT INTO workout_days (id, plan_id, day_number, name, focus, estimated_duration) VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET plan_id=excluded.plan_id, day_number=excluded.day_number, name=excluded.name, "
            "focus=excluded.focus, estimated_duration=excluded.estimated_duration;",
            (day_id, plan_id, day_number, name, focus, estimated_duration),
        )

    def fetch_for_plan(self, plan_id: str) -> List[Tuple[str, int, str, Optional[str], Optional[int]]]:
        return self.fetch_all(
            "SELECT id, day_number, name, focus, estimated_duration FROM workout_days WHERE plan_id = ? ORDER BY day_number;",
            (plan_id,),
        )

    def fetch_detail(self, day_id: str) -> Tuple[str, str, int, str, Optional[str], Optional[int]]:
        rows = self.fetch_all(
            "SELECT id, plan_id, day_number, name, focus, estimated_duration FROM workout_days WHERE id = ?;",
            (day_id,),
        )
        if not rows:
            raise ValueError("workout day not found")
        return rows[0]


class ExerciseRepository(BaseRepository):
    """Repository for the exercise catalog."""

    def upsert(
        self,
        exercise_id: str,
        name: str,
        canonical_name: str,
        category: str,
        movement_pattern: str,
        equipment: Iterable[str] = (),
        is_calisthenics: bool = False,
        form_notes: str | None = None,
    ) -> None:
        self.execute(
            "INSERT INTO exercises (id, name, canonical_name, category, movement_pattern, equipment, is_calisthenics, form_notes) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET name=excluded.name, canonical_name=excluded.canonical_name, category=excluded.category, "
            "movement_pattern=excluded.movement_pattern, equipment=excluded.equipment, is_calisthenics=excluded.is_calisthenics, "
            "form_notes=excluded.form_notes;",
            (
                exercise_id,
                name,
                canonical_name,
                category,
                movement_pattern,
                "|".join(equipment),
                int(is_calisthenics),
                form_notes,
            ),
        )

    @staticmethod
    def _to_dict(row: Tuple) -> dict:
        eid, name, canonical, category, pattern, equipment, calisthenics, notes = row
        return {
            "id": eid,
            "name": name,
            "canonical_name": canonical,
            "category": category,
            "movement_pattern": pattern,
            "equipment": [e for e in equipment.split("|") if e],
            "is_calisthenics": bool(calisthenics),
            "form_notes": notes,
        }

    def fetch_all_exercises(self, category: str | None = None) -> List[dict]:
        query = (
            "SELECT id, name, canonical_name, category, movement_pattern, equipment, is_calisthenics, form_notes FROM exercises"
        )
        params: tuple = ()
        if category:
            query += " WHERE category = ?"
            params = (category,)
        query += " ORDER BY name;"
        return [self._to_dict(r) for r in self.fetch_all(query, params)]

    def fetch_detail(self, exercise_id: str) -> dict:
        rows = self.fetch_all(
            "SELECT id, name, canonical_name, category, movement_pattern, equipment, is_calisthenics, form_notes FROM exercises WHERE id = ?;",
            (exercise_id,),
        )
        if not rows:
            raise ValueError("exercise not found")
        return self._to_dict(rows[0])


class ExerciseBlockRepository(BaseRepository):
    """Repository for supersets and giant sets within a day."""

    def upsert(
        self,
        block_id: str,
        day_id: str,
        position: int,
        block_type: str,
        rest_seconds: int,
        exercise_ids: Iterable[str],
    ) -> None:
        self.execute(
            "INSERT INTO exercise_blocks (id, day_id, position, block_type, rest_seconds, exercise_ids) VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET day_id=excluded.day_id, position=excluded.position, block_type=excluded.block_type, "
            "rest_seconds=excluded.rest_seconds, exercise_ids=excluded.exercise_ids;",
            (block_id, day_id, position, block_type, rest_seconds, "|".join(exercise_ids)),
        )

    def fetch_for_day(self, day_id: str) -> List[dict]:
        rows = self.fetch_all(
            "SELECT id, position, block_type, rest_seconds, exercise_ids FROM exercise_blocks WHERE day_id = ? ORDER BY position;",
            (day_id,),
        )
        return [
            {
                "id": bid,
                "position": pos,
                "block_type": btype,
                "rest_seconds": rest,
                "exercise_ids": [e for e in ids.split("|") if e],
            }
            for bid, pos, btype, rest, ids in rows
        ]


class PrescriptionRepository(BaseRepository):
    """Repository for day_exercises, the per-day prescriptions."""

    _COLUMNS = (
        "id, day_id, block_id, exercise_id, position, scheme_type, is_optional, sets_min, sets_max, "
        "reps_min, reps_max, rest_seconds, notes, current_phase_reps"
    )

    @staticmethod
    def _row_to_prescription(row: Tuple) -> Prescription:
        (
            pid,
            day_id,
            block_id,
            exercise_id,
            position,
            scheme,
            optional,
            sets_min,
            sets_max,
            reps_min,
            reps_max,
            rest,
            notes,
            phase_reps,
        ) = row
        return Prescription(
            id=pid,
            day_id=day_id,
            block_id=block_id,
            exercise_id=exercise_id,
            order=position,
            scheme=SchemeType(scheme),
            is_optional=bool(optional),
            sets_min=sets_min,
            sets_max=sets_max,
            reps_min=reps_min,
            reps_max=reps_max,
            rest_seconds=rest,
            notes=notes or "",
            current_phase_reps=phase_reps,
        )

    def upsert(self, prescription: Prescription) -> None:
        p = prescription
        self.execute(
            f"INSERT INTO day_exercises ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET day_id=excluded.day_id, block_id=excluded.block_id, exercise_id=excluded.exercise_id, "
            "position=excluded.position, scheme_type=excluded.scheme_type, is_optional=excluded.is_optional, "
            "sets_min=excluded.sets_min, sets_max=excluded.sets_max, reps_min=excluded.reps_min, reps_max=excluded.reps_max, "
            "rest_seconds=excluded.rest_seconds, notes=excluded.notes, current_phase_reps=excluded.current_phase_reps;",
            (
                p.id,
                p.day_id,
                p.block_id,
                p.exercise_id,
                p.order,
                p.scheme.value,
                int(p.is_optional),
                p.sets_min,
                p.sets_max,
                p.reps_min,
                p.reps_max,
                p.rest_seconds,
                p.notes,
                p.current_phase_reps,
            ),
        )

    def fetch(self, prescription_id: str) -> Prescription:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM day_exercises WHERE id = ?;",
            (prescription_id,),
        )
        if not rows:
            raise ValueError("prescription not found")
        return self._row_to_prescription(rows[0])

    def fetch_for_day(self, day_id: str) -> List[Prescription]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM day_exercises WHERE day_id = ? ORDER BY position;",
            (day_id,),
        )
        return [self._row_to_prescription(r) for r in rows]

    def set_phase_reps(
        self,
        plan_id: str,
        phase_reps: int,
        scheme: SchemeType = SchemeType.TOP_SET_BACKOFF_TRIPLE,
    ) -> int:
        """Update ``current_phase_reps`` for ``scheme`` prescriptions of a plan."""
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE day_exercises SET current_phase_reps = ? WHERE scheme_type = ? "
                "AND day_id IN (SELECT id FROM workout_days WHERE plan_id = ?);",
                (phase_reps, scheme.value, plan_id),
            )
            return cur.rowcount


class SessionRepository(BaseRepository):
    """Repository for workout sessions."""

    def create(
        self,
        plan_id: str,
        day_id: str,
        date: str | None = None,
        start_time: str | None = None,
        bodyweight_kg: float | None = None,
        notes: str = "",
    ) -> int:
        start = start_time or _now()
        return self.execute(
            "INSERT INTO sessions (plan_id, day_id, date, start_time, bodyweight_kg, notes, completed) VALUES (?, ?, ?, ?, ?, ?, 0);",
            (
                plan_id,
                day_id,
                date or start[:10],
                start,
                bodyweight_kg,
                notes,
            ),
        )

    def fetch_detail(self, session_id: int) -> dict:
        rows = self.fetch_all(
            "SELECT id, plan_id, day_id, date, start_time, end_time, bodyweight_kg, notes, completed FROM sessions WHERE id = ?;",
            (session_id,),
        )
        if not rows:
            raise ValueError("session not found")
        sid, plan_id, day_id, date, start, end, bw, notes, completed = rows[0]
        return {
            "id": sid,
            "plan_id": plan_id,
            "day_id": day_id,
            "date": date,
            "start_time": start,
            "end_time": end,
            "bodyweight_kg": bw,
            "notes": notes,
            "completed": bool(completed),
        }

    def fetch_for_day(self, day_id: str) -> List[Tuple[int, str, int]]:
        return self.fetch_all(
            "SELECT id, date, completed FROM sessions WHERE day_id = ? ORDER BY start_time DESC, id DESC;",
            (day_id,),
        )

    def last_for_day(self, day_id: str) -> dict | None:
        rows = self.fetch_all(
            "SELECT id FROM sessions WHERE day_id = ? AND completed = 1 ORDER BY start_time DESC, id DESC LIMIT 1;",
            (day_id,),
        )
        return self.fetch_detail(rows[0][0]) if rows else None

    def set_note(self, session_id: int, notes: str) -> None:
        self.execute(
            "UPDATE sessions SET notes = ? WHERE id = ?;", (notes, session_id)
        )

    def complete(
        self,
        session_id: int,
        sets: Iterable[SetLog] = (),
        end_time: str | None = None,
    ) -> List[int]:
        """Persist buffered ``sets`` and mark the session completed.

        Runs in a single transaction: an invalid set or a missing
        prescription leaves neither sets nor the completion flag behind.
        """
        ids: List[int] = []
        with self._connection() as conn:
            _begin_write(conn)
            row = conn.execute(
                "SELECT completed FROM sessions WHERE id = ?;", (session_id,)
            ).fetchone()
            if row is None:
                raise ValueError("session not found")
            if row[0]:
                raise ValueError("session already completed")
            for s in sets:
                _validate_set(s.reps, s.weight_kg)
                if s.prescription_id is None:
                    raise ValueError("set is missing its prescription")
                presc = conn.execute(
                    "SELECT exercise_id FROM day_exercises WHERE id = ?;",
                    (s.prescription_id,),
                ).fetchone()
                if presc is None:
                    raise ValueError("prescription not found")
                number = _next_set_number(conn, session_id, s.prescription_id)
                cur = conn.execute(
                    "INSERT INTO set_logs (session_id, exercise_id, day_exercise_id, block_id, set_number, set_type, weight_kg, "
                    "external_load_kg, reps, rpe, rep_quality, tempo, notes, modifiers, timestamp) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
                    (
                        session_id,
                        s.exercise_id or presc[0],
                        s.prescription_id,
                        s.block_id,
                        number,
                        s.set_type.value,
                        s.weight_kg,
                        s.external_load_kg,
                        s.reps,
                        s.rpe,
                        s.rep_quality.value,
                        s.tempo,
                        s.notes,
                        "|".join(s.modifiers),
                        (s.timestamp.isoformat() if s.timestamp else _now()),
                    ),
                )
                ids.append(cur.lastrowid)
            conn.execute(
                "UPDATE sessions SET completed = 1, end_time = ? WHERE id = ?;",
                (end_time or _now(), session_id),
            )
        logger.info("session %s completed with %d new sets", session_id, len(ids))
        return ids

    def delete(self, session_id: int) -> None:
        rows = self.fetch_all("SELECT id FROM sessions WHERE id = ?;", (session_id,))
        if not rows:
            raise ValueError("session not found")
        self.execute("DELETE FROM sessions WHERE id = ?;", (session_id,))


class SetLogRepository(BaseRepository):
    """Repository for logged sets."""

    def add(
        self,
        session_id: int,
        prescription_id: str,
        weight_kg: float,
        reps: int,
        set_type: SetType | str = SetType.WORKING,
        rep_quality: RepQuality | str = RepQuality.OK,
        external_load_kg: float = 0.0,
        rpe: Optional[int] = None,
        tempo: Optional[str] = None,
        notes: str = "",
        modifiers: Iterable[str] = (),
        timestamp: str | None = None,
    ) -> int:
        """Log a set and return its id; the set number is assigned here."""
        _validate_set(reps, weight_kg)
        set_type = SetType(set_type)
        rep_quality = RepQuality(rep_quality)
        with self._connection() as conn:
            _begin_write(conn)
            if conn.execute(
                "SELECT 1 FROM sessions WHERE id = ?;", (session_id,)
            ).fetchone() is None:
                raise ValueError("session not found")
            presc = conn.execute(
                "SELECT exercise_id, block_id FROM day_exercises WHERE id = ?;",
                (prescription_id,),
            ).fetchone()
            if presc is None:
                raise ValueError("prescription not found")
            number = _next_set_number(conn, session_id, prescription_id)
            cur = conn.execute(
                "INSERT INTO set_logs (session_id, exercise_id, day_exercise_id, block_id, set_number, set_type, weight_kg, "
                "external_load_kg, reps, rpe, rep_quality, tempo, notes, modifiers, timestamp) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
                (
                    session_id,
                    presc[0],
                    prescription_id,
                    presc[1],
                    number,
                    set_type.value,
                    weight_kg,
                    external_load_kg,
                    reps,
                    rpe,
                    rep_quality.value,
                    tempo,
                    notes,
                    "|".join(modifiers),
                    timestamp or _now(),
                ),
            )
            return cur.lastrowid

    def update(
        self,
        set_id: int,
        weight_kg: float | None = None,
        reps: int | None = None,
        set_type: SetType | str | None = None,
        rep_quality: RepQuality | str | None = None,
        external_load_kg: float | None = None,
        rpe: int | None = None,
        notes: str | None = None,
        modifiers: Iterable[str] | None = None,
    ) -> None:
        current = self.fetch_detail(set_id)
        _validate_set(
            reps if reps is not None else current.reps,
            weight_kg if weight_kg is not None else current.weight_kg,
        )
        updates: list[tuple[str, object]] = []
        if weight_kg is not None:
            updates.append(("weight_kg", weight_kg))
        if reps is not None:
            updates.append(("reps", reps))
        if set_type is not None:
            updates.append(("set_type", SetType(set_type).value))
        if rep_quality is not None:
            updates.append(("rep_quality", RepQuality(rep_quality).value))
        if external_load_kg is not None:
            updates.append(("external_load_kg", external_load_kg))
        if rpe is not None:
            updates.append(("rpe", rpe))
        if notes is not None:
            updates.append(("notes", notes))
        if modifiers is not None:
            updates.append(("modifiers", "|".join(modifiers)))
        if not updates:
            return
        assignments = ", ".join(f"{col} = ?" for col, _ in updates)
        params = tuple(v for _, v in updates) + (set_id,)
        self.execute(f"UPDATE set_logs SET {assignments} WHERE id = ?;", params)

    def fetch_detail(self, set_id: int) -> SetLog:
        rows = self.fetch_all(
            f"SELECT {_SET_COLUMNS} FROM set_logs WHERE id = ?;", (set_id,)
        )
        if not rows:
            raise ValueError("set not found")
        return _row_to_set_log(rows[0])

    def fetch_for_session(
        self, session_id: int, prescription_id: str | None = None
    ) -> List[SetLog]:
        query = f"SELECT {_SET_COLUMNS} FROM set_logs WHERE session_id = ?"
        params: tuple = (session_id,)
        if prescription_id is not None:
            query += " AND day_exercise_id = ?"
            params += (prescription_id,)
        query += " ORDER BY day_exercise_id, set_number;"
        return [_row_to_set_log(r) for r in self.fetch_all(query, params)]

    def fetch_last_for_exercise(
        self, exercise_id: str, prescription_id: str
    ) -> List[SetLog]:
        """Return the prescription's sets from the latest completed session
        in which ``exercise_id`` was performed."""
        rows = self.fetch_all(
            "SELECT s.session_id FROM set_logs s JOIN sessions w ON w.id = s.session_id "
            "WHERE s.exercise_id = ? AND w.completed = 1 ORDER BY s.timestamp DESC, s.id DESC LIMIT 1;",
            (exercise_id,),
        )
        if not rows:
            return []
        return self.fetch_for_session(rows[0][0], prescription_id)

    def fetch_history(self, exercise_id: str, limit: int = 20) -> List[List[SetLog]]:
        """Return sets of the last ``limit`` completed sessions, oldest first."""
        rows = self.fetch_all(
            f"SELECT {', '.join('s.' + c.strip() for c in _SET_COLUMNS.split(','))} "
            "FROM set_logs s JOIN sessions w ON w.id = s.session_id "
            "WHERE s.exercise_id = ? AND w.completed = 1 ORDER BY s.timestamp DESC, s.id DESC;",
            (exercise_id,),
        )
        sessions: dict[int, List[SetLog]] = {}
        for row in rows:
            log = _row_to_set_log(row)
            sessions.setdefault(log.session_id, []).append(log)
        recent = list(sessions.values())[:limit]
        return [sorted(s, key=lambda x: x.set_number) for s in reversed(recent)]


class BaselineRepository(BaseRepository):
    """Repository for per-set baselines of triple progression."""

    _COLUMNS = "id, exercise_id, day_exercise_id, set_number, weight_kg, reps, established_at, phase_reps"

    @staticmethod
    def _row_to_baseline(row: Tuple) -> Baseline:
        bid, exercise_id, prescription_id, set_number, weight, reps, established, phase = row
        return Baseline(
            id=bid,
            exercise_id=exercise_id,
            prescription_id=prescription_id,
            set_number=set_number,
            weight_kg=float(weight),
            reps=reps,
            established_at=datetime.datetime.fromisoformat(established),
            phase_reps=phase,
        )

    def establish(
        self,
        prescription_id: str,
        exercise_id: str,
        set_number: int,
        weight_kg: float,
        reps: int,
        phase_reps: int,
        established_at: str | None = None,
    ) -> Baseline:
        """Create the baseline once; an existing one for the same phase wins."""
        _validate_set(reps, weight_kg)
        if set_number < 1:
            raise ValueError("set_number must be positive")
        with self._connection() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO baselines (exercise_id, day_exercise_id, set_number, weight_kg, reps, established_at, phase_reps) "
                "VALUES (?, ?, ?, ?, ?, ?, ?);",
                (
                    exercise_id,
                    prescription_id,
                    set_number,
                    weight_kg,
                    reps,
                    established_at or _now(),
                    phase_reps,
                ),
            )
            if cur.rowcount:
                logger.info(
                    "baseline established for %s set %d at %d reps",
                    prescription_id,
                    set_number,
                    phase_reps,
                )
        found = self.find(prescription_id, set_number, phase_reps)
        if found is None:
            raise ValueError("baseline not found")
        return found

    def find(
        self, prescription_id: str, set_number: int, phase_reps: int
    ) -> Baseline | None:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM baselines WHERE day_exercise_id = ? AND set_number = ? AND phase_reps = ?;",
            (prescription_id, set_number, phase_reps),
        )
        return self._row_to_baseline(rows[0]) if rows else None

    def fetch_for_prescription(
        self, prescription_id: str, phase_reps: int | None = None
    ) -> List[Baseline]:
        query = f"SELECT {self._COLUMNS} FROM baselines WHERE day_exercise_id = ?"
        params: tuple = (prescription_id,)
        if phase_reps is not None:
            query += " AND phase_reps = ?"
            params += (phase_reps,)
        query += " ORDER BY set_number, established_at;"
        return [self._row_to_baseline(r) for r in self.fetch_all(query, params)]


class SessionNoteRepository(BaseRepository):
    """Repository for per-exercise notes within a session."""

    def add(self, session_id: int, exercise_id: str, note: str) -> int:
        if not note.strip():
            raise ValueError("note must not be empty")
        return self.execute(
            "INSERT INTO session_exercise_notes (session_id, exercise_id, note, created_at) VALUES (?, ?, ?, ?);",
            (session_id, exercise_id, note, _now()),
        )

    def fetch_for_session(self, session_id: int) -> List[Tuple[int, str, str, str]]:
        return self.fetch_all(
            "SELECT id, exercise_id, note, created_at FROM session_exercise_notes WHERE session_id = ? ORDER BY id;",
            (session_id,),
        )


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    INT_KEYS = {"current_week", "current_phase"}

    def __init__(
        self, db_path: str = "workout.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | str] = {}
        for k, v in rows:
            if k in self.INT_KEYS:
                result[k] = int(float(v))
            else:
                result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                if value is None:
                    continue
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_text(self, key: str, value: str) -> None:
        candidate = self._raw_all_settings()
        candidate[key] = int(value) if key in self.INT_KEYS else value
        validate_settings(candidate)
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        await conn.execute("PRAGMA foreign_keys=on;")
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows


class AsyncSetLogRepository(AsyncBaseRepository):
    """Async repository for logged sets.

    Creation is serialized per session and prescription so concurrent
    callers never receive the same set number.
    """

    def __init__(self, db_path: str = "workout.db") -> None:
        super().__init__(db_path)
        self._locks: dict[tuple[int, str], asyncio.Lock] = {}

    def _lock_for(self, session_id: int, prescription_id: str) -> asyncio.Lock:
        key = (session_id, prescription_id)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def release_session(self, session_id: int) -> None:
        """Drop the locks held for ``session_id`` once it is finished."""
        for key in [k for k in self._locks if k[0] == session_id]:
            del self._locks[key]

    async def add(
        self,
        session_id: int,
        prescription_id: str,
        weight_kg: float,
        reps: int,
        set_type: SetType | str = SetType.WORKING,
        rep_quality: RepQuality | str = RepQuality.OK,
        external_load_kg: float = 0.0,
        rpe: Optional[int] = None,
        notes: str = "",
        modifiers: Iterable[str] = (),
    ) -> int:
        _validate_set(reps, weight_kg)
        set_type = SetType(set_type)
        rep_quality = RepQuality(rep_quality)
        async with self._lock_for(session_id, prescription_id):
            async with self._async_connection() as conn:
                await conn.execute("BEGIN IMMEDIATE;")
                cursor = await conn.execute(
                    "SELECT 1 FROM sessions WHERE id = ?;", (session_id,)
                )
                if await cursor.fetchone() is None:
                    raise ValueError("session not found")
                cursor = await conn.execute(
                    "SELECT exercise_id, block_id FROM day_exercises WHERE id = ?;",
                    (prescription_id,),
                )
                presc = await cursor.fetchone()
                if presc is None:
                    raise ValueError("prescription not found")
                cursor = await conn.execute(
                    "SELECT COALESCE(MAX(set_number), 0) + 1 FROM set_logs WHERE session_id = ? AND day_exercise_id = ?;",
                    (session_id, prescription_id),
                )
                number = int((await cursor.fetchone())[0])
                cursor = await conn.execute(
                    "INSERT INTO set_logs (session_id, exercise_id, day_exercise_id, block_id, set_number, set_type, weight_kg, "
                    "external_load_kg, reps, rpe, rep_quality, tempo, notes, modifiers, timestamp) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, ?, ?, ?);",
                    (
                        session_id,
                        presc[0],
                        prescription_id,
                        presc[1],
                        number,
                        set_type.value,
                        weight_kg,
                        external_load_kg,
                        reps,
                        rpe,
                        rep_quality.value,
                        notes,
                        "|".join(modifiers),
                        _now(),
                    ),
                )
                await conn.commit()
                return cursor.lastrowid

    async def remove(self, set_id: int) -> None:
        rows = await self.fetch_all(
            "SELECT session_id, day_exercise_id FROM set_logs WHERE id = ?;",
            (set_id,),
        )
        if not rows:
            raise ValueError("set not found")
        session_id, prescription_id = rows[0]
        async with self._lock_for(session_id, prescription_id):
            async with self._async_connection() as conn:
                await conn.execute("BEGIN IMMEDIATE;")
                cursor = await conn.execute(
                    "DELETE FROM set_logs WHERE id = ?;", (set_id,)
                )
                if cursor.rowcount == 0:
                    raise ValueError("set not found")
                cursor = await conn.execute(
                    "SELECT id FROM set_logs WHERE session_id = ? AND day_exercise_id = ? ORDER BY set_number, id;",
                    (session_id, prescription_id),
                )
                remaining = await cursor.fetchall()
                for number, (sid,) in enumerate(remaining, start=1):
                    await conn.execute(
                        "UPDATE set_logs SET set_number = ? WHERE id = ?;",
                        (number, sid),
                    )

    async def fetch_detail(self, set_id: int) -> SetLog:
        rows = await self.fetch_all(
            f"SELECT {_SET_COLUMNS} FROM set_logs WHERE id = ?;", (set_id,)
        )
        if not rows:
            raise ValueError("set not found")
        return _row_to_set_log(tuple(rows[0]))

    async def fetch_for_session(
        self, session_id: int, prescription_id: str | None = None
    ) -> List[SetLog]:
        query = f"SELECT {_SET_COLUMNS} FROM set_logs WHERE session_id = ?"
        params: tuple = (session_id,)
        if prescription_id is not None:
            query += " AND day_exercise_id = ?"
            params += (prescription_id,)
        query += " ORDER BY day_exercise_id, set_number;"
        rows = await self.fetch_all(query, params)
        return [_row_to_set_log(tuple(r)) for r in rows]
