"""SQLite-backed persistent store.

Holds users, per-user conversation state, runtime-editable settings (forced
channels, their invite links, admin ids) and the content catalog: contents,
their parts grouped by season, favorites and view counters.

Settings stored here override the configured defaults once an admin edits
them; callers pass the configured default into every getter so an untouched
setting always reflects the current configuration.
"""

from __future__ import annotations

import json
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any

FORCED_CHANNELS_KEY = "forced_channels"
FORCED_LINKS_KEY = "forced_links"
ADMIN_IDS_KEY = "admin_ids"


@dataclass(frozen=True)
class Content:
    """A catalog entry (movie, series or anime)."""

    id: int
    title: str
    type: str
    year: str | None = None
    country: str | None = None
    language: str | None = None
    genres: str | None = None
    description: str | None = None
    poster_file_id: str | None = None
    parts_total: int | None = None
    code: str | None = None
    views: int = 0
    parts_count: int = 0


@dataclass(frozen=True)
class Part:
    """One deliverable media item of a content."""

    id: int
    content_id: int
    season: int
    part_number: int
    channel_message_id: int


_CONTENT_COLUMNS = (
    "c.id, c.title, c.type, c.year, c.country, c.language, c.genres, "
    "c.description, c.poster_file_id, c.parts_total, c.code, c.views, "
    "(SELECT COUNT(*) FROM parts p WHERE p.content_id = c.id) AS parts_count"
)


def _row_to_content(row: sqlite3.Row) -> Content:
    return Content(
        id=row["id"],
        title=row["title"],
        type=row["type"],
        year=row["year"],
        country=row["country"],
        language=row["language"],
        genres=row["genres"],
        description=row["description"],
        poster_file_id=row["poster_file_id"],
        parts_total=row["parts_total"],
        code=row["code"],
        views=row["views"],
        parts_count=row["parts_count"],
    )


def _row_to_part(row: sqlite3.Row) -> Part:
    return Part(
        id=row["id"],
        content_id=row["content_id"],
        season=row["season"],
        part_number=row["part_number"],
        channel_message_id=row["channel_message_id"],
    )


class SQLiteStore:
    """Thread-safe store backed by a single SQLite connection."""

    def __init__(self, db_path: str = "cinehub.db") -> None:
        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = Lock()
        self.init()

    def init(self) -> None:
        """Create tables and indexes if they do not exist."""
        with self._lock:
            if self._db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    user_id    INTEGER PRIMARY KEY,
                    username   TEXT,
                    created_at REAL NOT NULL,
                    last_seen  REAL NOT NULL
                );
                CREATE TABLE IF NOT EXISTS user_states (
                    user_id    INTEGER PRIMARY KEY,
                    state      TEXT NOT NULL,
                    updated_at REAL NOT NULL
                );
                CREATE TABLE IF NOT EXISTS settings (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS contents (
                    id             INTEGER PRIMARY KEY AUTOINCREMENT,
                    title          TEXT NOT NULL,
                    type           TEXT NOT NULL,
                    year           TEXT,
                    country        TEXT,
                    language       TEXT,
                    genres         TEXT,
                    description    TEXT,
                    poster_file_id TEXT,
                    parts_total    INTEGER,
                    code           TEXT,
                    views          INTEGER NOT NULL DEFAULT 0,
                    created_at     REAL NOT NULL
                );
                CREATE TABLE IF NOT EXISTS parts (
                    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
                    content_id         INTEGER NOT NULL REFERENCES contents(id) ON DELETE CASCADE,
                    season             INTEGER NOT NULL DEFAULT 1,
                    part_number        INTEGER NOT NULL,
                    channel_message_id INTEGER NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_parts_content
                    ON parts(content_id, season, part_number);
                CREATE TABLE IF NOT EXISTS favorites (
                    user_id    INTEGER NOT NULL,
                    content_id INTEGER NOT NULL,
                    created_at REAL NOT NULL,
                    PRIMARY KEY (user_id, content_id)
                );
                """
            )
            self._conn.commit()

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    # ── helpers ────────────────────────────────────────────────────────────

    def _fetchone(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock:
            cursor = self._conn.execute(sql, params)
            self._conn.commit()
            return cursor

    def _scalar(self, sql: str, params: tuple[Any, ...] = ()) -> int:
        row = self._fetchone(sql, params)
        return int(row[0] or 0) if row else 0

    # ── users ──────────────────────────────────────────────────────────────

    def upsert_user(self, user_id: int, username: str | None) -> None:
        """Insert a user or refresh their username and last-seen time."""
        now = time.time()
        self._execute(
            """
            INSERT INTO users (user_id, username, created_at, last_seen)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                username = excluded.username,
                last_seen = excluded.last_seen
            """,
            (user_id, username, now, now),
        )

    def list_user_ids(self) -> list[int]:
        """Return every known user id, oldest first."""
        rows = self._fetchall("SELECT user_id FROM users ORDER BY created_at, user_id")
        return [row[0] for row in rows]

    # ── conversation state ─────────────────────────────────────────────────

    def get_state(self, user_id: int) -> str | None:
        """Return the raw stored state name, or ``None`` when idle."""
        row = self._fetchone("SELECT state FROM user_states WHERE user_id = ?", (user_id,))
        return row[0] if row else None

    def set_state(self, user_id: int, state: str) -> None:
        self._execute(
            """
            INSERT INTO user_states (user_id, state, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                state = excluded.state,
                updated_at = excluded.updated_at
            """,
            (user_id, state, time.time()),
        )

    def clear_state(self, user_id: int) -> None:
        self._execute("DELETE FROM user_states WHERE user_id = ?", (user_id,))

    # ── settings ───────────────────────────────────────────────────────────

    def _get_setting(self, key: str) -> Any | None:
        row = self._fetchone("SELECT value FROM settings WHERE key = ?", (key,))
        return json.loads(row[0]) if row else None

    def _set_setting(self, key: str, value: Any) -> None:
        self._execute(
            """
            INSERT INTO settings (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, json.dumps(value)),
        )

    def get_forced_channels(self, default: list[int]) -> list[int]:
        stored = self._get_setting(FORCED_CHANNELS_KEY)
        if stored is None:
            return list(default)
        return [int(channel_id) for channel_id in stored]

    def set_forced_channels(self, channels: list[int]) -> None:
        self._set_setting(FORCED_CHANNELS_KEY, [int(channel_id) for channel_id in channels])

    def get_forced_links(self, default: dict[int, str]) -> dict[int, str]:
        stored = self._get_setting(FORCED_LINKS_KEY)
        if stored is None:
            return dict(default)
        # JSON object keys are strings
        return {int(channel_id): str(url) for channel_id, url in stored.items()}

    def set_forced_links(self, links: dict[int, str]) -> None:
        self._set_setting(FORCED_LINKS_KEY, {str(key): url for key, url in links.items()})

    def get_admin_ids(self, default: list[int]) -> list[int]:
        stored = self._get_setting(ADMIN_IDS_KEY)
        if stored is None:
            return list(default)
        return [int(admin_id) for admin_id in stored]

    def set_admin_ids(self, admin_ids: list[int]) -> None:
        self._set_setting(ADMIN_IDS_KEY, [int(admin_id) for admin_id in admin_ids])

    # ── catalog ────────────────────────────────────────────────────────────

    def add_content(
        self,
        title: str,
        type: str,
        *,
        year: str | None = None,
        country: str | None = None,
        language: str | None = None,
        genres: str | None = None,
        description: str | None = None,
        poster_file_id: str | None = None,
        parts_total: int | None = None,
        code: str | None = None,
    ) -> int:
        """Insert a content record and return its id."""
        cursor = self._execute(
            """
            INSERT INTO contents (
                title, type, year, country, language, genres, description,
                poster_file_id, parts_total, code, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                title,
                type,
                year,
                country,
                language,
                genres,
                description,
                poster_file_id,
                parts_total,
                code,
                time.time(),
            ),
        )
        return int(cursor.lastrowid or 0)

    def add_part(
        self,
        content_id: int,
        part_number: int,
        channel_message_id: int,
        season: int = 1,
    ) -> int:
        """Insert a part record and return its id."""
        cursor = self._execute(
            """
            INSERT INTO parts (content_id, season, part_number, channel_message_id)
            VALUES (?, ?, ?, ?)
            """,
            (content_id, season, part_number, channel_message_id),
        )
        return int(cursor.lastrowid or 0)

    def get_content(self, content_id: int) -> Content | None:
        row = self._fetchone(
            f"SELECT {_CONTENT_COLUMNS} FROM contents c WHERE c.id = ?", (content_id,)
        )
        return _row_to_content(row) if row else None

    def count_content(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM contents")

    def list_latest(self, limit: int, offset: int = 0) -> list[Content]:
        rows = self._fetchall(
            f"SELECT {_CONTENT_COLUMNS} FROM contents c ORDER BY c.id DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [_row_to_content(row) for row in rows]

    def list_top(self, limit: int, offset: int = 0) -> list[Content]:
        rows = self._fetchall(
            f"SELECT {_CONTENT_COLUMNS} FROM contents c "
            "ORDER BY c.views DESC, c.id DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [_row_to_content(row) for row in rows]

    def count_search(self, query: str) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM contents c WHERE c.title LIKE ? ESCAPE '\\' OR c.code = ?",
            (_like_pattern(query), query.strip()),
        )

    def search_content(self, query: str, limit: int, offset: int = 0) -> list[Content]:
        """Case-insensitive title substring or exact code match."""
        rows = self._fetchall(
            f"SELECT {_CONTENT_COLUMNS} FROM contents c "
            "WHERE c.title LIKE ? ESCAPE '\\' OR c.code = ? "
            "ORDER BY c.views DESC, c.id DESC LIMIT ? OFFSET ?",
            (_like_pattern(query), query.strip(), limit, offset),
        )
        return [_row_to_content(row) for row in rows]

    def count_by_type(self, content_type: str) -> int:
        return self._scalar("SELECT COUNT(*) FROM contents WHERE type = ?", (content_type,))

    def list_by_type(self, content_type: str, limit: int = 50) -> list[Content]:
        rows = self._fetchall(
            f"SELECT {_CONTENT_COLUMNS} FROM contents c WHERE c.type = ? "
            "ORDER BY c.id DESC LIMIT ?",
            (content_type, limit),
        )
        return [_row_to_content(row) for row in rows]

    def increment_views(self, content_id: int) -> None:
        self._execute("UPDATE contents SET views = views + 1 WHERE id = ?", (content_id,))

    # ── parts ──────────────────────────────────────────────────────────────

    def get_part(self, part_id: int) -> Part | None:
        row = self._fetchone("SELECT * FROM parts WHERE id = ?", (part_id,))
        return _row_to_part(row) if row else None

    def list_seasons(self, content_id: int) -> list[int]:
        rows = self._fetchall(
            "SELECT DISTINCT season FROM parts WHERE content_id = ? ORDER BY season",
            (content_id,),
        )
        return [row[0] for row in rows]

    def get_parts(self, content_id: int, season: int = 1) -> list[Part]:
        rows = self._fetchall(
            "SELECT * FROM parts WHERE content_id = ? AND season = ? ORDER BY part_number, id",
            (content_id, season),
        )
        return [_row_to_part(row) for row in rows]

    def get_part_by_number(self, content_id: int, part_number: int, season: int = 1) -> Part | None:
        row = self._fetchone(
            "SELECT * FROM parts WHERE content_id = ? AND season = ? AND part_number = ? "
            "ORDER BY id LIMIT 1",
            (content_id, season, part_number),
        )
        return _row_to_part(row) if row else None

    # ── favorites ──────────────────────────────────────────────────────────

    def is_favorite(self, user_id: int, content_id: int) -> bool:
        row = self._fetchone(
            "SELECT 1 FROM favorites WHERE user_id = ? AND content_id = ?",
            (user_id, content_id),
        )
        return row is not None

    def toggle_favorite(self, user_id: int, content_id: int) -> bool:
        """Flip the favorite flag and return the new value."""
        if self.is_favorite(user_id, content_id):
            self._execute(
                "DELETE FROM favorites WHERE user_id = ? AND content_id = ?",
                (user_id, content_id),
            )
            return False
        self._execute(
            "INSERT INTO favorites (user_id, content_id, created_at) VALUES (?, ?, ?)",
            (user_id, content_id, time.time()),
        )
        return True

    def count_favorites(self, user_id: int) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM favorites f JOIN contents c ON c.id = f.content_id "
            "WHERE f.user_id = ?",
            (user_id,),
        )

    def list_favorites(self, user_id: int, limit: int, offset: int = 0) -> list[Content]:
        rows = self._fetchall(
            f"SELECT {_CONTENT_COLUMNS} FROM favorites f JOIN contents c ON c.id = f.content_id "
            "WHERE f.user_id = ? ORDER BY f.created_at DESC LIMIT ? OFFSET ?",
            (user_id, limit, offset),
        )
        return [_row_to_content(row) for row in rows]

    # ── stats ──────────────────────────────────────────────────────────────

    def stats(self) -> dict[str, int]:
        """Aggregate counters for the admin statistics screen."""
        return {
            "content": self.count_content(),
            "parts": self._scalar("SELECT COUNT(*) FROM parts"),
            "users": self._scalar("SELECT COUNT(*) FROM users"),
            "views": self._scalar("SELECT COALESCE(SUM(views), 0) FROM contents"),
        }


def _like_pattern(query: str) -> str:
    escaped = query.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
