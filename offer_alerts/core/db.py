"""SQLite database layer for saved searches and alert cancellation signals."""

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from offer_alerts.core.errors import PersistenceError
from offer_alerts.core.schemas import AlertFrequency, SavedSearch, SearchFilters

_SAVED_SEARCHES_TABLE = """
CREATE TABLE IF NOT EXISTS saved_searches (
    id                      TEXT    PRIMARY KEY,
    owner_id                TEXT    NOT NULL,
    name                    TEXT    NOT NULL,
    filters_json            TEXT    NOT NULL DEFAULT '{}',
    notify_new_matches      INTEGER NOT NULL DEFAULT 1,
    notification_frequency  TEXT    NOT NULL DEFAULT 'daily',
    last_active_frequency   TEXT,
    preferred_day           TEXT    NOT NULL DEFAULT 'monday',
    preferred_hour          INTEGER NOT NULL DEFAULT 9,
    biweekly_week           INTEGER NOT NULL DEFAULT 1,
    matching_offers_count   INTEGER,
    last_used_at            TEXT,
    last_notified_at        TEXT,
    created_at              TEXT    NOT NULL,
    updated_at              TEXT    NOT NULL,
    CHECK ((notify_new_matches = 0) = (notification_frequency = 'never'))
);
"""

_OWNER_INDEX = """
CREATE INDEX IF NOT EXISTS idx_saved_searches_owner
    ON saved_searches (owner_id, created_at);
"""

_ALERT_CANCELLATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS alert_cancellations (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    search_id       TEXT NOT NULL,
    owner_id        TEXT NOT NULL,
    requested_at    TEXT NOT NULL
);
"""


@contextmanager
def _storage_errors() -> Iterator[None]:
    """Re-raise any sqlite3 failure as PersistenceError."""
    try:
        yield
    except sqlite3.Error as e:
        raise PersistenceError(str(e)) from e


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[None]:
    """Commit the enclosed writes together, or roll all of them back on error."""
    with _storage_errors(), conn:
        yield


def _to_text(value: datetime) -> str:
    """ISO text for a timestamp. Aware values are stored in UTC so text order is time order."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.isoformat()


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with _storage_errors():
        conn = sqlite3.connect(str(path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(_SAVED_SEARCHES_TABLE)
        conn.execute(_OWNER_INDEX)
        conn.execute(_ALERT_CANCELLATIONS_TABLE)
        conn.commit()
    return conn


def _row_to_search(row: sqlite3.Row) -> SavedSearch:
    return SavedSearch(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        filters=SearchFilters.model_validate(json.loads(row["filters_json"])),
        alert_enabled=bool(row["notify_new_matches"]),
        alert_frequency=AlertFrequency(row["notification_frequency"]),
        last_active_frequency=row["last_active_frequency"],
        preferred_day=row["preferred_day"],
        preferred_hour=row["preferred_hour"],
        biweekly_week=row["biweekly_week"],
        matching_offers_count=row["matching_offers_count"],
        last_used_at=(
            datetime.fromisoformat(row["last_used_at"]) if row["last_used_at"] else None
        ),
        last_notified_at=(
            datetime.fromisoformat(row["last_notified_at"]) if row["last_notified_at"] else None
        ),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _search_params(search: SavedSearch) -> dict[str, object]:
    return {
        "id": search.id,
        "owner_id": search.owner_id,
        "name": search.name,
        "filters_json": search.filters.model_dump_json(),
        "notify_new_matches": int(search.alert_enabled),
        "notification_frequency": search.alert_frequency.value,
        "last_active_frequency": (
            search.last_active_frequency.value if search.last_active_frequency else None
        ),
        "preferred_day": search.preferred_day.value,
        "preferred_hour": search.preferred_hour,
        "biweekly_week": search.biweekly_week,
        "last_used_at": _to_text(search.last_used_at) if search.last_used_at else None,
        "created_at": _to_text(search.created_at),
        "updated_at": _to_text(search.updated_at),
    }


def insert_saved_search(conn: sqlite3.Connection, search: SavedSearch) -> None:
    """Insert a new saved search.

    matching_offers_count and last_notified_at belong to the alert dispatcher
    and are never written here.
    """
    with _storage_errors():
        conn.execute(
            """
            INSERT INTO saved_searches
                (id, owner_id, name, filters_json, notify_new_matches,
                 notification_frequency, last_active_frequency, preferred_day,
                 preferred_hour, biweekly_week, last_used_at, created_at, updated_at)
            VALUES
                (:id, :owner_id, :name, :filters_json, :notify_new_matches,
                 :notification_frequency, :last_active_frequency, :preferred_day,
                 :preferred_hour, :biweekly_week, :last_used_at, :created_at, :updated_at)
            """,
            _search_params(search),
        )
        conn.commit()


def update_saved_search(conn: sqlite3.Connection, search: SavedSearch) -> bool:
    """Overwrite the mutable columns of a search owned by search.owner_id.

    Returns False if no row matched (missing id or different owner).
    """
    with _storage_errors():
        cursor = conn.execute(
            """
            UPDATE saved_searches SET
                name = :name,
                filters_json = :filters_json,
                notify_new_matches = :notify_new_matches,
                notification_frequency = :notification_frequency,
                last_active_frequency = :last_active_frequency,
                preferred_day = :preferred_day,
                preferred_hour = :preferred_hour,
                biweekly_week = :biweekly_week,
                last_used_at = :last_used_at,
                updated_at = :updated_at
            WHERE id = :id AND owner_id = :owner_id
            """,
            _search_params(search),
        )
        conn.commit()
    return cursor.rowcount > 0


def get_saved_search(
    conn: sqlite3.Connection,
    search_id: str,
    owner_id: str,
) -> SavedSearch | None:
    """Return the search if it exists and belongs to owner_id."""
    with _storage_errors():
        row = conn.execute(
            "SELECT * FROM saved_searches WHERE id = ? AND owner_id = ?",
            (search_id, owner_id),
        ).fetchone()
    if row is None:
        return None
    return _row_to_search(row)


def list_saved_searches(conn: sqlite3.Connection, owner_id: str) -> list[SavedSearch]:
    """All searches of one owner, newest first."""
    with _storage_errors():
        rows = conn.execute(
            """
            SELECT * FROM saved_searches
            WHERE owner_id = ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (owner_id,),
        ).fetchall()
    return [_row_to_search(r) for r in rows]


def list_subscriptions(
    conn: sqlite3.Connection,
    frequency: AlertFrequency,
) -> list[SavedSearch]:
    """Searches with alerts on at the given cadence, across all owners."""
    with _storage_errors():
        rows = conn.execute(
            """
            SELECT * FROM saved_searches
            WHERE notify_new_matches = 1 AND notification_frequency = ?
            ORDER BY created_at, rowid
            """,
            (frequency.value,),
        ).fetchall()
    return [_row_to_search(r) for r in rows]


def touch_last_used(
    conn: sqlite3.Connection,
    search_id: str,
    owner_id: str,
    used_at: datetime,
) -> bool:
    """Stamp last_used_at. Returns False if no row matched."""
    with _storage_errors():
        cursor = conn.execute(
            "UPDATE saved_searches SET last_used_at = ? WHERE id = ? AND owner_id = ?",
            (_to_text(used_at), search_id, owner_id),
        )
        conn.commit()
    return cursor.rowcount > 0


def delete_saved_search(
    conn: sqlite3.Connection,
    search_id: str,
    owner_id: str,
    commit: bool = True,
) -> bool:
    """Delete one search. Returns False if no row matched.

    With commit=False the delete stays in the open transaction.
    """
    with _storage_errors():
        cursor = conn.execute(
            "DELETE FROM saved_searches WHERE id = ? AND owner_id = ?",
            (search_id, owner_id),
        )
        if commit:
            conn.commit()
    return cursor.rowcount > 0


def insert_alert_cancellation(
    conn: sqlite3.Connection,
    search_id: str,
    owner_id: str,
    requested_at: datetime,
) -> int:
    """Record that alerts for a deleted search must stop. Returns the row ID."""
    with _storage_errors():
        cursor = conn.execute(
            """
            INSERT INTO alert_cancellations (search_id, owner_id, requested_at)
            VALUES (?, ?, ?)
            """,
            (search_id, owner_id, _to_text(requested_at)),
        )
        conn.commit()
    return cursor.lastrowid or 0
