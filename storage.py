from __future__ import annotations

import json
import logging
import os
import sqlite3
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from models import (
    ClockedInError,
    IncompleteWorkJourney,
    InterDayViolation,
    LongTermRegistry,
    WorkDay,
    WorkJourney,
    WorkWeek,
)
from service import ClockedInService

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class StorageError(ClockedInError):
    """Base type for persistence failures."""


class SerializationError(StorageError):
    """The persisted content could not be encoded or decoded."""

    def __init__(self, message: str = "Error during serialization of the service state."):
        super().__init__(message)


class StorageOpenError(StorageError):
    """The backing resource could not be opened."""

    def __init__(self, message: str = "Error during opening of the state file."):
        super().__init__(message)


def _get_db_path() -> Path:
    """Get state path from environment variable or default location."""
    if env_path := os.environ.get("CLOCKEDIN_DB"):
        return Path(env_path)
    return Path(__file__).parent / "data" / "clockedin.db"


DB_PATH = _get_db_path()


# --- Snapshot conversion ---


def _journey_to_dict(journey: WorkJourney) -> dict[str, str]:
    return {"start": journey.start.isoformat(), "end": journey.end.isoformat()}


def _dict_to_journey(data: dict[str, str]) -> WorkJourney:
    return WorkJourney(datetime.fromisoformat(data["start"]), datetime.fromisoformat(data["end"]))


def _week_to_dict(week: WorkWeek) -> dict[str, Any]:
    return {
        "days": [{"journeys": [_journey_to_dict(j) for j in day.journeys]} for day in week.days],
        "violation": week.violation.value if week.violation else None,
    }


def _dict_to_week(data: dict[str, Any]) -> WorkWeek:
    week = WorkWeek()
    for day_data in data["days"]:
        if not day_data["journeys"]:
            raise SerializationError("Stored work day has no journeys.")
        week.append_day(WorkDay.from_journeys(_dict_to_journey(j) for j in day_data["journeys"]))
    if data.get("violation"):
        week.violation = InterDayViolation(data["violation"])
    return week


def snapshot_from_service(service: ClockedInService) -> dict[str, Any]:
    """Build the versioned snapshot of the whole service state."""
    open_journey = service.open_journey
    return {
        "version": SNAPSHOT_VERSION,
        "registry": {"history": [_week_to_dict(week) for week in service.registry.history]},
        "open_journey": {"start": open_journey.start.isoformat()} if open_journey else None,
        "day_buffer": [_journey_to_dict(j) for j in service.day_buffer],
        "current_week": _week_to_dict(service.current_week) if service.current_week else None,
    }


def service_from_snapshot(snapshot: dict[str, Any]) -> ClockedInService:
    """Rebuild a service from a snapshot. Derived totals and violations are recomputed."""
    try:
        version = snapshot["version"]
        if version != SNAPSHOT_VERSION:
            raise SerializationError(f"Unsupported snapshot version {version!r}.")

        open_journey = snapshot["open_journey"]
        current_week = snapshot["current_week"]
        return ClockedInService(
            registry=LongTermRegistry([_dict_to_week(w) for w in snapshot["registry"]["history"]]),
            open_journey=(
                IncompleteWorkJourney(datetime.fromisoformat(open_journey["start"]))
                if open_journey
                else None
            ),
            day_buffer=[_dict_to_journey(j) for j in snapshot["day_buffer"]],
            current_week=_dict_to_week(current_week) if current_week is not None else None,
        )
    except SerializationError:
        raise
    except (ClockedInError, KeyError, TypeError, ValueError, IndexError) as exc:
        raise SerializationError(f"Malformed service state: {exc}") from exc


# --- Stores ---


class StateStore(Protocol):
    path: Path

    def save(self, service: ClockedInService) -> None: ...

    def load(self) -> ClockedInService | None: ...


class SqliteStateStore:
    """Keeps the snapshot as a single row of a sqlite database."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get_connection(self) -> sqlite3.Connection:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path)
        except (OSError, sqlite3.Error) as exc:
            raise StorageOpenError(f"Unable to open {self.path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self, conn: sqlite3.Connection) -> None:
        """Create the state table if it doesn't exist."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS service_state (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                version INTEGER NOT NULL,
                saved_at TEXT NOT NULL,
                payload TEXT NOT NULL
            )
        """)

    def save(self, service: ClockedInService) -> None:
        try:
            payload = json.dumps(snapshot_from_service(service))
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Unable to encode service state: {exc}") from exc

        conn = self.get_connection()
        try:
            with conn:
                self.init_db(conn)
                conn.execute(
                    """
                    INSERT OR REPLACE INTO service_state (id, version, saved_at, payload)
                    VALUES (1, ?, ?, ?)
                    """,
                    (SNAPSHOT_VERSION, datetime.now().isoformat(timespec="seconds"), payload),
                )
        except sqlite3.DatabaseError as exc:
            raise StorageOpenError(f"Unable to write {self.path}: {exc}") from exc
        finally:
            conn.close()
        logger.debug("Saved service state to %s (%d bytes)", self.path, len(payload))

    def load(self) -> ClockedInService | None:
        if not self.path.exists():
            return None

        conn = self.get_connection()
        try:
            self.init_db(conn)
            row = conn.execute("SELECT payload FROM service_state WHERE id = 1").fetchone()
        except sqlite3.DatabaseError as exc:
            raise SerializationError(f"Unreadable state database {self.path}: {exc}") from exc
        finally:
            conn.close()

        if row is None:
            return None
        try:
            snapshot = json.loads(row["payload"])
        except json.JSONDecodeError as exc:
            raise SerializationError(f"Corrupt state payload in {self.path}: {exc}") from exc
        return service_from_snapshot(snapshot)


class JsonFileStateStore:
    """Keeps the snapshot as a JSON document, replaced atomically on save."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def save(self, service: ClockedInService) -> None:
        try:
            payload = json.dumps(snapshot_from_service(service), indent=2)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Unable to encode service state: {exc}") from exc

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        except OSError as exc:
            raise StorageOpenError(f"Unable to open {self.path}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageOpenError(f"Unable to write {self.path}: {exc}") from exc
        logger.debug("Saved service state to %s (%d bytes)", self.path, len(payload))

    def load(self) -> ClockedInService | None:
        try:
            with open(self.path, encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise SerializationError(f"Corrupt state file {self.path}: {exc}") from exc
        except OSError as exc:
            raise StorageOpenError(f"Unable to open {self.path}: {exc}") from exc

        try:
            snapshot = json.loads(content)
        except json.JSONDecodeError as exc:
            raise SerializationError(f"Corrupt state file {self.path}: {exc}") from exc
        return service_from_snapshot(snapshot)


def get_store(path: Path | str | None = None) -> StateStore:
    """Pick the store for a path: `.json` files get the JSON store, anything else sqlite."""
    path = Path(path) if path is not None else DB_PATH
    if path.suffix.lower() == ".json":
        return JsonFileStateStore(path)
    return SqliteStateStore(path)


def load_service(store: StateStore) -> ClockedInService:
    """Load the persisted service, starting empty when nothing usable is stored.

    Unreadable content falls back to an empty service. A store that cannot be
    opened is fatal and the StorageOpenError propagates.
    """
    try:
        service = store.load()
    except SerializationError as exc:
        logger.warning("Discarding unreadable state in %s: %s", store.path, exc)
        return ClockedInService()

    if service is None:
        logger.info("No state found in %s, starting empty", store.path)
        return ClockedInService()
    return service


def save_service(store: StateStore, service: ClockedInService) -> None:
    store.save(service)
