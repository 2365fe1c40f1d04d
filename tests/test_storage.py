"""Tests for storage.py - snapshots and state stores."""

import json
import os
import sqlite3
from pathlib import Path

import pytest

import storage
from models import InterDayViolation
from service import ClockedInService
from storage import (
    JsonFileStateStore,
    SerializationError,
    SqliteStateStore,
    StorageOpenError,
    get_store,
    load_service,
    save_service,
    service_from_snapshot,
    snapshot_from_service,
)


@pytest.fixture
def busy_service(worked_week, at):
    """A service with history, a current week, a day buffer and an open journey."""
    worked_week.clock_in(at(3, 9))
    worked_week.clock_out_and_end_week(at(3, 17))
    worked_week.clock_in(at(7, 8))
    worked_week.clock_out_and_end_day(at(7, 16, 30))
    worked_week.clock_in(at(8, 8))
    worked_week.clock_out(at(8, 12))
    worked_week.clock_in(at(8, 13))
    return worked_week


class TestSnapshot:
    """Tests for snapshot conversion."""

    def test_snapshot_layout(self, busy_service):
        """The snapshot is versioned and holds every buffer."""
        snapshot = snapshot_from_service(busy_service)
        assert snapshot["version"] == storage.SNAPSHOT_VERSION
        assert len(snapshot["registry"]["history"]) == 1
        assert len(snapshot["registry"]["history"][0]["days"]) == 4
        assert snapshot["open_journey"] == {"start": "2026-02-03T13:00:00"}
        assert snapshot["day_buffer"] == [
            {"start": "2026-02-03T08:00:00", "end": "2026-02-03T12:00:00"}
        ]
        assert len(snapshot["current_week"]["days"]) == 1

    def test_empty_service_snapshot(self):
        snapshot = snapshot_from_service(ClockedInService())
        assert snapshot["open_journey"] is None
        assert snapshot["current_week"] is None
        assert snapshot["registry"] == {"history": []}

    def test_round_trip(self, busy_service):
        """Rebuilding from a snapshot gives an equal service."""
        rebuilt = service_from_snapshot(json.loads(json.dumps(snapshot_from_service(busy_service))))
        assert rebuilt == busy_service

    def test_round_trip_keeps_week_violation(self, service, at):
        """The inter-day violation survives a round trip."""
        service.clock_in(at(0, 14))
        service.clock_out(at(0, 17))
        service.clock_in(at(0, 18))
        service.clock_out_and_end_day(at(0, 23))
        service.clock_in(at(1, 8))
        service.clock_out_and_end_day(at(1, 16))
        assert service.current_week.violation is InterDayViolation.INTER_DAY_REST_VIOLATION

        rebuilt = service_from_snapshot(snapshot_from_service(service))
        assert rebuilt.current_week.violation is InterDayViolation.INTER_DAY_REST_VIOLATION
        assert rebuilt == service

    def test_unknown_version(self):
        """Snapshots from another version are refused."""
        snapshot = snapshot_from_service(ClockedInService())
        snapshot["version"] = 99
        with pytest.raises(SerializationError):
            service_from_snapshot(snapshot)

    def test_missing_keys(self):
        with pytest.raises(SerializationError):
            service_from_snapshot({"version": 1})

    def test_invalid_journey(self):
        """A stored journey ending before its start is malformed content."""
        snapshot = snapshot_from_service(ClockedInService())
        snapshot["day_buffer"] = [{"start": "2026-01-26T10:00:00", "end": "2026-01-26T09:00:00"}]
        with pytest.raises(SerializationError):
            service_from_snapshot(snapshot)

    def test_day_without_journeys(self):
        """A stored day must hold at least one journey."""
        snapshot = snapshot_from_service(ClockedInService())
        snapshot["current_week"] = {"days": [{"journeys": []}], "violation": None}
        with pytest.raises(SerializationError):
            service_from_snapshot(snapshot)

    def test_day_without_journeys_loads_empty(self, json_store, at):
        """Such a state is discarded and the next clock-in works."""
        snapshot = snapshot_from_service(ClockedInService())
        snapshot["current_week"] = {"days": [{"journeys": []}], "violation": None}
        json_store.path.write_text(json.dumps(snapshot))

        service = load_service(json_store)
        assert service == ClockedInService()
        service.clock_in(at(0, 9))
        assert service.open_journey.start == at(0, 9)


class TestJsonFileStateStore:
    """Tests for the JSON file store."""

    def test_load_missing_file(self, json_store):
        assert json_store.load() is None

    def test_save_and_load(self, json_store, busy_service):
        save_service(json_store, busy_service)
        assert json_store.load() == busy_service

    def test_save_replaces_previous_content(self, json_store, busy_service):
        save_service(json_store, ClockedInService())
        save_service(json_store, busy_service)
        assert json_store.load() == busy_service

    def test_save_leaves_no_temporary_files(self, json_store, busy_service):
        save_service(json_store, busy_service)
        assert sorted(p.name for p in json_store.path.parent.iterdir()) == ["state.json"]

    def test_corrupt_file(self, json_store):
        json_store.path.write_text("{not json")
        with pytest.raises(SerializationError):
            json_store.load()

    def test_unopenable_path(self, tmp_path):
        """A directory where the file should be cannot be opened."""
        store = JsonFileStateStore(tmp_path)
        with pytest.raises(StorageOpenError):
            store.load()

    def test_save_to_unwritable_location(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = JsonFileStateStore(blocker / "state.json")
        with pytest.raises(StorageOpenError):
            store.save(ClockedInService())


class TestSqliteStateStore:
    """Tests for the sqlite store."""

    def test_load_missing_database(self, sqlite_store):
        assert sqlite_store.load() is None
        assert not sqlite_store.path.exists()

    def test_save_and_load(self, sqlite_store, busy_service):
        save_service(sqlite_store, busy_service)
        assert sqlite_store.load() == busy_service

    def test_single_row(self, sqlite_store, busy_service):
        """Saving twice keeps exactly one snapshot."""
        save_service(sqlite_store, ClockedInService())
        save_service(sqlite_store, busy_service)

        conn = sqlite3.connect(sqlite_store.path)
        count = conn.execute("SELECT COUNT(*) FROM service_state").fetchone()[0]
        version = conn.execute("SELECT version FROM service_state").fetchone()[0]
        conn.close()
        assert count == 1
        assert version == storage.SNAPSHOT_VERSION

    def test_empty_database(self, sqlite_store):
        """A database without a snapshot row loads as nothing."""
        conn = sqlite3.connect(sqlite_store.path)
        conn.close()
        assert sqlite_store.load() is None

    def test_not_a_database(self, sqlite_store):
        sqlite_store.path.write_bytes(b"this is not a sqlite database at all" * 10)
        with pytest.raises(SerializationError):
            sqlite_store.load()

    def test_corrupt_payload(self, sqlite_store):
        conn = sqlite3.connect(sqlite_store.path)
        sqlite_store.init_db(conn)
        conn.execute(
            "INSERT INTO service_state (id, version, saved_at, payload) VALUES (1, 1, 'now', '{oops')"
        )
        conn.commit()
        conn.close()
        with pytest.raises(SerializationError):
            sqlite_store.load()


class TestLoadPolicy:
    """Tests for get_store, load_service and save_service."""

    def test_get_store_by_suffix(self, tmp_path):
        assert isinstance(get_store(tmp_path / "state.json"), JsonFileStateStore)
        assert isinstance(get_store(tmp_path / "state.db"), SqliteStateStore)
        assert isinstance(get_store(str(tmp_path / "STATE.JSON")), JsonFileStateStore)

    def test_default_store_from_environment(self):
        """The default path comes from CLOCKEDIN_DB."""
        assert get_store().path == Path(os.environ["CLOCKEDIN_DB"])

    def test_missing_state_starts_empty(self, json_store):
        assert load_service(json_store) == ClockedInService()

    def test_unreadable_state_starts_empty(self, json_store, caplog):
        json_store.path.write_text("garbage")
        assert load_service(json_store) == ClockedInService()
        assert "Discarding unreadable state" in caplog.text

    def test_unopenable_state_is_fatal(self, tmp_path):
        with pytest.raises(StorageOpenError):
            load_service(JsonFileStateStore(tmp_path))

    def test_undecodable_state_starts_empty(self, json_store, caplog):
        """A state file that is not UTF-8 is discarded like any corrupt content."""
        json_store.path.write_bytes(b"\xff\xfe\x00garbage")
        assert load_service(json_store) == ClockedInService()
        assert "Discarding unreadable state" in caplog.text
        assert any(record.levelname == "WARNING" for record in caplog.records)

    def test_undecodable_state_raises_serialization_error(self, json_store):
        json_store.path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(SerializationError):
            json_store.load()
