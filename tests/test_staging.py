"""Tests for staging snapshot stores."""

import json
from datetime import date

import pytest

from breakplanner.domain.models import Assignment, SchedulingScope, ShiftType
from breakplanner.errors import SnapshotCorruptError
from breakplanner.storage.json_staging import (
    SNAPSHOT_VERSION,
    JsonFileStagingStore,
    dump_snapshot,
    parse_snapshot,
)
from breakplanner.storage.memory import InMemoryStagingStore

SATURDAY = date(2024, 6, 1)


@pytest.fixture
def draft():
    return [
        Assignment(
            id="temp-1717266600000-1-u1",
            slot_id="std-night-0",
            user_id="u1",
            user_name="Alice Brown",
            shift_type=ShiftType.NIGHT,
            date=SATURDAY,
            location="Rugby",
            start_time="20:00",
            duration_minutes=60,
            break_code="night",
        )
    ]


@pytest.fixture
def key():
    return SchedulingScope(SATURDAY, ShiftType.NIGHT, "Rugby").key


class TestSnapshotFormat:
    """Tests for snapshot serialization."""

    def test_key_format(self, key):
        """Keys name the date, shift and location."""
        assert key.value == "breaks_2024-06-01_night_Rugby"
        assert SchedulingScope(SATURDAY, ShiftType.DAY, None).key.value == "breaks_2024-06-01_day_all"

    def test_dump_is_versioned(self, draft):
        """Snapshots carry a version and the assignment list."""
        data = json.loads(dump_snapshot(draft))
        assert data["version"] == SNAPSHOT_VERSION
        assert data["assignments"][0]["user_name"] == "Alice Brown"

    def test_parse_accepts_bare_list(self, draft):
        """A plain JSON list of assignments is accepted."""
        text = json.dumps([a.to_dict() for a in draft])
        assert parse_snapshot(text) == draft

    @pytest.mark.parametrize(
        "text",
        ["{oops", '{"assignments": [{"id": 1}]}', '{"version": 1}', "42", "[1]", '{"assignments": [["x"]]}'],
    )
    def test_parse_rejects_garbage(self, text):
        """Malformed snapshots raise SnapshotCorruptError."""
        with pytest.raises(SnapshotCorruptError):
            parse_snapshot(text)


class TestJsonFileStagingStore:
    """Tests for file-backed snapshots."""

    @pytest.fixture
    def staging(self, tmp_path):
        return JsonFileStagingStore(tmp_path / "staging")

    def test_missing_snapshot(self, staging, key):
        """No file means no snapshot."""
        assert staging.load_staging_snapshot(key) is None

    def test_persist_and_load(self, staging, key, draft):
        """A persisted snapshot loads back equal."""
        staging.persist_staging_snapshot(key, draft)
        assert staging.path_for(key).exists()
        assert staging.load_staging_snapshot(key) == draft

    def test_clear(self, staging, key, draft):
        """Clearing removes the file and is safe to repeat."""
        staging.persist_staging_snapshot(key, draft)
        staging.clear_staging_snapshot(key)
        staging.clear_staging_snapshot(key)
        assert staging.load_staging_snapshot(key) is None

    def test_corrupt_file(self, staging, key):
        """An unreadable file raises SnapshotCorruptError."""
        path = staging.path_for(key)
        path.parent.mkdir(parents=True)
        path.write_text("not json")
        with pytest.raises(SnapshotCorruptError):
            staging.load_staging_snapshot(key)

    def test_path_is_sanitized(self, staging):
        """Location names cannot escape the staging directory."""
        key = SchedulingScope(SATURDAY, ShiftType.DAY, "../etc").key
        assert staging.path_for(key).parent == staging.directory

    def test_similar_locations_get_separate_files(self, staging, draft):
        """Locations that differ only in punctuation do not share a snapshot."""
        slash = SchedulingScope(SATURDAY, ShiftType.NIGHT, "Site/North").key
        underscore = SchedulingScope(SATURDAY, ShiftType.NIGHT, "Site_North").key
        assert staging.path_for(slash) != staging.path_for(underscore)

        staging.persist_staging_snapshot(slash, draft)
        assert staging.load_staging_snapshot(underscore) is None
        assert staging.load_staging_snapshot(slash) == draft


class TestInMemoryStagingStore:
    """Tests for the in-memory staging store."""

    def test_round_trip(self, key, draft):
        """Snapshots are stored as JSON text."""
        staging = InMemoryStagingStore()
        staging.persist_staging_snapshot(key, draft)
        assert isinstance(staging.snapshots[key.value], str)
        assert staging.load_staging_snapshot(key) == draft
        staging.clear_staging_snapshot(key)
        assert staging.load_staging_snapshot(key) is None
