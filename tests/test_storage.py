"""
Tests for the record store backends.

The Google Sheets collection runs against an in-process fake worksheet;
no network calls are made.
"""

import pytest

from src.models.records import (
    Goal,
    GoalType,
    Habit,
    HabitCategory,
    HabitEntry,
    TrackingType,
)
from src.services.storage import (
    DuplicateError,
    GoogleSheetsCollection,
    GoogleSheetsRecordStore,
    InMemoryCollection,
    InMemoryRecordStore,
    StorageError,
)
from src.services.storage.google_sheets import wire_headers


@pytest.fixture
def sheet_habits(sheets_client):
    return GoogleSheetsCollection(sheets_client, Habit, "test_habits")


@pytest.fixture
def sheet_entries(sheets_client):
    return GoogleSheetsCollection(sheets_client, HabitEntry, "test_habit_entries")


class TestInMemoryCollection:
    """Tests for the in-memory collection."""

    @pytest.mark.asyncio
    async def test_add_and_get(self):
        """Test adding and fetching a record."""
        collection = InMemoryCollection(Habit)
        habit = Habit(name="Read", category=HabitCategory.LEARNING, goal_value=20)
        await collection.add(habit)
        assert await collection.get(habit.id) == habit
        assert await collection.get("missing") is None
        assert len(collection) == 1

    @pytest.mark.asyncio
    async def test_duplicate_id_is_rejected(self):
        """Test that a duplicate id is rejected."""
        collection = InMemoryCollection(Habit)
        habit = Habit(id="h1", name="Read", category=HabitCategory.LEARNING, goal_value=20)
        await collection.add(habit)
        with pytest.raises(DuplicateError):
            await collection.add(habit)

    @pytest.mark.asyncio
    async def test_bulk_add_is_all_or_nothing(self):
        """A duplicate in a batch inserts nothing."""
        collection = InMemoryCollection(HabitEntry)
        entries = [
            HabitEntry(id="e1", habit_id="h1", date="2024-01-01"),
            HabitEntry(id="e1", habit_id="h1", date="2024-01-02"),
        ]
        with pytest.raises(DuplicateError):
            await collection.bulk_add(entries)
        assert await collection.all() == []

    @pytest.mark.asyncio
    async def test_wrong_record_type(self):
        """Records of another model are refused."""
        collection = InMemoryCollection(Habit)
        with pytest.raises(StorageError):
            await collection.add(HabitEntry(habit_id="h1", date="2024-01-01"))

    @pytest.mark.asyncio
    async def test_update_merges_and_validates(self):
        """Updates merge fields and re-validate the record."""
        collection = InMemoryCollection(HabitEntry)
        entry = HabitEntry(habit_id="h1", date="2024-01-01", value=2)
        await collection.add(entry)

        updated = await collection.update(entry.id, {"value": 5})
        assert updated.value == 5
        assert updated.date == "2024-01-01"
        assert await collection.update("missing", {"value": 5}) is None

        with pytest.raises(ValueError):
            await collection.update(entry.id, {"date": "2024-13-01"})

    @pytest.mark.asyncio
    async def test_delete_where(self):
        """Deleting by field value."""
        collection = InMemoryCollection(HabitEntry)
        await collection.bulk_add([
            HabitEntry(habit_id="h1", date="2024-01-01"),
            HabitEntry(habit_id="h1", date="2024-01-02"),
            HabitEntry(habit_id="h2", date="2024-01-01"),
        ])
        assert await collection.delete_where("habit_id", "h1") == 2
        assert [e.habit_id for e in await collection.all()] == ["h2"]

    @pytest.mark.asyncio
    async def test_range_by_field(self):
        """Inclusive and exclusive date ranges."""
        collection = InMemoryCollection(HabitEntry)
        for day in ("2023-12-31", "2024-01-01", "2024-01-15", "2024-01-31", "2024-02-01"):
            await collection.add(HabitEntry(habit_id="h1", date=day))

        inclusive = await collection.range_by_field("date", "2024-01-01", "2024-01-31")
        exclusive = await collection.range_by_field(
            "date", "2024-01-01", "2024-01-31", inclusive=False
        )
        assert sorted(e.date for e in inclusive) == ["2024-01-01", "2024-01-15", "2024-01-31"]
        assert [e.date for e in exclusive] == ["2024-01-15"]

    @pytest.mark.asyncio
    async def test_store_collection_lookup(self):
        """Collections are looked up by name."""
        store = InMemoryRecordStore()
        assert store.collection("habit_entries") is store.habit_entries
        with pytest.raises(KeyError):
            store.collection("bills")


class TestGoogleSheetsCollection:
    """Tests for the worksheet-backed collection."""

    @pytest.mark.asyncio
    async def test_round_trip_through_cells(self, sheet_habits, sheets_client):
        """Records survive the round trip through string cells."""
        habit = Habit(
            name="Water", category=HabitCategory.HEALTH, goal_value=8,
            active=False, order=3,
        )
        await sheet_habits.add(habit)

        sheet = sheets_client.sheets["test_habits"]
        assert sheet.rows[0] == wire_headers(Habit)
        assert all(isinstance(cell, str) for cell in sheet.rows[1])

        stored = await sheet_habits.get(habit.id)
        assert stored == habit
        assert stored.unit is None
        assert stored.active is False

    @pytest.mark.asyncio
    async def test_enum_values_survive(self, sheets_client):
        """Enum values are read back from cells."""
        goals = GoogleSheetsCollection(sheets_client, Goal, "test_goals")
        goal = Goal(
            name="Run", type=GoalType.HABIT, target=10, start_date="2024-01-01",
            tracking_type=TrackingType.PER_PERIOD,
        )
        await goals.add(goal)
        assert (await goals.all())[0].tracking_type == TrackingType.PER_PERIOD

    @pytest.mark.asyncio
    async def test_duplicate_is_rejected(self, sheet_habits):
        """Test that a duplicate id is rejected."""
        habit = Habit(id="h1", name="Read", category=HabitCategory.LEARNING, goal_value=20)
        await sheet_habits.add(habit)
        with pytest.raises(DuplicateError):
            await sheet_habits.add(habit)

    @pytest.mark.asyncio
    async def test_update_rewrites_row(self, sheet_entries):
        """Updates rewrite the record's row."""
        entry = HabitEntry(habit_id="h1", date="2024-01-01", value=2)
        await sheet_entries.add(entry)

        updated = await sheet_entries.update(entry.id, {"value": 6})

        assert updated.value == 6
        assert (await sheet_entries.get(entry.id)).value == 6
        assert await sheet_entries.update("missing", {"value": 1}) is None

    @pytest.mark.asyncio
    async def test_delete_and_delete_where(self, sheet_entries):
        """Row deletion by id and by field."""
        await sheet_entries.bulk_add([
            HabitEntry(id="e1", habit_id="h1", date="2024-01-01"),
            HabitEntry(id="e2", habit_id="h2", date="2024-01-01"),
            HabitEntry(id="e3", habit_id="h1", date="2024-01-02"),
            HabitEntry(id="e4", habit_id="h1", date="2024-01-03"),
        ])

        assert await sheet_entries.delete("e4") is True
        assert await sheet_entries.delete("e4") is False
        assert await sheet_entries.delete_where("habit_id", "h1") == 2
        assert [e.id for e in await sheet_entries.all()] == ["e2"]

    @pytest.mark.asyncio
    async def test_range_by_field(self, sheet_entries):
        """Date ranges over worksheet rows."""
        await sheet_entries.bulk_add([
            HabitEntry(habit_id="h1", date="2024-01-31"),
            HabitEntry(habit_id="h1", date="2024-02-01"),
        ])
        january = await sheet_entries.range_by_field("date", "2024-01-01", "2024-01-31")
        assert [e.date for e in january] == ["2024-01-31"]

    @pytest.mark.asyncio
    async def test_clear_keeps_header(self, sheet_entries, sheets_client):
        """Clearing leaves only the header row."""
        await sheet_entries.add(HabitEntry(habit_id="h1", date="2024-01-01"))
        await sheet_entries.clear()

        assert sheets_client.sheets["test_habit_entries"].rows == [wire_headers(HabitEntry)]
        assert await sheet_entries.all() == []

    def test_record_store_names_worksheets(self, sheets_client):
        """The store builds one collection per model."""
        store = GoogleSheetsRecordStore(sheets_client)
        assert store.habit_entries.model is HabitEntry
        assert store.collection("settings").model.__name__ == "AppSettings"
