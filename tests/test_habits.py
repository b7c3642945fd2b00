"""Tests for the habit aggregation engine."""

from datetime import date

import pytest
from pydantic import ValidationError

from src.engines import HabitTracker
from src.models.audit import AuditEventType
from src.models.records import (
    HabitCategory,
    HabitPeriod,
    HabitType,
)
from src.services.storage import InMemoryRecordStore, StorageError


async def _mark_done(tracker: HabitTracker, habit_id: str, days: list[int]) -> None:
    """Toggle a boolean habit on for the given January 2024 days."""
    for day in days:
        await tracker.toggle_entry(habit_id, date(2024, 1, day))


class TestHabitMutations:
    """Tests for habit and entry mutations."""

    @pytest.mark.asyncio
    async def test_add_habit_assigns_insertion_order(self, habit_tracker):
        """New habits are ordered by insertion."""
        first = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 20)
        second = await habit_tracker.add_habit("Run", HabitCategory.HEALTH, 12)
        assert first.order == 0
        assert second.order == 1
        assert first.period == HabitPeriod.MONTHLY
        assert [h.name for h in habit_tracker.habits] == ["Read", "Run"]

    @pytest.mark.asyncio
    async def test_order_stays_unique_after_delete(self, habit_tracker):
        """Orders stay unique after a delete."""
        first = await habit_tracker.add_habit("A", HabitCategory.HEALTH, 10)
        await habit_tracker.add_habit("B", HabitCategory.HEALTH, 10)
        await habit_tracker.add_habit("C", HabitCategory.HEALTH, 10)
        await habit_tracker.delete_habit(first.id)

        fourth = await habit_tracker.add_habit("D", HabitCategory.HEALTH, 10)
        orders = [h.order for h in habit_tracker.habits]
        assert fourth.order == 3
        assert len(orders) == len(set(orders))

    @pytest.mark.asyncio
    async def test_toggle_twice_restores_state(self, habit_tracker, store):
        """Two toggles on an empty day leave no entry."""
        habit = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 20)

        created = await habit_tracker.toggle_entry(habit.id, "2024-01-05")
        assert created is not None
        assert created.value == 1
        assert len(habit_tracker.entries) == 1

        removed = await habit_tracker.toggle_entry(habit.id, "2024-01-05")
        assert removed is None
        assert await store.habit_entries.all() == []
        assert habit_tracker.entries == []

    @pytest.mark.asyncio
    async def test_toggle_twice_keeps_existing_entry(self, habit_tracker, store):
        """Two toggles on a done day leave one equivalent entry."""
        habit = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 20)
        await habit_tracker.toggle_entry(habit.id, "2024-01-05")
        before = await store.habit_entries.all()

        await habit_tracker.toggle_entry(habit.id, "2024-01-05")
        await habit_tracker.toggle_entry(habit.id, "2024-01-05")
        after = await store.habit_entries.all()

        assert len(after) == 1
        assert after[0].habit_id == before[0].habit_id
        assert after[0].date == before[0].date
        assert after[0].value == before[0].value

    @pytest.mark.asyncio
    async def test_toggle_outside_selected_month_stays_unique(self, habit_tracker, store):
        """Entries outside the loaded month are still found."""
        habit = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 20)
        await habit_tracker.toggle_entry(habit.id, date(2024, 2, 10))
        assert habit_tracker.entries == []  # February is not loaded

        await habit_tracker.toggle_entry(habit.id, date(2024, 2, 10))
        assert await store.habit_entries.all() == []

    @pytest.mark.asyncio
    async def test_toggle_unknown_habit_is_noop(self, habit_tracker, store):
        """Toggling a missing habit does nothing."""
        result = await habit_tracker.toggle_entry("missing", "2024-01-05")
        assert result is None
        assert await store.habit_entries.all() == []

    @pytest.mark.asyncio
    async def test_set_numeric_value_updates_in_place(self, habit_tracker, store):
        """A second value for the same day updates the entry."""
        habit = await habit_tracker.add_habit(
            "Water", HabitCategory.HEALTH, 8,
            type=HabitType.NUMERIC, unit="glasses", period=HabitPeriod.DAILY,
        )
        await habit_tracker.set_numeric_value(habit.id, "2024-01-03", 5)
        entry = await habit_tracker.set_numeric_value(habit.id, "2024-01-03", 7)

        entries = await store.habit_entries.all()
        assert len(entries) == 1
        assert entries[0].value == 7
        assert entry.id == entries[0].id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, -3])
    async def test_set_numeric_value_non_positive_deletes(self, habit_tracker, store, value):
        """Zero or negative values delete the entry."""
        habit = await habit_tracker.add_habit(
            "Water", HabitCategory.HEALTH, 8, type=HabitType.NUMERIC,
        )
        await habit_tracker.set_numeric_value(habit.id, "2024-01-03", 5)

        result = await habit_tracker.set_numeric_value(habit.id, "2024-01-03", value)
        assert result is None
        assert await habit_tracker.find_entry(habit.id, "2024-01-03") is None
        assert await store.habit_entries.all() == []

    @pytest.mark.asyncio
    async def test_set_numeric_zero_without_entry_is_noop(self, habit_tracker, store):
        """Zero on an empty day creates nothing."""
        habit = await habit_tracker.add_habit(
            "Water", HabitCategory.HEALTH, 8, type=HabitType.NUMERIC,
        )
        assert await habit_tracker.set_numeric_value(habit.id, "2024-01-03", 0) is None
        assert await store.habit_entries.all() == []

    @pytest.mark.asyncio
    async def test_delete_habit_cascades_to_entries(self, habit_tracker, store):
        """Deleting a habit removes all its entries, in any month."""
        doomed = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 20)
        kept = await habit_tracker.add_habit("Run", HabitCategory.HEALTH, 10)
        await habit_tracker.toggle_entry(doomed.id, "2024-01-02")
        await habit_tracker.toggle_entry(doomed.id, "2023-12-31")
        await habit_tracker.toggle_entry(kept.id, "2024-01-02")

        assert await habit_tracker.delete_habit(doomed.id) is True

        remaining = await store.habit_entries.all()
        assert [e.habit_id for e in remaining] == [kept.id]
        assert [h.id for h in habit_tracker.habits] == [kept.id]
        assert all(e.habit_id == kept.id for e in habit_tracker.entries)

    @pytest.mark.asyncio
    async def test_delete_unknown_habit_is_noop(self, habit_tracker):
        """Deleting a missing habit returns False."""
        assert await habit_tracker.delete_habit("missing") is False

    @pytest.mark.asyncio
    async def test_update_habit(self, habit_tracker):
        """Updates merge fields and refresh the projection."""
        habit = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 20)
        updated = await habit_tracker.update_habit(habit.id, active=False, goal_value=25)
        assert updated.active is False
        assert updated.goal_value == 25
        assert habit_tracker.active_habits == []
        assert await habit_tracker.update_habit("missing", active=False) is None

    @pytest.mark.asyncio
    async def test_mutations_are_audited(self, habit_tracker, audit_storage):
        """Habit and entry mutations write audit events."""
        habit = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 20)
        await habit_tracker.toggle_entry(habit.id, "2024-01-05")

        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.ENTRY_CREATED
        assert events[1].event_type == AuditEventType.HABIT_CREATED

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self, january):
        """Store failures surface to the caller."""
        class FailingStore(InMemoryRecordStore):
            def __init__(self):
                super().__init__()

                async def fail(record):
                    raise StorageError("disk full")

                self.habit_entries.add = fail

        tracker = HabitTracker(FailingStore(), selected_month=january)
        habit = await tracker.add_habit("Read", HabitCategory.LEARNING, 20)
        with pytest.raises(StorageError, match="disk full"):
            await tracker.toggle_entry(habit.id, "2024-01-05")


class TestHabitProgress:
    """Tests for progress computations."""

    @pytest.mark.asyncio
    async def test_boolean_monthly_progress(self, habit_tracker):
        """Boolean monthly progress is entries over goal."""
        habit = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 20)
        await _mark_done(habit_tracker, habit.id, [1, 2, 3, 4, 5])
        assert habit_tracker.progress_for(habit) == pytest.approx(25.0)

    @pytest.mark.asyncio
    async def test_boolean_monthly_progress_is_capped(self, habit_tracker):
        """Monthly kinds stay capped even when uncapped is requested."""
        habit = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 4)
        await _mark_done(habit_tracker, habit.id, [1, 2, 3, 4, 5, 6])
        assert habit_tracker.progress_for(habit, capped=False) == 100.0

    @pytest.mark.asyncio
    async def test_numeric_daily_progress_shows_overachievement(self, habit_tracker):
        """Daily numeric progress can exceed 100 when uncapped."""
        habit = await habit_tracker.add_habit(
            "Water", HabitCategory.HEALTH, 8,
            type=HabitType.NUMERIC, period=HabitPeriod.DAILY,
        )
        for day in range(1, 32):
            await habit_tracker.set_numeric_value(habit.id, date(2024, 1, day), 10)

        # 310 glasses against 8 per day over 31 days
        assert habit_tracker.progress_for(habit, capped=False) == pytest.approx(125.0)
        assert habit_tracker.progress_for(habit) == 100.0

    @pytest.mark.asyncio
    async def test_numeric_monthly_progress_sums_values(self, habit_tracker):
        """Numeric monthly progress sums the logged values."""
        habit = await habit_tracker.add_habit(
            "Pages", HabitCategory.LEARNING, 100, type=HabitType.NUMERIC,
        )
        await habit_tracker.set_numeric_value(habit.id, "2024-01-02", 30)
        await habit_tracker.set_numeric_value(habit.id, "2024-01-09", 30)
        assert habit_tracker.progress_for(habit) == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_zero_goal_progress_is_zero(self, habit_tracker):
        """A zero goal yields zero progress."""
        habit = await habit_tracker.add_habit("Idle", HabitCategory.PERSONAL, 0)
        await _mark_done(habit_tracker, habit.id, [1])
        assert habit_tracker.progress_for(habit) == 0.0

    @pytest.mark.asyncio
    async def test_progress_ignores_other_habits_entries(self, habit_tracker):
        """Progress counts only the habit's own entries."""
        read = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 10)
        run = await habit_tracker.add_habit("Run", HabitCategory.HEALTH, 10)
        await _mark_done(habit_tracker, run.id, [1, 2, 3])
        assert habit_tracker.progress_for(read) == 0.0
        assert habit_tracker.habit_progress(run.id) == pytest.approx(30.0)

    def test_unknown_habit_progress_is_zero(self, habit_tracker):
        """Progress for a missing habit is zero."""
        assert habit_tracker.habit_progress("missing") == 0.0

    @pytest.mark.asyncio
    async def test_daily_completion(self, habit_tracker):
        """Daily completion is done habits over active habits."""
        read = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 10)
        await habit_tracker.add_habit("Run", HabitCategory.HEALTH, 10)
        await _mark_done(habit_tracker, read.id, [4])
        assert habit_tracker.daily_completion("2024-01-04") == pytest.approx(50.0)
        assert habit_tracker.daily_completion(date(2024, 1, 5)) == 0.0

    def test_daily_completion_without_active_habits(self, habit_tracker):
        """Daily completion is zero with no active habits."""
        assert habit_tracker.daily_completion("2024-01-04") == 0.0

    @pytest.mark.asyncio
    async def test_weekly_progress(self, habit_tracker):
        """Weekly progress counts entries over active habits times days."""
        read = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 10)
        await habit_tracker.add_habit("Run", HabitCategory.HEALTH, 10)
        # 7 entries in the first week: 2 active habits x 7 days = 14 possible
        await _mark_done(habit_tracker, read.id, [1, 2, 3, 4, 5, 6, 7])

        weeks = habit_tracker.weekly_progress()
        assert [w.week for w in weeks] == [1, 2, 3, 4, 5]
        assert weeks[0].progress == pytest.approx(50.0)
        assert weeks[1].progress == 0.0

    @pytest.mark.asyncio
    async def test_weekly_progress_partial_week(self, habit_tracker):
        """A trailing partial week only counts its own days."""
        read = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 10)
        # Jan 29-31 is a three-day week
        await _mark_done(habit_tracker, read.id, [29, 30, 31])
        assert habit_tracker.weekly_progress()[-1].progress == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_weekly_progress_month_starting_midweek(self, store):
        """A month starting midweek begins with a short week 1."""
        tracker = HabitTracker(store, selected_month=date(2024, 2, 1))
        habit = await tracker.add_habit("Read", HabitCategory.LEARNING, 10)
        await tracker.toggle_entry(habit.id, "2024-02-01")

        weeks = tracker.weekly_progress()
        # Feb 1 2024 is a Thursday: Thu-Sun forms week 1
        assert weeks[0].week == 1
        assert weeks[0].progress == pytest.approx(25.0)

    def test_weekly_progress_without_active_habits(self, habit_tracker):
        """No active habits gives no weeks."""
        assert habit_tracker.weekly_progress() == []

    @pytest.mark.asyncio
    async def test_monthly_progress(self, habit_tracker):
        """Monthly progress is entries over days times active habits."""
        read = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 10)
        await _mark_done(habit_tracker, read.id, [1, 2, 3])
        assert habit_tracker.monthly_progress() == pytest.approx(100 * 3 / 31)

    @pytest.mark.asyncio
    async def test_top_habits_keeps_order_on_ties(self, habit_tracker):
        """Ties in progress keep display order."""
        c = await habit_tracker.add_habit("C", HabitCategory.HEALTH, 10)
        a = await habit_tracker.add_habit("A", HabitCategory.HEALTH, 10)
        b = await habit_tracker.add_habit("B", HabitCategory.HEALTH, 20)
        await _mark_done(habit_tracker, c.id, range(1, 9))   # 80%
        await _mark_done(habit_tracker, a.id, range(1, 9))   # 80%
        await _mark_done(habit_tracker, b.id, range(1, 20))  # 95%

        top = habit_tracker.top_habits(2)
        assert [item.habit.name for item in top] == ["B", "C"]
        assert top[0].progress == pytest.approx(95.0)

    @pytest.mark.asyncio
    async def test_top_habits_skips_inactive(self, habit_tracker):
        """Inactive habits are not ranked."""
        await habit_tracker.add_habit("Paused", HabitCategory.HEALTH, 10, active=False)
        await habit_tracker.add_habit("Live", HabitCategory.HEALTH, 10)
        assert [item.habit.name for item in habit_tracker.top_habits()] == ["Live"]

    @pytest.mark.asyncio
    async def test_set_selected_month_reloads_entries(self, habit_tracker):
        """Selecting a month loads its entries."""
        habit = await habit_tracker.add_habit("Read", HabitCategory.LEARNING, 10)
        await habit_tracker.toggle_entry(habit.id, "2024-02-03")
        assert habit_tracker.entries == []

        await habit_tracker.set_selected_month(date(2024, 2, 17))
        assert habit_tracker.selected_month == date(2024, 2, 1)
        assert [e.date for e in habit_tracker.entries] == ["2024-02-03"]


class TestProjectionIsReadOnly:
    """Projected habits and entries cannot be edited behind the store's back."""

    @pytest.mark.asyncio
    async def test_assignment_through_projection_is_refused(self, habit_tracker, store):
        """Editing a loaded entry raises; only the engine's mutations change the store."""
        habit = await habit_tracker.add_habit("Water", HabitCategory.HEALTH, 8, type=HabitType.NUMERIC)
        await habit_tracker.set_numeric_value(habit.id, "2024-01-03", 5)

        with pytest.raises(ValidationError):
            habit_tracker.entries[0].value = 50
        with pytest.raises(ValidationError):
            habit_tracker.habits[0].active = False

        assert (await store.habit_entries.all())[0].value == 5
        assert (await store.habits.get(habit.id)).active is True
