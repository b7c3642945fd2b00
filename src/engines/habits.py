"""
Habit Aggregation Engine

DESIGN DECISION: The engine is the ONLY mutation path for habit entries.
The store does not enforce one entry per (habit_id, date), so every
write first looks the key up in the store and then updates, deletes or
inserts accordingly.

The engine keeps a read projection of the store:
- all habits, in display order
- the entries of the selected month

The projection is reloaded from the store after every mutation. It is
never a second source of truth.

Unknown habit ids are not errors. A habit can disappear between the
moment a view renders and the moment the user clicks, so mutations on
a missing habit do nothing and progress for it is 0.
"""

from datetime import date
from typing import Optional, Union

from src.audit import AuditLogger
from src.models.audit import AuditEventType
from src.models.records import (
    Habit,
    HabitCategory,
    HabitEntry,
    HabitKind,
    HabitPeriod,
    HabitProgress,
    HabitType,
    WeekProgress,
)
from src.services.storage import RecordStoreInterface
from src.utils.dates import (
    days_in_month,
    first_of_month,
    group_by_iso_week,
    month_bounds,
    month_days,
    to_date_str,
)


class HabitTracker:
    """
    Computes habit progress and applies entry mutations.

    GUARANTEES:
    - At most one entry per (habit_id, date)
    - Zero-value numeric entries are never persisted
    - Deleting a habit deletes all of its entries
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        selected_month: Optional[date] = None,
        top_habits_limit: int = 5,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._selected_month = first_of_month(selected_month or date.today())
        self._top_habits_limit = top_habits_limit
        self._habits: list[Habit] = []
        self._entries: list[HabitEntry] = []

    @property
    def habits(self) -> list[Habit]:
        return list(self._habits)

    @property
    def active_habits(self) -> list[Habit]:
        return [habit for habit in self._habits if habit.active]

    @property
    def entries(self) -> list[HabitEntry]:
        return list(self._entries)

    @property
    def selected_month(self) -> date:
        return self._selected_month

    # =========================================================================
    # LOADING
    # =========================================================================

    async def load(self) -> None:
        await self.load_habits()
        await self.load_entries_for_month()

    async def load_habits(self) -> list[Habit]:
        habits = await self._store.habits.all()
        self._habits = sorted(habits, key=lambda h: h.order)
        return self.habits

    async def load_entries_for_month(self, month: Optional[date] = None) -> list[HabitEntry]:
        """Load the entries of `month` (default: the selected month)."""
        start, end = month_bounds(month or self._selected_month)
        self._entries = await self._store.habit_entries.range_by_field(
            "date", start, end, inclusive=True
        )
        return self.entries

    async def set_selected_month(self, month: date) -> None:
        self._selected_month = first_of_month(month)
        await self.load_entries_for_month()

    # =========================================================================
    # HABIT MUTATIONS
    # =========================================================================

    async def add_habit(
        self,
        name: str,
        category: HabitCategory,
        goal_value: float,
        type: HabitType = HabitType.BOOLEAN,
        unit: Optional[str] = None,
        period: HabitPeriod = HabitPeriod.MONTHLY,
        active: bool = True,
    ) -> Habit:
        """
        Create a habit at the end of the display order.

        The order is the current habit count, bumped past the highest
        existing order when earlier habits were deleted.
        """
        existing = await self._store.habits.all()
        order = len(existing)
        if existing:
            order = max(order, max(h.order for h in existing) + 1)

        habit = Habit(
            name=name,
            category=category,
            goal_value=goal_value,
            type=type,
            unit=unit,
            period=period,
            active=active,
            order=order,
        )
        await self._store.habits.add(habit)
        await self.load_habits()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.HABIT_CREATED,
                "habit",
                habit.id,
                f"Habit created: {habit.name}",
                {"kind": habit.kind.value, "goal_value": habit.goal_value},
            )
        return habit

    async def update_habit(self, habit_id: str, **fields) -> Optional[Habit]:
        """Merge `fields` into a habit. Returns None if the habit is gone."""
        fields.pop("id", None)
        updated = await self._store.habits.update(habit_id, fields)
        if updated is None:
            return None
        await self.load_habits()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.HABIT_UPDATED,
                "habit",
                habit_id,
                f"Habit updated: {updated.name}",
                {"fields": sorted(fields)},
            )
        return updated

    async def delete_habit(self, habit_id: str) -> bool:
        """
        Delete a habit and every entry that references it.

        Returns False (and does nothing) if the habit does not exist.
        """
        habit = await self._store.habits.get(habit_id)
        if habit is None:
            return False

        await self._store.habits.delete(habit_id)
        removed = await self._store.habit_entries.delete_where("habit_id", habit_id)
        await self.load()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.HABIT_DELETED,
                "habit",
                habit_id,
                f"Habit deleted: {habit.name}",
                {"entries_removed": removed},
            )
        return True

    # =========================================================================
    # ENTRY MUTATIONS
    # =========================================================================

    async def find_entry(
        self,
        habit_id: str,
        day: Union[date, str],
    ) -> Optional[HabitEntry]:
        """The entry for (habit_id, day), looked up in the store."""
        key = to_date_str(day)
        for entry in await self._store.habit_entries.range_by_field("date", key, key):
            if entry.habit_id == habit_id:
                return entry
        return None

    async def toggle_entry(
        self,
        habit_id: str,
        day: Union[date, str],
    ) -> Optional[HabitEntry]:
        """
        Flip a habit's done state for one day.

        Deletes the entry if present, otherwise creates one with value 1.

        Returns:
            The created entry, or None if an entry was removed or the
            habit does not exist
        """
        if await self._store.habits.get(habit_id) is None:
            return None

        key = to_date_str(day)
        existing = await self.find_entry(habit_id, key)
        if existing is not None:
            await self._store.habit_entries.delete(existing.id)
            await self.load_entries_for_month()
            await self._log_entry(AuditEventType.ENTRY_DELETED, existing)
            return None

        entry = HabitEntry(habit_id=habit_id, date=key, value=1)
        await self._store.habit_entries.add(entry)
        await self.load_entries_for_month()
        await self._log_entry(AuditEventType.ENTRY_CREATED, entry)
        return entry

    async def set_numeric_value(
        self,
        habit_id: str,
        day: Union[date, str],
        value: float,
    ) -> Optional[HabitEntry]:
        """
        Set the logged amount for one day.

        A value <= 0 deletes the entry; a positive value updates it in
        place or inserts it.

        Returns:
            The stored entry, or None if there is no entry afterwards
        """
        if await self._store.habits.get(habit_id) is None:
            return None

        key = to_date_str(day)
        existing = await self.find_entry(habit_id, key)

        if value <= 0:
            if existing is None:
                return None
            await self._store.habit_entries.delete(existing.id)
            await self.load_entries_for_month()
            await self._log_entry(AuditEventType.ENTRY_DELETED, existing)
            return None

        if existing is not None:
            entry = await self._store.habit_entries.update(existing.id, {"value": value})
            await self.load_entries_for_month()
            await self._log_entry(AuditEventType.ENTRY_UPDATED, entry)
            return entry

        entry = HabitEntry(habit_id=habit_id, date=key, value=value)
        await self._store.habit_entries.add(entry)
        await self.load_entries_for_month()
        await self._log_entry(AuditEventType.ENTRY_CREATED, entry)
        return entry

    async def _log_entry(self, event_type: AuditEventType, entry: HabitEntry) -> None:
        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                event_type,
                "habit_entry",
                entry.id,
                f"Entry {event_type.value.split('_')[1]} for {entry.date}",
                {"habit_id": entry.habit_id, "date": entry.date, "value": entry.value},
            )

    # =========================================================================
    # AGGREGATION (over the loaded month)
    # =========================================================================

    def progress_for(
        self,
        habit: Habit,
        entries: Optional[list[HabitEntry]] = None,
        capped: bool = True,
    ) -> float:
        """
        Progress of one habit for the selected month, in percent.

        Monthly kinds measure against goal_value for the whole month and
        are always capped at 100. Daily kinds measure against goal_value
        per day times the days in the month; they are only capped when
        `capped` is set (table views show overachievement).
        """
        if entries is None:
            entries = self._entries
        own = [entry for entry in entries if entry.habit_id == habit.id]
        if habit.goal_value <= 0:
            return 0.0

        kind = habit.kind
        if kind == HabitKind.BOOLEAN_MONTHLY:
            return min(100.0, 100 * len(own) / habit.goal_value)
        elif kind == HabitKind.NUMERIC_MONTHLY:
            total = sum(entry.value for entry in own)
            return min(100.0, 100 * total / habit.goal_value)
        elif kind in (HabitKind.BOOLEAN_DAILY, HabitKind.NUMERIC_DAILY):
            total = sum(entry.value for entry in own)
            possible = habit.goal_value * days_in_month(self._selected_month)
            progress = 100 * total / possible
            return min(100.0, progress) if capped else progress
        else:
            raise ValueError(f"Unhandled habit kind: {kind}")

    def habit_progress(self, habit_id: str, capped: bool = True) -> float:
        """Progress of a loaded habit by id; 0 if it is unknown."""
        for habit in self._habits:
            if habit.id == habit_id:
                return self.progress_for(habit, capped=capped)
        return 0.0

    def daily_completion(self, day: Union[date, str]) -> float:
        """Share of active habits with an entry on `day`, in percent."""
        active = self.active_habits
        if not active:
            return 0.0
        key = to_date_str(day)
        done = sum(1 for entry in self._entries if entry.date == key)
        return 100 * done / len(active)

    def weekly_progress(self) -> list[WeekProgress]:
        """
        Completion per Monday-start week of the selected month.

        Weeks are numbered from 1 within the month, not by ISO week
        number. Partial weeks at either end only count their own days.
        """
        active = self.active_habits
        if not active:
            return []

        per_day: dict[str, int] = {}
        for entry in self._entries:
            per_day[entry.date] = per_day.get(entry.date, 0) + 1

        result = []
        weeks = group_by_iso_week(month_days(self._selected_month))
        for number, week in enumerate(weeks, start=1):
            possible = len(active) * len(week)
            completed = sum(per_day.get(day.isoformat(), 0) for day in week)
            result.append(WeekProgress(
                week=number,
                progress=100 * completed / possible if possible else 0.0,
            ))
        return result

    def monthly_progress(self) -> float:
        """All entries of the month against active habits x days."""
        active = self.active_habits
        if not active:
            return 0.0
        possible = days_in_month(self._selected_month) * len(active)
        return 100 * len(self._entries) / possible

    def top_habits(self, limit: Optional[int] = None) -> list[HabitProgress]:
        """
        Active habits ranked by capped progress, best first.

        Ties keep display order (the sort is stable).
        """
        limit = self._top_habits_limit if limit is None else limit
        ranked = sorted(
            (
                HabitProgress(habit=habit, progress=self.progress_for(habit))
                for habit in self.active_habits
            ),
            key=lambda item: item.progress,
            reverse=True,
        )
        return ranked[:limit]
