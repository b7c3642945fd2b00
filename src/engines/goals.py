"""
Goal Tracking Engine

Goal progress is entered by hand. A progress update is the only
automatic status transition:
- current >= target  ->  completed
- current <  target  ->  active (also after having been completed)

FAILED exists in the schema but nothing derives it. It can only be set
through set_status.
"""

from datetime import date
from typing import Optional, Union

from src.audit import AuditLogger
from src.models.audit import AuditEventType
from src.models.records import (
    Goal,
    GoalPeriod,
    GoalStatus,
    GoalType,
    TrackingType,
)
from src.services.storage import RecordStoreInterface


class GoalTracker:
    """Goals and their completion status."""

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._goals: list[Goal] = []

    @property
    def goals(self) -> list[Goal]:
        return list(self._goals)

    async def load_goals(self) -> list[Goal]:
        self._goals = await self._store.goals.all()
        return self.goals

    async def add_goal(
        self,
        name: str,
        type: GoalType,
        target: float,
        start_date: Union[date, str],
        period: GoalPeriod = GoalPeriod.MONTHLY,
        tracking_type: TrackingType = TrackingType.CUMULATIVE,
        end_date: Optional[Union[date, str]] = None,
        reference_id: Optional[str] = None,
        unit: Optional[str] = None,
    ) -> Goal:
        """Create a goal with no progress yet."""
        goal = Goal(
            name=name,
            type=type,
            target=target,
            current=0,
            status=GoalStatus.ACTIVE,
            start_date=start_date,
            end_date=end_date,
            period=period,
            tracking_type=tracking_type,
            reference_id=reference_id,
            unit=unit,
        )
        await self._store.goals.add(goal)
        await self.load_goals()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.GOAL_CREATED,
                "goal",
                goal.id,
                f"Goal created: {goal.name}",
                {"target": goal.target, "period": goal.period.value},
            )
        return goal

    async def update_goal(self, goal_id: str, **fields) -> Optional[Goal]:
        """Manual edit. Status is stored as given, not recomputed."""
        fields.pop("id", None)
        updated = await self._store.goals.update(goal_id, fields)
        if updated is None:
            return None
        await self.load_goals()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.GOAL_UPDATED,
                "goal",
                goal_id,
                f"Goal updated: {updated.name}",
                {"fields": sorted(fields)},
            )
        return updated

    async def delete_goal(self, goal_id: str) -> bool:
        deleted = await self._store.goals.delete(goal_id)
        if not deleted:
            return False
        await self.load_goals()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.GOAL_DELETED,
                "goal",
                goal_id,
                "Goal deleted",
            )
        return True

    async def update_progress(self, goal_id: str, current: float) -> Optional[Goal]:
        """
        Set a goal's current value and recompute its status.

        Returns None if the goal does not exist.
        """
        goal = await self._store.goals.get(goal_id)
        if goal is None:
            return None

        status = GoalStatus.COMPLETED if current >= goal.target else GoalStatus.ACTIVE
        updated = await self._store.goals.update(goal_id, {
            "current": current,
            "status": status,
        })
        await self.load_goals()

        if self._audit_logger:
            await self._audit_logger.log_goal_progress(
                goal_id=goal_id,
                current=current,
                target=goal.target,
                status=status.value,
            )
        return updated

    async def set_status(self, goal_id: str, status: GoalStatus) -> Optional[Goal]:
        """Explicit status override, e.g. marking a goal as failed."""
        updated = await self._store.goals.update(goal_id, {"status": status})
        if updated is None:
            return None
        await self.load_goals()

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.GOAL_STATUS_CHANGED,
                "goal",
                goal_id,
                f"Goal marked {status.value}",
                {"status": status.value},
            )
        return updated

    @staticmethod
    def progress_percent(goal: Goal) -> float:
        """current / target in percent, capped at 100."""
        if goal.target <= 0:
            return 100.0 if goal.current >= goal.target else 0.0
        return min(100.0, 100 * goal.current / goal.target)
