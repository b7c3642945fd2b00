"""
Audit Models for Personal Tracker

Every mutation of the record store is logged for audit purposes.
This provides:
1. Traceability of what changed derived figures
2. Debugging information when things go wrong
3. A history of destructive actions such as backup imports

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.models.records import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each engine mutation has its own event type.
    """
    # Habits
    HABIT_CREATED = "habit_created"
    HABIT_UPDATED = "habit_updated"
    HABIT_DELETED = "habit_deleted"
    ENTRY_CREATED = "entry_created"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_DELETED = "entry_deleted"

    # Finance
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Portfolio
    STOCK_BOUGHT = "stock_bought"
    STOCK_AVERAGED = "stock_averaged"
    STOCK_SOLD = "stock_sold"
    STOCK_PRICE_UPDATED = "stock_price_updated"
    STOCK_UPDATED = "stock_updated"
    STOCK_DELETED = "stock_deleted"
    TRADE_REJECTED = "trade_rejected"

    # Goals
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"
    GOAL_PROGRESS_UPDATED = "goal_progress_updated"
    GOAL_STATUS_CHANGED = "goal_status_changed"

    # Settings and backup
    SETTINGS_CREATED = "settings_created"
    SETTINGS_UPDATED = "settings_updated"
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"
    BACKUP_IMPORT_FAILED = "backup_import_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every store mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Collection of the record (e.g., 'habit', 'stock')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_changed(AuditEventType.HABIT_CREATED, "habit", habit.id, ...)
        event = AuditEventBuilder.stock_sold(
            stock_id=stock.id, symbol=stock.symbol, quantity=4, sell_price=150, realized_pl=200,
        )
    """

    @staticmethod
    def record_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def stock_averaged(
        stock_id: str,
        symbol: str,
        added_quantity: float,
        buy_price: float,
        new_quantity: float,
        new_avg_price: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STOCK_AVERAGED,
            entity_type="stock",
            entity_id=stock_id,
            description=f"Averaged into {symbol}: +{added_quantity:g} @ {buy_price:g}",
            details={
                "added_quantity": added_quantity,
                "buy_price": buy_price,
                "new_quantity": new_quantity,
                "new_avg_buy_price": new_avg_price,
            },
        )

    @staticmethod
    def stock_sold(
        stock_id: str,
        symbol: str,
        quantity: float,
        sell_price: float,
        realized_pl: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STOCK_SOLD,
            entity_type="stock",
            entity_id=stock_id,
            description=f"Sold {quantity:g} {symbol} @ {sell_price:g}",
            details={
                "quantity": quantity,
                "sell_price": sell_price,
                "realized_pl": realized_pl,
            },
        )

    @staticmethod
    def trade_rejected(
        stock_id: str,
        operation: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRADE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="stock",
            entity_id=stock_id,
            description=f"{operation.capitalize()} rejected with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
        )

    @staticmethod
    def goal_progress_updated(
        goal_id: str,
        current: float,
        target: float,
        status: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_PROGRESS_UPDATED,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Goal progress {current:g}/{target:g} ({status})",
            details={
                "current": current,
                "target": target,
                "status": status,
            },
        )

    @staticmethod
    def backup_exported(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            entity_type="backup",
            description=f"Backup exported with {sum(counts.values())} records",
            details={"counts": counts},
        )

    @staticmethod
    def backup_imported(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            description=f"Store replaced from backup with {sum(counts.values())} records",
            details={"counts": counts},
        )

    @staticmethod
    def backup_import_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="backup",
            description="Backup import rejected",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
