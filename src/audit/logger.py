"""
Audit Logger

DESIGN DECISION: Every mutation of the record store is logged.
This provides:
1. Complete traceability of derived figures
2. Debugging capability
3. A record of destructive actions (deletes, backup imports)

The audit logger:
- Is async to match the store calls it follows
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

from typing import Optional

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("src.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_changed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log a create/update/delete of a single record."""
        event = AuditEventBuilder.record_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
        )
        await self.log(event)

    async def log_stock_averaged(
        self,
        stock_id: str,
        symbol: str,
        added_quantity: float,
        buy_price: float,
        new_quantity: float,
        new_avg_price: float,
    ) -> None:
        """Log an average-in."""
        event = AuditEventBuilder.stock_averaged(
            stock_id=stock_id,
            symbol=symbol,
            added_quantity=added_quantity,
            buy_price=buy_price,
            new_quantity=new_quantity,
            new_avg_price=new_avg_price,
        )
        await self.log(event)

    async def log_stock_sold(
        self,
        stock_id: str,
        symbol: str,
        quantity: float,
        sell_price: float,
        realized_pl: float,
    ) -> None:
        """Log a sell."""
        event = AuditEventBuilder.stock_sold(
            stock_id=stock_id,
            symbol=symbol,
            quantity=quantity,
            sell_price=sell_price,
            realized_pl=realized_pl,
        )
        await self.log(event)

    async def log_trade_rejected(
        self,
        stock_id: str,
        operation: str,
        issues: list[dict],
    ) -> None:
        """Log a refused average-in or sell."""
        event = AuditEventBuilder.trade_rejected(
            stock_id=stock_id,
            operation=operation,
            issues=issues,
        )
        await self.log(event)

    async def log_goal_progress(
        self,
        goal_id: str,
        current: float,
        target: float,
        status: str,
    ) -> None:
        """Log a goal progress update."""
        event = AuditEventBuilder.goal_progress_updated(
            goal_id=goal_id,
            current=current,
            target=target,
            status=status,
        )
        await self.log(event)

    async def log_backup_exported(self, counts: dict[str, int]) -> None:
        await self.log(AuditEventBuilder.backup_exported(counts))

    async def log_backup_imported(self, counts: dict[str, int]) -> None:
        await self.log(AuditEventBuilder.backup_imported(counts))

    async def log_backup_import_failed(self, error_message: str) -> None:
        await self.log(AuditEventBuilder.backup_import_failed(error_message))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        )
        await self.log(event)
