"""
Data Models Package

This package contains all Pydantic models used in the Personal Tracker core.
Every record in the store and every derived result conforms to these schemas.
"""

from src.models.records import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    SETTINGS_ID,
    AppSettings,
    CategoryTotal,
    FinanceTransaction,
    Goal,
    GoalPeriod,
    GoalStatus,
    GoalType,
    Habit,
    HabitCategory,
    HabitEntry,
    HabitKind,
    HabitPeriod,
    HabitProgress,
    HabitType,
    Record,
    SaleResult,
    Stock,
    TrackingType,
    TransactionType,
    WeekProgress,
    categories_for,
    generate_id,
    utc_now,
)
from src.models.validation import ValidationIssue, ValidationResult
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Records
    "AppSettings",
    "FinanceTransaction",
    "Goal",
    "Habit",
    "HabitEntry",
    "Record",
    "Stock",
    # Enums and constants
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "SETTINGS_ID",
    "GoalPeriod",
    "GoalStatus",
    "GoalType",
    "HabitCategory",
    "HabitKind",
    "HabitPeriod",
    "HabitType",
    "TrackingType",
    "TransactionType",
    # Derived results
    "CategoryTotal",
    "HabitProgress",
    "SaleResult",
    "WeekProgress",
    # Helpers
    "categories_for",
    "generate_id",
    "utc_now",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
