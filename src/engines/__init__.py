"""Aggregation and mutation engines."""

from src.engines.backup import BACKUP_KEYS, BackupService
from src.engines.finance import FinanceLedger
from src.engines.goals import GoalTracker
from src.engines.habits import HabitTracker
from src.engines.portfolio import Portfolio
from src.engines.settings import SettingsService

__all__ = [
    "BACKUP_KEYS",
    "BackupService",
    "FinanceLedger",
    "GoalTracker",
    "HabitTracker",
    "Portfolio",
    "SettingsService",
]
