"""Validation package."""

from src.validation.validator import (
    BackupFormatError,
    TradeRejectedError,
    TradeValidator,
    validate_snapshot_shape,
)

__all__ = [
    "BackupFormatError",
    "TradeRejectedError",
    "TradeValidator",
    "validate_snapshot_shape",
]
