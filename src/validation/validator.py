"""
Precondition Validation

DESIGN DECISION: Mutations that can be refused are checked up front.
A refused operation writes nothing - there is no partial application
and no clamping of the requested values.

Checks performed here:
- Average-in: quantity must be positive, price non-negative
- Sell: quantity must be positive and not exceed holdings
- Backup import: top-level `version` and `data` must be present

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can surface them to the user.
"""

from typing import Any, Optional

from src.models.records import Stock
from src.models.validation import ValidationIssue, ValidationResult


class TradeRejectedError(Exception):
    """An average-in or sell failed its preconditions."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(f"{result.subject.capitalize()} rejected: {result.summary()}")


class BackupFormatError(Exception):
    """A backup blob is not a valid snapshot."""
    pass


def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=fix,
    )


class TradeValidator:
    """Checks stock mutations before the portfolio applies them."""

    def validate_average_in(
        self,
        stock: Stock,
        quantity: float,
        buy_price: float,
    ) -> ValidationResult:
        issues = []
        if quantity <= 0:
            issues.append(_error(
                "quantity",
                "non_positive",
                f"Quantity to add must be positive (got {quantity:g})",
            ))
        if buy_price < 0:
            issues.append(_error(
                "buy_price",
                "negative",
                f"Buy price cannot be negative (got {buy_price:g})",
            ))
        return ValidationResult(subject="average-in", issues=issues)

    def validate_sell(
        self,
        stock: Stock,
        quantity: float,
        sell_price: float,
    ) -> ValidationResult:
        issues = []
        if quantity <= 0:
            issues.append(_error(
                "quantity",
                "non_positive",
                f"Quantity to sell must be positive (got {quantity:g})",
            ))
        elif quantity > stock.quantity:
            issues.append(_error(
                "quantity",
                "exceeds_holdings",
                f"Cannot sell {quantity:g} {stock.symbol}: only {stock.quantity:g} held",
                fix=f"Sell at most {stock.quantity:g} shares",
            ))
        if sell_price < 0:
            issues.append(_error(
                "sell_price",
                "negative",
                f"Sell price cannot be negative (got {sell_price:g})",
            ))
        return ValidationResult(subject="sell", issues=issues)


def validate_snapshot_shape(parsed: Any) -> ValidationResult:
    """
    Top-level shape check for a parsed backup.

    Only `version` and `data` are required. A falsy version (0, "")
    counts as missing.
    """
    issues = []
    if not isinstance(parsed, dict):
        issues.append(_error("root", "invalid_type", "Backup must be a JSON object"))
        return ValidationResult(subject="backup", issues=issues)
    if not parsed.get("version"):
        issues.append(_error("version", "missing", "Backup has no version"))
    data = parsed.get("data")
    if data is None:
        issues.append(_error("data", "missing", "Backup has no data"))
    elif not isinstance(data, dict):
        issues.append(_error("data", "invalid_type", "Backup data must be an object"))
    return ValidationResult(subject="backup", issues=issues)
