"""
Validation Result Models

A rejected mutation carries one of these so the caller can show the
user exactly which precondition failed.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.models.records import utc_now


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'non_positive', 'exceeds_holdings', 'missing')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of checking an operation's preconditions.

    Only error-level issues block the operation.
    """

    subject: str = Field(
        ...,
        description="What was validated (e.g., 'sell', 'backup')"
    )
    validated_at: datetime = Field(
        default_factory=utc_now
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        """All error messages joined into one line."""
        return "; ".join(
            issue.message for issue in self.issues if issue.severity == "error"
        )
