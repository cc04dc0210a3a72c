"""
Validation Models

The engine tolerates bad data; these models carry the report of what
was tolerated so the caller can show it.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Where the issue is (e.g. 'expenses[2].split_between')"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'empty_split', 'unknown_member', 'payment_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
    )
    expense_id: Optional[str] = None
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating an event's members and expenses."""

    event_id: Optional[str] = None
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    is_valid: bool = Field(
        ...,
        description="No error-level issues were found"
    )
    zero_sum: bool = Field(
        ...,
        description="Computed balances sum to zero within tolerance"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
