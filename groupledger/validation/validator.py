"""
Ledger Validation

The engine is deliberately forgiving: unknown member ids, empty split sets
and multi-payer totals that don't add up are all tolerated without an
exception. That keeps a settle-up screen working on imperfect data, but it
also means a mistake can quietly drop money out of the calculation.

This module makes those cases visible.

STAGE 1 - STRUCTURE:
- Duplicate expense ids
- Expenses referencing members that are not in the event
- Empty split sets (the expense is left out of every `owed` total)

STAGE 2 - CONSISTENCY:
- Multi-payer payments that don't add up to the expense amount
- Computed balances that don't sum to zero

IMPORTANT: Validation NEVER fixes anything.
It reports issues; the engine output is the same either way.
"""

from decimal import Decimal
from typing import Optional, Sequence

from groupledger.config import get_settings
from groupledger.engine import compute_balances, net_balances, total_balance
from groupledger.models.event import GroupEvent, GroupExpense, Member, MultiPayer
from groupledger.models.validation import ValidationIssue, ValidationResult


class LedgerValidator:
    """Checks an event's members and expenses for data the engine would tolerate."""

    def __init__(self, zero_sum_tolerance: Optional[Decimal] = None):
        """
        Args:
            zero_sum_tolerance: Allowed drift of the balance sum.
                                Defaults to the engine settings.
        """
        if zero_sum_tolerance is None:
            zero_sum_tolerance = get_settings().engine.zero_sum_tolerance
        self._zero_sum_tolerance = Decimal(str(zero_sum_tolerance))

    def _validate_structure(
        self,
        members: Sequence[Member],
        expenses: Sequence[GroupExpense],
    ) -> list[ValidationIssue]:
        issues = []
        known = {m.id for m in members}
        seen_expenses = set()

        for idx, expense in enumerate(expenses):
            where = f"expenses[{idx}]"

            if expense.id in seen_expenses:
                issues.append(ValidationIssue(
                    field=f"{where}.id",
                    issue_type="duplicate_expense_id",
                    message=f"Expense id {expense.id} is used more than once",
                    severity="error",
                    expense_id=expense.id,
                    suggested_fix="Give every expense its own id",
                ))
            seen_expenses.add(expense.id)

            if not expense.split_between:
                issues.append(ValidationIssue(
                    field=f"{where}.split_between",
                    issue_type="empty_split",
                    message=(
                        f"'{expense.description or expense.category}' is not split "
                        "between anyone, so nobody owes a share of it"
                    ),
                    severity="warning",
                    expense_id=expense.id,
                    suggested_fix="Select at least one member to share this expense",
                ))

            unknown_split = [m for m in expense.split_between if m not in known]
            if unknown_split:
                issues.append(ValidationIssue(
                    field=f"{where}.split_between",
                    issue_type="unknown_member",
                    message=(
                        f"Split includes ids that are not members: {', '.join(unknown_split)}"
                    ),
                    severity="warning",
                    expense_id=expense.id,
                    suggested_fix="Their shares are left out of the balances",
                ))

            unknown_payers = [m for m in expense.payer.member_ids if m not in known]
            if unknown_payers:
                issues.append(ValidationIssue(
                    field=f"{where}.payer",
                    issue_type="unknown_member",
                    message=(
                        f"Paid by ids that are not members: {', '.join(unknown_payers)}"
                    ),
                    severity="warning",
                    expense_id=expense.id,
                    suggested_fix="Their payments are left out of the balances",
                ))

        return issues

    def _validate_consistency(
        self,
        members: Sequence[Member],
        expenses: Sequence[GroupExpense],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        for idx, expense in enumerate(expenses):
            if not isinstance(expense.payer, MultiPayer):
                continue
            recorded = expense.payer.total
            if recorded != expense.amount:
                issues.append(ValidationIssue(
                    field=f"expenses[{idx}].payer.payments",
                    issue_type="payment_mismatch",
                    message=(
                        f"Payments add up to {recorded} but the expense is {expense.amount}"
                    ),
                    severity="warning",
                    expense_id=expense.id,
                    suggested_fix="Adjust the payments or the expense amount",
                ))

        drift = total_balance(net_balances(compute_balances(members, expenses)))
        zero_sum = abs(drift) <= self._zero_sum_tolerance
        if not zero_sum:
            issues.append(ValidationIssue(
                field="balances",
                issue_type="zero_sum_violation",
                message=f"Balances do not add up to zero (off by {drift})",
                severity="warning",
                suggested_fix="Settlements will not clear every balance",
            ))

        return zero_sum, issues

    def validate(
        self,
        members: Sequence[Member],
        expenses: Sequence[GroupExpense],
        event_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Run both stages and collect every issue.

        Args:
            members: Event members
            expenses: Event expenses
            event_id: Recorded on the result, if given

        Returns:
            ValidationResult with all issues found
        """
        all_issues = self._validate_structure(members, expenses)
        zero_sum, consistency_issues = self._validate_consistency(members, expenses)
        all_issues.extend(consistency_issues)

        warnings = [i.message for i in all_issues if i.severity == "warning"]

        return ValidationResult(
            event_id=event_id,
            is_valid=not any(i.severity == "error" for i in all_issues),
            zero_sum=zero_sum,
            issues=all_issues,
            warnings=warnings,
        )

    def validate_event(self, event: GroupEvent) -> ValidationResult:
        return self.validate(event.members, event.expenses, event_id=event.id)

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All expenses look consistent."

        lines = []

        if result.has_errors:
            lines.append("❌ Some expenses need fixing:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please check the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if not result.zero_sum:
            lines.append("")
            lines.append("Settlements may not bring everyone to zero until this is fixed.")

        return "\n".join(lines)
