"""
Plan and Income Validation

DESIGN DECISION: Validation reports, it never fixes.

PLAN BALANCE:
- A plan is balanced when its targets sum to exactly 100% after rounding
  to 2 decimals
- An unbalanced plan is still usable; the user just sees a warning

INCOME INPUT (two stages, as with any user-entered record):
- Stage 1, schema: name, amount, currency and date must be present
- Stage 2, semantic: projection window and monthly pay rule consistency
- Stage 2 only runs when stage 1 found no errors
"""

from decimal import Decimal
from typing import Optional

from stewardly.models.income import IncomeFrequency, IncomeInput, MonthlyPayRule
from stewardly.models.plan import DistributionPlan, sum_targets
from stewardly.models.results import PlanValidation, ValidationIssue


NO_PLAN_MESSAGE = "No distribution plan found. Please set up a plan."


class PlanValidator:
    """Checks that a plan's targets add up to 100%."""

    def validate(self, plan: Optional[DistributionPlan]) -> PlanValidation:
        if plan is None:
            return PlanValidation(
                total_pct=0.0,
                is_balanced=False,
                message=NO_PLAN_MESSAGE,
                issues=[ValidationIssue(
                    field="plan",
                    issue_type="missing",
                    message=NO_PLAN_MESSAGE,
                    severity="error",
                )],
            )

        total = sum_targets(plan.targets)
        is_balanced = total == 100.0
        if is_balanced:
            return PlanValidation(total_pct=total, is_balanced=True)

        message = (
            f"Your distribution totals {total:g}%. "
            f"Stewardly works best when totals equal 100%."
        )
        return PlanValidation(
            total_pct=total,
            is_balanced=False,
            message=message,
            issues=[ValidationIssue(
                field="targets",
                issue_type="unbalanced",
                message=message,
                severity="warning",
            )],
        )


def _validate_income_schema(data: IncomeInput) -> list[ValidationIssue]:
    issues = []

    if not data.name:
        issues.append(ValidationIssue(
            field="name",
            issue_type="missing",
            message="Income name is required",
            severity="error",
        ))

    if data.amount is None or not data.amount.is_finite() or data.amount <= Decimal("0"):
        issues.append(ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message="Income amount must be greater than 0",
            severity="error",
        ))

    if not data.currency:
        issues.append(ValidationIssue(
            field="currency",
            issue_type="missing",
            message="Income currency is required",
            severity="error",
        ))

    if data.date is None:
        issues.append(ValidationIssue(
            field="date",
            issue_type="missing",
            message="Income date is required",
            severity="error",
        ))

    return issues


def _validate_income_semantic(data: IncomeInput) -> list[ValidationIssue]:
    issues = []

    if data.start_date and data.end_date and data.end_date < data.start_date:
        issues.append(ValidationIssue(
            field="end_date",
            issue_type="inconsistent",
            message="End date cannot be before start date",
            severity="error",
        ))

    if data.frequency == IncomeFrequency.MONTHLY:
        if (
            data.monthly_pay_rule == MonthlyPayRule.DAY_OF_MONTH
            and data.monthly_pay_day is None
        ):
            issues.append(ValidationIssue(
                field="monthly_pay_day",
                issue_type="missing",
                message="No pay day given; the record's own day of month will be used",
                severity="info",
            ))
    elif data.monthly_pay_rule is not None:
        issues.append(ValidationIssue(
            field="monthly_pay_rule",
            issue_type="ignored",
            message="Pay rule only applies to monthly income",
            severity="warning",
        ))

    return issues


def validate_income_input(data: IncomeInput) -> list[ValidationIssue]:
    """
    Run both validation stages over user-entered income.

    Returns:
        All issues found; an empty list means the input can be stored
    """
    issues = _validate_income_schema(data)
    if any(issue.severity == "error" for issue in issues):
        return issues
    return issues + _validate_income_semantic(data)


def first_error(issues: list[ValidationIssue]) -> Optional[ValidationIssue]:
    return next((issue for issue in issues if issue.severity == "error"), None)
