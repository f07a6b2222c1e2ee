"""Validation package."""

from stewardly.validation.validator import (
    NO_PLAN_MESSAGE,
    PlanValidator,
    first_error,
    validate_income_input,
)

__all__ = [
    "NO_PLAN_MESSAGE",
    "PlanValidator",
    "first_error",
    "validate_income_input",
]
