"""Input validation package."""

from household_ledger.validation.validator import (
    AmountInput,
    InvalidAmountError,
    InvalidTitleError,
    ValidationError,
    parse_amount,
    validate_title,
)

__all__ = [
    "AmountInput",
    "InvalidAmountError",
    "InvalidTitleError",
    "ValidationError",
    "parse_amount",
    "validate_title",
]
