"""
Input Validation

DESIGN DECISION: Every user-supplied amount and title goes through this
module before it reaches the ledger. Amounts usually come from a text
field, so they arrive as strings as often as numbers.

IMPORTANT: Validation NEVER silently fixes issues beyond whitespace
and rounding to the ledger's precision. Anything else is rejected
with an error the UI can show.
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Optional, Union

from household_ledger.config import get_settings


AmountInput = Union[str, int, float, Decimal]


class ValidationError(Exception):
    """Base exception for rejected user input."""
    pass


class InvalidAmountError(ValidationError):
    """Amount is non-numeric, non-finite, zero, or out of policy."""

    def __init__(self, raw_value: object, message: str):
        self.raw_value = raw_value
        super().__init__(message)


class InvalidTitleError(ValidationError):
    """Title is empty or too long."""
    pass


def parse_amount(
    value: AmountInput,
    allow_zero: bool = False,
    max_abs: Optional[Decimal] = None,
    places: Optional[int] = None,
) -> Decimal:
    """
    Parse a user-supplied amount into a finite, rounded Decimal.

    Args:
        value: Raw amount (text field content or number)
        allow_zero: Accept zero (balance targets may be zero, entries may not)
        max_abs: Reject values whose magnitude exceeds this
        places: Decimal places to round to (defaults to settings)

    Raises:
        InvalidAmountError: If the value can't be used as an amount
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value, "Amount must be a number")

    if isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            raise InvalidAmountError(value, "Amount is required")
    else:
        text = str(value)

    try:
        amount = Decimal(text)
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(value, f"Not a valid amount: {value!r}")

    if not amount.is_finite():
        raise InvalidAmountError(value, "Amount must be a finite number")

    if places is None:
        places = get_settings().ledger.amount_places
    try:
        amount = amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_EVEN)
    except InvalidOperation:
        raise InvalidAmountError(value, "Amount is too large")

    if amount == 0 and not allow_zero:
        raise InvalidAmountError(value, "Amount cannot be zero")

    if max_abs is not None and abs(amount) > max_abs:
        raise InvalidAmountError(value, f"Amount exceeds the allowed maximum of {max_abs}")

    return amount


def validate_title(title: str) -> str:
    """
    Strip and check a display title.

    Raises:
        InvalidTitleError: If the title is empty or longer than 200 characters
    """
    cleaned = (title or "").strip()
    if not cleaned:
        raise InvalidTitleError("A title is required")
    if len(cleaned) > 200:
        raise InvalidTitleError("Title cannot be longer than 200 characters")
    return cleaned
