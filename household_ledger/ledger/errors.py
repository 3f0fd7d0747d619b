"""Ledger engine exceptions."""


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class PremiumRequiredError(LedgerError):
    """The action is reserved to premium accounts."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Premium is required to {action}")


class TemplateNotFoundError(LedgerError):
    """Recurring template doesn't exist."""
    pass


class TemplateInactiveError(LedgerError):
    """Recurring template has been deactivated."""
    pass


class OccurrenceOutOfRangeError(LedgerError):
    """Requested month is before the template's first occurrence."""
    pass
