"""
Household Ledger - Source Package

The ledger and balance engine behind a personal household budget app,
plus the entitlement state machine that gates premium features.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. Recurring expenses are rules, expanded lazily on read
3. Touching one month of a rule never changes another month
4. Every mutation is auditable
5. Storage and billing provider are swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
