"""
Input checks for goals and transaction ledgers.
"""

from .validators import ValidationResult, validate_goal, validate_transactions

__all__ = [
    "ValidationResult",
    "validate_goal",
    "validate_transactions",
]
