"""
Input validation for goals and transaction ledgers before they enter the engine.

Catches problems early:
- Missing or unparseable start dates
- Horizons that end before they start
- Return assumptions that cannot be compounded
- Ledger rows with unknown actions or currencies
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional

from core.schema import Goal, Transaction
from core.utils import parse_date, total_months

KNOWN_ACTIONS = ("Buy", "Sell")


@dataclass
class ValidationResult:
    """Collects all validation warnings/errors for one input."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        lines = []
        if self.errors:
            lines.append(f"ERRORS ({len(self.errors)}):")
            for e in self.errors:
                lines.append(f"  x {e}")
        if self.warnings:
            lines.append(f"WARNINGS ({len(self.warnings)}):")
            for w in self.warnings:
                lines.append(f"  ! {w}")
        if not lines:
            lines.append("All checks passed.")
        return "\n".join(lines)


def validate_goal(goal: Goal) -> ValidationResult:
    """
    Check a goal before projecting it.
    Errors make every generator return an empty series; warnings are informational.
    """
    result = ValidationResult()

    # --- Start date / horizon ---
    if goal.start_date is None or (isinstance(goal.start_date, str) and not goal.start_date.strip()):
        result.errors.append("Goal has no start date.")
    else:
        start = parse_date(goal.start_date)
        if start is None:
            result.errors.append(f"Unparseable start date: {goal.start_date!r}.")
        elif not goal.retirement_year:
            result.errors.append("Goal has no retirement year.")
        elif total_months(start, goal.retirement_year) <= 0:
            result.errors.append(
                f"Retirement year {goal.retirement_year} leaves no months after start date {start.isoformat()}."
            )

    # --- Returns ---
    if goal.annual_return <= -1.0:
        result.errors.append(
            f"Annual return {goal.annual_return} is at or below -100% and cannot be compounded."
        )
    elif goal.annual_return > 1.0:
        result.warnings.append(
            f"Annual return {goal.annual_return} > 1.0 - check if it is in percent vs decimal form."
        )

    # --- Deposits ---
    if goal.monthly_deposits < 0:
        result.warnings.append("Monthly deposits are negative; cumulative contributions will fall.")
    if goal.deposit_increase_percentage < 0:
        result.warnings.append("Negative deposit increase is ignored; deposits stay flat.")
    elif goal.deposit_increase_percentage > 1.0:
        result.warnings.append(
            f"Deposit increase {goal.deposit_increase_percentage} > 1.0 - check percent vs decimal form."
        )

    # --- Target ---
    if goal.amount <= 0:
        result.warnings.append("Goal amount is zero or negative.")
    if goal.target_year is not None and goal.target_year > goal.retirement_year:
        result.warnings.append(
            f"Target year {goal.target_year} is after retirement year {goal.retirement_year}."
        )

    return result


def validate_transactions(
    transactions: Iterable[Transaction],
    fx_rates: Optional[Mapping[str, float]] = None,
    *,
    base_currency: Optional[str] = None,
) -> ValidationResult:
    """
    Check a transaction ledger before deriving actual contributions from it.
    Nothing here is blocking: bad rows are skipped or treated as base currency.
    """
    result = ValidationResult()
    rates = fx_rates or {}

    n_bad_date = 0
    n_bad_action = 0
    n_negative = 0
    unknown_currencies = set()

    for tx in transactions:
        if parse_date(tx.date) is None:
            n_bad_date += 1
        if tx.action not in KNOWN_ACTIONS:
            n_bad_action += 1
        if tx.shares < 0 or tx.price < 0:
            n_negative += 1
        if tx.currency not in rates and tx.currency != base_currency:
            unknown_currencies.add(tx.currency)

    if n_bad_date > 0:
        result.warnings.append(f"{n_bad_date} transactions have null/unparseable dates and are skipped.")
    if n_bad_action > 0:
        result.warnings.append(
            f"{n_bad_action} transactions have an action other than {'/'.join(KNOWN_ACTIONS)} and are ignored."
        )
    if n_negative > 0:
        result.warnings.append(f"{n_negative} transactions have negative shares or price.")
    if unknown_currencies:
        result.warnings.append(
            f"No exchange rate for {sorted(unknown_currencies)}; amounts are taken as base currency."
        )

    return result
