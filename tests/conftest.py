import pytest

from core.schema import Goal, Transaction


@pytest.fixture()
def demo_goal() -> Goal:
    return Goal(
        amount=750_000,
        retirement_year=2050,
        annual_return=0.07,
        monthly_deposits=1_500,
        deposit_increase_percentage=0.02,
        start_date="2024-01-01",
    )


@pytest.fixture()
def short_goal() -> Goal:
    """Two calendar years, 24 monthly points."""
    return Goal(
        amount=50_000,
        retirement_year=2025,
        annual_return=0.06,
        monthly_deposits=1_000,
        deposit_increase_percentage=0.05,
        start_date="2024-01-01",
    )


@pytest.fixture()
def ledger() -> list:
    return [
        Transaction(date="2023-12-01", action="Buy", shares=1, price=50, currency="EUR", ticker="VWCE"),
        Transaction(date="2024-01-15", action="Buy", shares=10, price=100, currency="USD", ticker="VOO"),
        Transaction(date="2024-03-02", action="Sell", shares=2, price=100, currency="PLN", ticker="CDR"),
    ]


@pytest.fixture()
def fx_rates() -> dict:
    return {"USD": 4.0, "EUR": 4.5}
