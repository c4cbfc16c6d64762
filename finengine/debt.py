"""Month-by-month debt payoff simulation.

Every month each debt with a balance accrues interest and receives its
minimum payment. Whatever is left of the monthly budget goes to a single
target debt, chosen by the payoff strategy:

* ``avalanche``: highest interest rate first
* ``snowball``: lowest balance first

Ties go to the debt that appears first in the caller's list.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence

from finengine.domain import DebtState, InvalidPayload
from finengine.transforms import require_mapping, require_records, to_amount

AVALANCHE = "avalanche"
SNOWBALL = "snowball"
STRATEGIES = (AVALANCHE, SNOWBALL)

MAX_MONTHS = 360  # 30 years


def debt_states(debts: Sequence[dict]) -> List[DebtState]:
    return [
        DebtState(
            name=d.get("name"),
            balance=to_amount(d.get("balance")),
            interest_rate=to_amount(d.get("interestRate")),
            min_payment=to_amount(d.get("minPayment")),
            position=i,
        )
        for i, d in enumerate(debts)
    ]


def pick_target(states: Sequence[DebtState], strategy: str = AVALANCHE) -> Optional[DebtState]:
    owing = [d for d in states if d.balance > 0]
    if not owing:
        return None
    if strategy == SNOWBALL:
        return min(owing, key=lambda d: (d.balance, d.position))
    return min(owing, key=lambda d: (-d.interest_rate, d.position))


def years_label(months: int) -> str:
    years = Decimal(months) / Decimal(12)
    return str(years.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def simulate_month(states: List[DebtState], monthly_payment: float, strategy: str) -> float:
    """Advance every debt by one month in place and return the interest accrued."""
    remaining = monthly_payment
    accrued = 0.0

    for debt in states:
        if debt.balance <= 0:
            continue
        interest = debt.balance * debt.monthly_rate
        payment = min(debt.min_payment, debt.balance + interest)
        remaining -= payment
        accrued += interest
        debt.balance = max(0.0, debt.balance + interest - payment)

    if remaining > 0:
        target = pick_target(states, strategy)
        if target is not None:
            target.balance -= min(remaining, target.balance)

    return accrued


def legacy_interest_total(months: int, states: Sequence[DebtState]) -> float:
    # One month of interest on the final balances, once per schedule row.
    # Kept as-is for parity with existing dashboards; see interestAccrued.
    return months * sum((d.balance * d.monthly_rate for d in states), 0.0)


def calculate_debt_payoff(data: Any, max_months: int = MAX_MONTHS) -> Dict[str, Any]:
    payload = require_mapping(data, "debt payoff payload")
    states = debt_states(require_records(payload.get("debts"), "debts"))
    monthly_payment = to_amount(payload.get("monthlyPayment"))
    strategy = str(payload.get("strategy") or AVALANCHE).lower()
    if strategy not in STRATEGIES:
        raise InvalidPayload(f"Unknown payoff strategy: {strategy}")

    schedule = []
    interest_accrued = 0.0
    month = 0

    while any(d.balance > 0 for d in states) and month < max_months:
        month += 1
        interest_accrued += simulate_month(states, monthly_payment, strategy)
        schedule.append({
            "month": month,
            "debts": [{"name": d.name, "balance": d.balance} for d in states],
            "totalBalance": sum((d.balance for d in states), 0.0),
        })

    return {
        "schedule": schedule,
        "monthsToPayoff": month,
        "yearsToPayoff": years_label(month),
        "totalInterestPaid": legacy_interest_total(len(schedule), states),
        "interestAccrued": interest_accrued,
        "strategy": strategy,
    }
