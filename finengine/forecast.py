from typing import Any, Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd

from finengine.domain import InvalidPayload
from finengine.transforms import require_mapping, require_records, to_amount, to_timestamp

FORECAST_MONTHS = 12


def forecast_months(as_of: Any = None, periods: int = FORECAST_MONTHS) -> pd.DatetimeIndex:
    """Month starts of the forecast window, beginning with the month of ``as_of`` (default today)."""
    if as_of is None:
        anchor = pd.Timestamp.today()
    else:
        anchor = to_timestamp(as_of)
        if pd.isna(anchor):
            raise InvalidPayload(f"asOf is not a valid date: {as_of!r}")
    start = anchor.normalize().replace(day=1)
    return pd.date_range(start=start, periods=periods, freq="MS")


def shift_income(shifts: Sequence[Mapping], month: pd.Timestamp) -> float:
    total = 0.0
    for s in shifts:
        ts = to_timestamp(s.get("date"))
        if pd.isna(ts):
            continue
        if ts.year == month.year and ts.month == month.month:
            total += to_amount(s.get("earnings"))
    return total


def bill_expenses(bills: Sequence[Mapping], month: pd.Timestamp) -> float:
    # Bills recur yearly: only the month of the due date is compared.
    total = 0.0
    for b in bills:
        due = to_timestamp(b.get("dueDate"))
        if pd.isna(due):
            continue
        if due.month == month.month:
            total += abs(to_amount(b.get("amount")))
    return total


def calculate_cashflow_forecast(data: Any, periods: int = FORECAST_MONTHS) -> List[Dict[str, Any]]:
    payload = require_mapping(data, "cashflow forecast payload")
    shifts = require_records(payload.get("shifts") or [], "shifts")
    bills = require_records(payload.get("bills") or [], "bills")
    starting_balance = to_amount(payload.get("startingBalance"))
    months = forecast_months(payload.get("asOf"), periods)

    income = np.array([shift_income(shifts, m) for m in months], dtype=float)
    expenses = np.array([bill_expenses(bills, m) for m in months], dtype=float)
    net = income - expenses
    end_balances = starting_balance + np.cumsum(net)
    start_balances = np.concatenate(([starting_balance], end_balances[:-1]))

    return [
        {
            "month": m.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
            "income": float(income[i]),
            "expenses": float(expenses[i]),
            "net": float(net[i]),
            "startBalance": float(start_balances[i]),
            "endBalance": float(end_balances[i]),
        }
        for i, m in enumerate(months)
    ]
