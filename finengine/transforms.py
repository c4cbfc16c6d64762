import math
from numbers import Number
from typing import Any, Dict, List, Mapping, Sequence

import pandas as pd

from finengine.domain import InvalidPayload

UNCATEGORIZED = "Uncategorized"


def to_amount(value: Any) -> float:
    """Coerce a monetary field to float; anything unusable becomes 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return 0.0 if math.isnan(amount) else amount


def to_timestamp(value: Any) -> pd.Timestamp:
    """Parse a date field into a naive pandas Timestamp, or NaT.

    Numbers are read as epoch milliseconds. Timezone-aware values are
    converted to UTC and made naive so that every timestamp compares.
    """
    if value is None or isinstance(value, (bool, list, tuple, set, dict)) or value == "":
        return pd.NaT
    try:
        if isinstance(value, Number):
            ts = pd.to_datetime(value, unit="ms", errors="coerce")
        else:
            ts = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def category_of(t: Mapping) -> str:
    return t.get("category") or UNCATEGORIZED


def require_list(value: Any, what: str) -> List:
    if value is None or isinstance(value, (str, bytes, Mapping)):
        raise InvalidPayload(f"{what} must be a list, got {type(value).__name__}")
    try:
        return list(value)
    except TypeError:
        raise InvalidPayload(f"{what} must be a list, got {type(value).__name__}") from None


def require_mapping(value: Any, what: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise InvalidPayload(f"{what} must be an object, got {type(value).__name__}")
    return value


def require_records(value: Any, what: str) -> List[Mapping]:
    records = require_list(value, what)
    for i, item in enumerate(records):
        if not isinstance(item, Mapping):
            raise InvalidPayload(f"{what}[{i}] must be an object, got {type(item).__name__}")
    return records


def income_transactions(trans: Sequence[Mapping]) -> List[Mapping]:
    return list(filter(lambda t: to_amount(t.get("amount")) > 0, trans))


def expense_transactions(trans: Sequence[Mapping]) -> List[Mapping]:
    # zero amounts land here
    return list(filter(lambda t: to_amount(t.get("amount")) <= 0, trans))


def calculate_totals(data: Any) -> Dict[str, float]:
    transactions = require_records(data, "transactions")
    income = sum((to_amount(t.get("amount")) for t in income_transactions(transactions)), 0.0)
    expenses = sum((abs(to_amount(t.get("amount"))) for t in expense_transactions(transactions)), 0.0)
    return {"income": income, "expenses": expenses, "net": income - expenses}


def aggregate_by_category(data: Any) -> List[Dict[str, Any]]:
    transactions = require_records(data, "transactions")
    aggregated: Dict[str, Dict[str, Any]] = {}

    for t in transactions:
        category = category_of(t)
        amount = to_amount(t.get("amount"))
        entry = aggregated.setdefault(
            category,
            {"category": category, "income": 0.0, "expenses": 0.0, "net": 0.0, "count": 0, "transactions": []},
        )
        entry["count"] += 1
        entry["transactions"].append(t)
        if amount > 0:
            entry["income"] += amount
        else:
            entry["expenses"] += abs(amount)
        entry["net"] = entry["income"] - entry["expenses"]

    return list(aggregated.values())
