from itertools import islice
from typing import Any, Dict, Iterable, Iterator, List, Mapping

import pandas as pd

from finengine.transforms import category_of, require_records, to_amount, to_timestamp

TOP_CATEGORIES = 5
UNKNOWN_MONTH = "unknown"


def month_key(value: Any) -> str:
    ts = to_timestamp(value)
    if pd.isna(ts):
        return UNKNOWN_MONTH
    return f"{ts.year}-{ts.month:02d}"


def lazy_top_categories(by_category: Iterable[Dict[str, Any]], k: int) -> Iterator[Dict[str, Any]]:
    # sorted() is stable, so equal totals keep first-seen order
    ordered = sorted(by_category, key=lambda entry: entry["total"], reverse=True)
    for entry in islice(ordered, max(0, k)):
        yield dict(entry)


def calculate_analytics(data: Any, top: int = TOP_CATEGORIES) -> Dict[str, List[Dict[str, Any]]]:
    transactions: List[Mapping] = require_records(data, "transactions")
    by_category: Dict[str, Dict[str, Any]] = {}
    by_month: Dict[str, Dict[str, Any]] = {}

    for t in transactions:
        raw = to_amount(t.get("amount"))
        amount = abs(raw)
        category = category_of(t)
        key = month_key(t.get("date"))

        cat = by_category.setdefault(category, {"category": category, "total": 0.0, "count": 0, "transactions": []})
        cat["total"] += amount
        cat["count"] += 1
        cat["transactions"].append(t)

        month = by_month.setdefault(key, {"month": key, "income": 0.0, "expenses": 0.0, "net": 0.0})
        if raw > 0:
            month["income"] += amount
        else:
            month["expenses"] += amount
        month["net"] = month["income"] - month["expenses"]

    categories = list(by_category.values())
    return {
        "byCategory": categories,
        "byMonth": list(by_month.values()),
        "topCategories": list(lazy_top_categories(categories, top)),
    }
