import logging
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional, Union

import pandas as pd

from finengine.functional import pipe
from finengine.transforms import require_mapping, require_records, to_amount, to_timestamp

logger = logging.getLogger(__name__)

Predicate = Callable[[Mapping], bool]

SEARCH_FIELDS = ("description", "category", "merchant")


def iter_transactions(trans: Iterable[Mapping], pred: Predicate) -> Iterator[Mapping]:
    for t in trans:
        if pred(t):
            yield t


def _bound(value: Any, name: str) -> Optional[pd.Timestamp]:
    ts = to_timestamp(value)
    if pd.isna(ts):
        logger.warning(f"Ignoring {name} filter, not a date: {value!r}")
        return None
    return ts


def by_start_date(start: pd.Timestamp) -> Predicate:
    def _filter(t: Mapping) -> bool:
        ts = to_timestamp(t.get("date"))
        return not pd.isna(ts) and ts >= start

    return _filter


def by_end_date(end: pd.Timestamp) -> Predicate:
    def _filter(t: Mapping) -> bool:
        ts = to_timestamp(t.get("date"))
        return not pd.isna(ts) and ts <= end

    return _filter


def by_min_amount(min_amount: float) -> Predicate:
    def _filter(t: Mapping) -> bool:
        return abs(to_amount(t.get("amount"))) >= min_amount

    return _filter


def by_max_amount(max_amount: float) -> Predicate:
    def _filter(t: Mapping) -> bool:
        return abs(to_amount(t.get("amount"))) <= max_amount

    return _filter


def by_categories(categories: Union[str, Iterable[Any]]) -> Predicate:
    # a lone name is one category, not its characters
    allowed = [categories] if isinstance(categories, str) else list(categories)

    def _filter(t: Mapping) -> bool:
        return t.get("category") in allowed

    return _filter


def by_type(kind: str) -> Predicate:
    # zero amounts are neither income nor expense here
    def _filter(t: Mapping) -> bool:
        amount = to_amount(t.get("amount"))
        if kind == "income":
            return amount > 0
        if kind == "expense":
            return amount < 0
        return True

    return _filter


def by_search(text: Any) -> Predicate:
    needle = str(text).lower()

    def _filter(t: Mapping) -> bool:
        return any(needle in str(t.get(field) or "").lower() for field in SEARCH_FIELDS)

    return _filter


def active_predicates(filters: Mapping) -> List[Predicate]:
    """Predicates for every filter field that is set, in evaluation order."""
    preds: List[Predicate] = []

    if filters.get("startDate"):
        start = _bound(filters["startDate"], "startDate")
        if start is not None:
            preds.append(by_start_date(start))
    if filters.get("endDate"):
        end = _bound(filters["endDate"], "endDate")
        if end is not None:
            preds.append(by_end_date(end))

    min_amount = to_amount(filters.get("minAmount"))
    if min_amount:
        preds.append(by_min_amount(min_amount))
    max_amount = to_amount(filters.get("maxAmount"))
    if max_amount:
        preds.append(by_max_amount(max_amount))

    categories = filters.get("categories")
    if categories:
        preds.append(by_categories(categories))

    if filters.get("type") in ("income", "expense"):
        preds.append(by_type(filters["type"]))

    if filters.get("search"):
        preds.append(by_search(filters["search"]))

    return preds


def filter_transactions(data: Any) -> List[Mapping]:
    payload = require_mapping(data, "filter payload")
    transactions = require_records(payload.get("transactions"), "transactions")
    filters = require_mapping(payload.get("filters") or {}, "filters")

    stages = [lambda trans, pred=pred: iter_transactions(trans, pred) for pred in active_predicates(filters)]
    return list(pipe(transactions, *stages))
