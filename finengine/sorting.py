from typing import Any, Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd

from finengine.domain import InvalidPayload
from finengine.transforms import require_mapping, require_records, to_amount, to_timestamp

ASC = "asc"
DESC = "desc"


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _parses_as_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        float(value)
    except (TypeError, ValueError, OverflowError):
        return False
    return True


def stable_order(keys: np.ndarray, ascending: bool) -> np.ndarray:
    """Indices that sort ``keys``; equal keys keep input order in both directions."""
    if ascending:
        return np.argsort(keys, kind="stable")
    return np.argsort(-keys, kind="stable")


def date_order(values: Sequence[Any], ascending: bool) -> List[int]:
    stamps = [to_timestamp(v) for v in values]
    valid = [i for i, ts in enumerate(stamps) if not pd.isna(ts)]
    invalid = [i for i, ts in enumerate(stamps) if pd.isna(ts)]
    keys = np.array([stamps[i].value for i in valid], dtype=np.int64)
    ordered = [valid[j] for j in stable_order(keys, ascending)]
    # unparseable dates always trail
    return ordered + invalid


def value_order(values: Sequence[Any], ascending: bool) -> List[int]:
    present = [v for v in values if not _is_missing(v)]
    if all(_parses_as_number(v) for v in present):
        keys = np.array([to_amount(v) for v in values], dtype=float)
        return [int(i) for i in stable_order(keys, ascending)]

    labels = ["" if _is_missing(v) else str(v).lower() for v in values]
    return sorted(range(len(values)), key=labels.__getitem__, reverse=not ascending)


def sort_large_dataset(data: Any) -> List[Dict[str, Any]]:
    payload = require_mapping(data, "sort payload")
    items: List[Mapping] = require_records(payload.get("items"), "items")
    sort_by = payload.get("sortBy")
    if not sort_by:
        raise InvalidPayload("sortBy is required")
    ascending = payload.get("direction") == ASC

    values = [item.get(sort_by) for item in items]
    if sort_by == "date":
        order = date_order(values, ascending)
    else:
        order = value_order(values, ascending)
    return [items[i] for i in order]
