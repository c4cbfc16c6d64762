from typing import Any, Dict, List, Mapping, Sequence

from finengine.transforms import require_mapping, require_records, to_amount

OVER = "over"
WARNING = "warning"
OK = "ok"

WARNING_THRESHOLD = 90
OVER_THRESHOLD = 100


def budget_state(percentage: float) -> str:
    if percentage > OVER_THRESHOLD:
        return OVER
    if percentage > WARNING_THRESHOLD:
        return WARNING
    return OK


def category_spent(category: Any, trans: Sequence[Mapping]) -> float:
    # income in the same category counts toward spend as well
    return sum((abs(to_amount(t.get("amount"))) for t in trans if t.get("category") == category), 0.0)


def calculate_budget_status(data: Any) -> List[Dict[str, Any]]:
    payload = require_mapping(data, "budget status payload")
    budgets = require_records(payload.get("budgets"), "budgets")
    transactions = require_records(payload.get("transactions"), "transactions")

    report = []
    for budget in budgets:
        spent = category_spent(budget.get("category"), transactions)
        allocated = to_amount(budget.get("amount"))
        percentage = spent / allocated * 100 if allocated > 0 else 0
        report.append({
            **budget,
            "spent": spent,
            "remaining": allocated - spent,
            "percentage": percentage,
            "status": budget_state(percentage),
        })
    return report
