import asyncio
from typing import Any, Dict, Iterable, Mapping

from finengine.budgets import OVER, WARNING
from finengine.client import CalculationClient


class ReportService:
    """Facade that composes several engine requests into dashboard reports."""

    def __init__(self, client: CalculationClient):
        self.client = client

    async def overview(self, transactions: Iterable[Mapping], budgets: Iterable[Mapping]) -> Dict[str, Any]:
        """Totals, budget status and analytics computed concurrently, plus the budgets needing attention."""
        trans = list(transactions)
        totals, statuses, analytics = await asyncio.gather(
            self.client.calculate_totals(trans),
            self.client.calculate_budget_status(list(budgets), trans),
            self.client.calculate_analytics(trans),
        )
        return {
            "totals": totals,
            "budgets": statuses,
            "alerts": [b for b in statuses if b["status"] in (OVER, WARNING)],
            "byMonth": analytics["byMonth"],
            "topCategories": analytics["topCategories"],
        }

    async def debt_plan(self, debts: Iterable[Mapping], monthly_payment: float) -> Dict[str, Any]:
        """Avalanche and snowball payoffs side by side."""
        debts = list(debts)
        avalanche, snowball = await asyncio.gather(
            self.client.calculate_debt_payoff(debts, monthly_payment, "avalanche"),
            self.client.calculate_debt_payoff(debts, monthly_payment, "snowball"),
        )
        faster = "avalanche" if avalanche["monthsToPayoff"] <= snowball["monthsToPayoff"] else "snowball"
        return {
            "avalanche": avalanche,
            "snowball": snowball,
            "recommended": faster,
            "interestSaved": snowball["interestAccrued"] - avalanche["interestAccrued"],
        }
