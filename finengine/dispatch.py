import logging
from typing import Any, Callable, Dict, Mapping, Optional

from finengine.analytics import calculate_analytics
from finengine.budgets import calculate_budget_status
from finengine.debt import calculate_debt_payoff
from finengine.domain import CalculationType, Request, Response, UnknownCalculationType
from finengine.filters import filter_transactions
from finengine.forecast import calculate_cashflow_forecast
from finengine.functional import Either, Left, Right, attempt
from finengine.sorting import sort_large_dataset
from finengine.transforms import aggregate_by_category, calculate_totals

__all__ = ['Handler', 'Dispatcher', 'DEFAULT_HANDLERS', 'build_dispatcher']

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]

DEFAULT_HANDLERS: Dict[str, Handler] = {
    CalculationType.CALCULATE_TOTALS.value: calculate_totals,
    CalculationType.CALCULATE_BUDGET_STATUS.value: calculate_budget_status,
    CalculationType.CALCULATE_DEBT_PAYOFF.value: calculate_debt_payoff,
    CalculationType.CALCULATE_CASHFLOW_FORECAST.value: calculate_cashflow_forecast,
    CalculationType.CALCULATE_ANALYTICS.value: calculate_analytics,
    CalculationType.FILTER_TRANSACTIONS.value: filter_transactions,
    CalculationType.SORT_LARGE_DATASET.value: sort_large_dataset,
    CalculationType.AGGREGATE_BY_CATEGORY.value: aggregate_by_category,
}


def _tag(calc_type: Any) -> Any:
    if isinstance(calc_type, CalculationType):
        return calc_type.value
    return calc_type


class Dispatcher:
    """Routes request envelopes to pure handlers and wraps the outcome in a response envelope."""

    def __init__(self, handlers: Optional[Mapping[str, Handler]] = None):
        self._handlers: Dict[str, Handler] = dict(handlers or {})

    def register(self, calc_type: Any, handler: Handler) -> None:
        self._handlers[_tag(calc_type)] = handler

    def unregister(self, calc_type: Any) -> None:
        self._handlers.pop(_tag(calc_type), None)

    def handles(self, calc_type: Any) -> bool:
        try:
            return _tag(calc_type) in self._handlers
        except TypeError:
            return False

    def lookup(self, calc_type: Any) -> Either[Exception, Handler]:
        if not self.handles(calc_type):
            return Left(UnknownCalculationType(calc_type))
        return Right(self._handlers[_tag(calc_type)])

    def run(self, calc_type: Any, data: Any) -> Either[Exception, Any]:
        return self.lookup(calc_type).bind(lambda handler: attempt(handler, data))

    def dispatch(self, request: Request) -> Response:
        outcome = self.run(request.type, request.data)
        if outcome.is_right():
            return Response.success(request, outcome.get_or_else(None))

        exc = outcome.get_error()
        if isinstance(exc, UnknownCalculationType):
            logger.warning(f"Rejected request {request.id!r}: {exc}")
        else:
            logger.error(f"{request.type} request {request.id!r} failed", exc_info=exc)
        return Response.failure(request, str(exc) or type(exc).__name__)

    def handle(self, message: Any) -> Dict[str, Any]:
        """Answer one raw message; never raises."""
        if not isinstance(message, Mapping):
            logger.warning(f"Dropping malformed message of type {type(message).__name__}")
            return Response(id=None, type=None, error=f"Malformed request: expected an object, got {type(message).__name__}").to_dict()
        return self.dispatch(Request.from_dict(message)).to_dict()


def build_dispatcher() -> Dispatcher:
    return Dispatcher(DEFAULT_HANDLERS)
