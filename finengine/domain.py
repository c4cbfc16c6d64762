from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


WORKER_READY = "WORKER_READY"
WORKER_STOPPED = "WORKER_STOPPED"


class CalculationType(str, Enum):
    CALCULATE_TOTALS = "CALCULATE_TOTALS"
    CALCULATE_BUDGET_STATUS = "CALCULATE_BUDGET_STATUS"
    CALCULATE_DEBT_PAYOFF = "CALCULATE_DEBT_PAYOFF"
    CALCULATE_CASHFLOW_FORECAST = "CALCULATE_CASHFLOW_FORECAST"
    CALCULATE_ANALYTICS = "CALCULATE_ANALYTICS"
    FILTER_TRANSACTIONS = "FILTER_TRANSACTIONS"
    SORT_LARGE_DATASET = "SORT_LARGE_DATASET"
    AGGREGATE_BY_CATEGORY = "AGGREGATE_BY_CATEGORY"


class CalculationError(Exception):
    """Base class for everything the engine and its client raise."""


class UnknownCalculationType(CalculationError):
    def __init__(self, calc_type: Any):
        super().__init__(f"Unknown calculation type: {calc_type}")
        self.calc_type = calc_type


class InvalidPayload(CalculationError, ValueError):
    pass


class CalculationFailed(CalculationError):
    """The worker answered with an error response."""


class CalculationTimeout(CalculationError):
    pass


class WorkerUnavailable(CalculationError):
    pass


@dataclass(frozen=True)
class Request:
    id: Any            # opaque correlation token
    type: str          # operation tag
    data: Any = None   # operation payload

    @classmethod
    def from_dict(cls, message: dict) -> "Request":
        return cls(id=message.get("id"), type=message.get("type"), data=message.get("data"))

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type, "data": self.data}


@dataclass(frozen=True)
class Response:
    id: Any
    type: Optional[str]
    result: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, request: Request, result: Any) -> "Response":
        return cls(id=request.id, type=request.type, result=result, error=None)

    @classmethod
    def failure(cls, request: Request, error: str) -> "Response":
        return cls(id=request.id, type=request.type, result=None, error=error)

    @classmethod
    def from_dict(cls, message: dict) -> "Response":
        return cls(
            id=message.get("id"),
            type=message.get("type"),
            result=message.get("result"),
            error=message.get("error"),
        )

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type, "result": self.result, "error": self.error}


# Internal amortization state for one debt during a payoff simulation
@dataclass
class DebtState:
    name: Any
    balance: float
    interest_rate: float   # annual percent
    min_payment: float
    position: int          # index in the caller's list, used for tie-breaks

    @property
    def monthly_rate(self) -> float:
        return self.interest_rate / 100 / 12
