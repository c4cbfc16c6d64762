"""Asyncio-facing client for the calculation worker.

Requests get increasing integer ids; responses coming off the worker's
outbox are matched back to waiting futures by id. A request that is not
answered within the timeout is abandoned and its late response dropped.
With inline fallback enabled, timeouts and a dead worker are answered by
running the same handler in-process instead, off the event loop.
"""
import asyncio
import copy
import itertools
import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

from finengine.config import EngineConfig, load_config
from finengine.dispatch import Dispatcher, build_dispatcher
from finengine.domain import (
    WORKER_READY,
    WORKER_STOPPED,
    CalculationFailed,
    CalculationTimeout,
    CalculationType,
    Request,
    Response,
    WorkerUnavailable,
)
from finengine.worker import CalculationWorker

logger = logging.getLogger(__name__)


class CalculationClient:

    def __init__(self, worker: Optional[CalculationWorker] = None, config: Optional[EngineConfig] = None):
        self.config = config or load_config()
        self._worker = worker
        self._pending: Dict[int, asyncio.Future] = {}
        self._ids = itertools.count(1)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ready: Optional[asyncio.Event] = None
        self._reader: Optional[threading.Thread] = None

    @property
    def dispatcher(self) -> Dispatcher:
        if self._worker is not None:
            return self._worker.dispatcher
        return build_dispatcher()

    @property
    def is_ready(self) -> bool:
        return self._ready is not None and self._ready.is_set() and self._worker is not None and self._worker.is_alive

    async def __aenter__(self) -> "CalculationClient":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self, ready_timeout: Optional[float] = None) -> "CalculationClient":
        """Spawn the worker and wait for its readiness signal."""
        self._loop = asyncio.get_running_loop()
        self._ready = asyncio.Event()
        if self._worker is None:
            self._worker = CalculationWorker()
        worker = self._worker
        worker.start()
        self._reader = threading.Thread(target=self._read, args=(worker,), name=f"{worker.name}-reader", daemon=True)
        self._reader.start()

        timeout = ready_timeout if ready_timeout is not None else self.config.request_timeout
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
        except asyncio.TimeoutError:
            raise WorkerUnavailable(f"{worker.name} did not signal readiness within {timeout}s") from None
        return self

    async def close(self) -> None:
        worker, reader = self._worker, self._reader
        if worker is None:
            return
        await asyncio.to_thread(worker.terminate)
        if reader is not None:
            await asyncio.to_thread(reader.join, 1.0)
        self._fail_pending(WorkerUnavailable(f"{worker.name} was terminated"))

    async def restart(self) -> "CalculationClient":
        """Terminate the current worker and spawn a fresh one with the same handlers."""
        dispatcher = self.dispatcher
        await self.close()
        self._worker = CalculationWorker(dispatcher)
        return await self.start()

    async def calculate(self, calc_type: Any, data: Any, timeout: Optional[float] = None) -> Any:
        tag = calc_type.value if isinstance(calc_type, CalculationType) else calc_type
        timeout = timeout if timeout is not None else self.config.request_timeout
        try:
            return await self._submit(tag, data, timeout)
        except (CalculationTimeout, WorkerUnavailable) as exc:
            if not self.config.inline_fallback:
                raise
            logger.warning(f"{tag}: {exc}; computing inline")
            return await asyncio.to_thread(self.compute_inline, tag, data)

    def compute_inline(self, tag: Any, data: Any) -> Any:
        response = Response.from_dict(self.dispatcher.handle(Request(id=None, type=tag, data=copy.deepcopy(data)).to_dict()))
        if not response.ok:
            raise CalculationFailed(response.error)
        return response.result

    async def _submit(self, tag: Any, data: Any, timeout: float) -> Any:
        if self._loop is None or not self.is_ready:
            raise WorkerUnavailable("calculation worker is not running")

        request_id = next(self._ids)
        future = self._loop.create_future()
        self._pending[request_id] = future
        try:
            self._worker.post_message(Request(id=request_id, type=tag, data=data).to_dict())
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise CalculationTimeout(f"{tag} request {request_id} timed out after {timeout}s") from None
        finally:
            self._pending.pop(request_id, None)

    def _read(self, worker: CalculationWorker) -> None:
        # runs on the reader thread; hands every message to the event loop
        while True:
            message = worker.get_message()
            self._call_soon(self._deliver, message)
            if message.get("type") == WORKER_STOPPED:
                return

    def _call_soon(self, callback, *args) -> None:
        try:
            self._loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            logger.debug("event loop is closed; dropping worker message")

    def _deliver(self, message: Dict[str, Any]) -> None:
        kind = message.get("type")
        if kind == WORKER_READY:
            self._ready.set()
            return
        if kind == WORKER_STOPPED:
            self._fail_pending(WorkerUnavailable("calculation worker stopped"))
            return

        response = Response.from_dict(message)
        future = self._pending.pop(response.id, None)
        if future is None or future.done():
            logger.debug(f"Dropping late response {response.id!r} for {kind}")
            return
        if not response.ok:
            future.set_exception(CalculationFailed(response.error))
        else:
            future.set_result(response.result)

    def _fail_pending(self, exc: Exception) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(exc)

    # One coroutine per operation

    async def calculate_totals(self, transactions: Iterable[Mapping]) -> Dict[str, float]:
        return await self.calculate(CalculationType.CALCULATE_TOTALS, list(transactions))

    async def calculate_budget_status(self, budgets: Iterable[Mapping], transactions: Iterable[Mapping]) -> List[Dict[str, Any]]:
        return await self.calculate(
            CalculationType.CALCULATE_BUDGET_STATUS,
            {"budgets": list(budgets), "transactions": list(transactions)},
        )

    async def calculate_debt_payoff(self, debts: Iterable[Mapping], monthly_payment: float, strategy: str = "avalanche") -> Dict[str, Any]:
        return await self.calculate(
            CalculationType.CALCULATE_DEBT_PAYOFF,
            {"debts": list(debts), "monthlyPayment": monthly_payment, "strategy": strategy},
        )

    async def calculate_cashflow_forecast(
        self,
        shifts: Iterable[Mapping],
        bills: Iterable[Mapping],
        starting_balance: float,
        transactions: Iterable[Mapping] = (),
        as_of: Any = None,
    ) -> List[Dict[str, Any]]:
        payload = {
            "transactions": list(transactions),
            "shifts": list(shifts),
            "bills": list(bills),
            "startingBalance": starting_balance,
        }
        if as_of is not None:
            payload["asOf"] = as_of
        return await self.calculate(CalculationType.CALCULATE_CASHFLOW_FORECAST, payload)

    async def calculate_analytics(self, transactions: Iterable[Mapping]) -> Dict[str, List[Dict[str, Any]]]:
        return await self.calculate(CalculationType.CALCULATE_ANALYTICS, list(transactions))

    async def filter_transactions(self, transactions: Iterable[Mapping], filters: Mapping) -> List[Mapping]:
        return await self.calculate(
            CalculationType.FILTER_TRANSACTIONS,
            {"transactions": list(transactions), "filters": dict(filters)},
        )

    async def sort_large_dataset(self, items: Iterable[Mapping], sort_by: str, direction: str = "asc") -> List[Mapping]:
        return await self.calculate(
            CalculationType.SORT_LARGE_DATASET,
            {"items": list(items), "sortBy": sort_by, "direction": direction},
        )

    async def aggregate_by_category(self, transactions: Iterable[Mapping]) -> List[Dict[str, Any]]:
        return await self.calculate(CalculationType.AGGREGATE_BY_CATEGORY, list(transactions))
