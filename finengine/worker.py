"""Background calculation worker.

A single daemon thread consumes request envelopes from an inbox queue,
answers each one to completion in arrival order and puts the response on an
outbox queue. Messages are deep-copied on the way in and on the way out, so
the worker never shares mutable data with its caller.

The first message on the outbox is always ``{"type": "WORKER_READY"}``;
after ``terminate()`` the last one is ``{"type": "WORKER_STOPPED"}``.
"""
import copy
import logging
import queue
import threading
from typing import Any, Dict, Optional

from finengine.dispatch import Dispatcher, build_dispatcher
from finengine.domain import WORKER_READY, WORKER_STOPPED, WorkerUnavailable

logger = logging.getLogger(__name__)

_STOP = object()


class CalculationWorker:

    def __init__(self, dispatcher: Optional[Dispatcher] = None, name: str = "calculation-worker"):
        self.dispatcher = dispatcher or build_dispatcher()
        self.name = name
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        self._outbox: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._stopping = False

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopping

    def start(self) -> "CalculationWorker":
        if self._thread is not None:
            raise RuntimeError(f"{self.name} was already started")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        return self

    def post_message(self, message: Dict[str, Any]) -> None:
        if not self.is_alive:
            raise WorkerUnavailable(f"{self.name} is not running")
        self._inbox.put(copy.deepcopy(message))

    def get_message(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Next outgoing message; raises ``queue.Empty`` after ``timeout`` seconds."""
        return self._outbox.get(timeout=timeout)

    def terminate(self, timeout: Optional[float] = None) -> None:
        """Stop after the request in progress; queued requests are discarded unanswered."""
        if self._thread is None or self._stopping:
            return
        self._stopping = True
        self._drain_inbox()
        self._inbox.put(_STOP)
        self._thread.join(timeout)

    def _drain_inbox(self) -> None:
        while True:
            try:
                dropped = self._inbox.get_nowait()
            except queue.Empty:
                return
            if isinstance(dropped, dict):
                logger.debug(f"{self.name}: discarding queued request {dropped.get('id')!r}")

    def _emit(self, message: Dict[str, Any]) -> None:
        self._outbox.put(message)

    def _reply(self, message: Any) -> Dict[str, Any]:
        response = self.dispatcher.handle(message)
        try:
            return copy.deepcopy(response)
        except Exception as exc:  # noqa: BLE001
            logger.exception(f"{self.name}: result of {response.get('type')} is not copyable")
            return {"id": response.get("id"), "type": response.get("type"), "result": None, "error": str(exc) or type(exc).__name__}

    def _run(self) -> None:
        logger.info(f"{self.name} started")
        self._emit({"type": WORKER_READY})
        while True:
            message = self._inbox.get()
            if message is _STOP:
                break
            self._emit(self._reply(message))
        logger.info(f"{self.name} stopped")
        self._emit({"type": WORKER_STOPPED})
