#!/usr/bin/env python3
"""
Order Submission Worker - the only place orders get submitted

The order endpoint acts on the session's current cart and does not cope
with overlapping submissions, so every request goes through one background
thread, strictly first in first out, with a cool-down after each call.
"""
import logging
import queue
import threading
import time
from typing import Callable, List, Optional

from ..errors import RushBuyError, SubmitOrderError
from ..models import SubmissionRequest, SubmissionResult

_STOP = object()


class OrderSubmissionWorker:
    """Serializes order submissions.

    ``submit_fn`` performs one submission and returns the order id, raising
    on failure. Each request's future resolves with a SubmissionResult.
    """

    def __init__(self, submit_fn: Callable[[], str], cooldown: float = 1.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.submit_fn = submit_fn
        self.cooldown = cooldown
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

        self._queue: "queue.Queue" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._history_lock = threading.Lock()
        self.history: List[SubmissionResult] = []

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        if self._running:
            self.logger.warning("Order worker already running")
            return

        self._running = True
        self._thread = threading.Thread(target=self._run, name="order-worker", daemon=True)
        self._thread.start()
        self.logger.debug("Order worker started")

    def submit(self, request: Optional[SubmissionRequest] = None) -> SubmissionRequest:
        """Queue a submission. Wait on ``request.future`` for the result."""
        if not self._running:
            raise RuntimeError("order worker is not running")
        request = request or SubmissionRequest()
        self._queue.put(request)
        return request

    def stop(self, timeout: Optional[float] = None):
        """Finish everything already queued, then end the thread"""
        if not self._running:
            return
        self._queue.put(_STOP)
        if self._thread is not None:
            self._thread.join(timeout)
        self._running = False
        self.logger.debug("Order worker stopped")

    def _run(self):
        while True:
            request = self._queue.get()
            if request is _STOP:
                break

            result = self._process(request)
            with self._history_lock:
                self.history.append(result)
            request.future.set_result(result)

            # backend does not accept overlapping submissions
            self.sleep(self.cooldown)

    def _process(self, request: SubmissionRequest) -> SubmissionResult:
        label = request.item_id or "current order"
        started = time.monotonic()
        try:
            order_id = self.submit_fn()
        except SubmitOrderError as e:
            self.logger.error(f"Order for {label} rejected, {e.code} : {e.message}")
            return SubmissionResult(success=False, code=e.code, message=e.message,
                                    started_at=started, finished_at=time.monotonic(), error=e)
        except RushBuyError as e:
            self.logger.error(f"Order for {label} failed: {e}")
            return SubmissionResult(success=False, message=str(e),
                                    started_at=started, finished_at=time.monotonic(), error=e)
        except Exception as e:
            self.logger.exception(f"Unexpected error submitting order for {label}")
            return SubmissionResult(success=False, message=str(e),
                                    started_at=started, finished_at=time.monotonic(), error=e)

        self.logger.info(f"Order submitted for {label}, order id {order_id}")
        return SubmissionResult(success=True, order_id=order_id,
                                started_at=started, finished_at=time.monotonic())
