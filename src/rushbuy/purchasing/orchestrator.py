#!/usr/bin/env python3
"""
Rush buy orchestration: one thread per item, one order worker for all
"""
import concurrent.futures
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Set

from ..config import BuyerConfig
from ..models import TaskResult
from ..monitoring.status_board import StatusBoard
from ..stock_checker import StockProber
from .order_service import OrderService
from .order_worker import OrderSubmissionWorker
from .purchase_task import PurchaseTask, SubmitFn


class RushBuyOrchestrator:
    """Fans purchase tasks out and waits for every one of them.

    Completion is counted per task, not per submission, so items that never
    reach the submit step (auto-submit off, or failed earlier) still finish
    the run. Each task's TaskResult is the completion signal.

    Every ``rush_buy`` call owns its order worker and its stop event.
    ``cancel()`` or an interrupt (Ctrl+C) sets the event, which ends any
    stock polling, and the call returns once the tasks have wound down.
    """

    def __init__(self, config: BuyerConfig, prober: StockProber, orders: OrderService,
                 board: Optional[StatusBoard] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        self.config = config
        self.prober = prober
        self.orders = orders
        self.board = board
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._active: Set[threading.Event] = set()

    def make_task(self, item_id: str, quantity: int, submit: Optional[SubmitFn] = None,
                  stop: Optional[threading.Event] = None) -> PurchaseTask:
        return PurchaseTask(
            item_id,
            quantity,
            self.config,
            self.prober,
            self.orders,
            submit=submit,
            board=self.board,
            stop=stop,
            sleep=self.sleep,
        )

    def cancel(self):
        """Stop every running rush; tasks still polling end as failed"""
        with self._lock:
            for stop in self._active:
                stop.set()

    def rush_buy(self, items: Dict[str, int],
                 stop: Optional[threading.Event] = None) -> List[TaskResult]:
        if not items:
            self.logger.warning("No goods to buy")
            return []

        self.logger.info(f"Rushing {len(items)} goods: {items} "
                         f"(area {self.config.ship_area}, rush {self.config.auto_rush}, "
                         f"submit {self.config.auto_submit})")
        if self.board is not None:
            self.board.start_run(items.keys())

        stop = stop or threading.Event()
        worker = OrderSubmissionWorker(self.orders.submit_order,
                                       cooldown=self.config.submit_cooldown,
                                       sleep=self.sleep or time.sleep)
        worker.start()
        with self._lock:
            self._active.add(stop)

        results: List[TaskResult] = []
        try:
            tasks = [self.make_task(item_id, count, submit=worker.submit, stop=stop)
                     for item_id, count in items.items()]
            with concurrent.futures.ThreadPoolExecutor(max_workers=len(tasks),
                                                       thread_name_prefix="purchase") as pool:
                futures = [pool.submit(task.run) for task in tasks]
                try:
                    for future in concurrent.futures.as_completed(futures):
                        results.append(future.result())
                except BaseException:
                    self.logger.warning("Rush interrupted, stopping purchase tasks")
                    stop.set()
                    raise
        finally:
            with self._lock:
                self._active.discard(stop)
            worker.stop()

        self._log_summary(results)
        return results

    def _log_summary(self, results: List[TaskResult]):
        succeeded = [r for r in results if r.succeeded]
        self.logger.info(f"Finished: {len(succeeded)}/{len(results)} goods done")
        for result in results:
            if result.succeeded:
                order = f", order {result.order_id}" if result.order_id else ""
                self.logger.info(f"  {result.item_id}: done, {result.cart_count} in cart{order}")
            else:
                self.logger.info(f"  {result.item_id}: failed ({result.error})")
