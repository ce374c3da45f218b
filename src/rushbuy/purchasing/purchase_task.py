#!/usr/bin/env python3
"""
Purchase Task - the per-item pipeline run by one worker thread

    probing -> [polling] -> purchasing -> order-review -> [submission-requested] -> done
                                                                    any step fails -> failed

The task owns its ItemTarget; nothing else mutates it once the task starts.
"""
import logging
import threading
from typing import Callable, Optional

from ..config import BuyerConfig
from ..errors import PurchaseCancelledError, PurchaseFailedError, RushBuyError, TransportError
from ..models import ItemTarget, StockStatus, SubmissionRequest, TaskResult, TaskState
from ..monitoring.status_board import StatusBoard
from ..stock_checker import StockProber
from .order_service import OrderService

SubmitFn = Callable[[SubmissionRequest], SubmissionRequest]


class PurchaseTask:
    def __init__(self, item_id: str, quantity: int, config: BuyerConfig,
                 prober: StockProber, orders: OrderService,
                 submit: Optional[SubmitFn] = None,
                 board: Optional[StatusBoard] = None,
                 stop: Optional[threading.Event] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        self.item_id = item_id
        self.quantity = quantity
        self.config = config
        self.prober = prober
        self.orders = orders
        self.submit = submit
        self.board = board
        self.stop = stop or threading.Event()
        # returns early once stop is set
        self.sleep = sleep or self.stop.wait

        self.logger = logging.getLogger(__name__)
        self.purchase_log = logging.getLogger('purchases')

        self.item: Optional[ItemTarget] = None
        self.result = TaskResult(item_id=item_id, state=TaskState.PROBING)

    def run(self) -> TaskResult:
        """Run the pipeline to a terminal state. Never raises."""
        try:
            self._run()
        except RushBuyError as e:
            self._fail(e)
        except Exception as e:
            self.logger.exception(f"Unexpected error in purchase task {self.item_id}")
            self._fail(e)

        if self.board is not None:
            self.board.record_result(self.result)
        return self.result

    def _enter(self, state: TaskState):
        self.result.state = state
        self.result.history.append(state)
        if self.board is not None:
            self.board.record_state(self.item_id, state)
        self.logger.debug(f"[{self.item_id}] -> {state.value}")

    def _fail(self, error: Exception):
        self.result.error = error
        self._enter(TaskState.FAILED)
        self.purchase_log.error(f"PURCHASE FAILED: {self.item_id} - {error}")

    def _run(self):
        self._enter(TaskState.PROBING)
        self.item = self.prober.detail(self.item_id, self.quantity)
        self.result.name = self.item.name
        self._report_item()

        self._poll_until_available()

        self._enter(TaskState.PURCHASING)
        self._purchase()

        self._enter(TaskState.ORDER_REVIEW)
        try:
            self.orders.order_summary()
        except RushBuyError as e:
            self.logger.warning(f"Could not load order summary for {self.item_id}: {e}")

        if self.config.auto_submit and self.submit is not None:
            self._request_submission()
        else:
            self._enter(TaskState.DONE)

    def _poll_until_available(self):
        """Re-probe stock while out of stock in rush mode.

        No retry ceiling: it waits until the item comes back or the stop event
        is set, which fails the task. Transport errors are retried on the next
        period.
        """
        item = self.item
        if item.status is not StockStatus.UNAVAILABLE:
            return

        if not self.config.auto_rush:
            self.logger.warning(f"{item.status_name or 'Out of stock'} : {item.name}, trying anyway")
            return

        self._enter(TaskState.POLLING)
        while item.status is StockStatus.UNAVAILABLE:
            self.logger.warning(f"{item.status_name or 'Out of stock'} : {item.name}")
            self.sleep(self.config.period)
            if self.stop.is_set():
                raise PurchaseCancelledError(
                    f"stopped polling {item.item_id} after {self.result.polls} checks")
            self.result.polls += 1
            try:
                status, status_name = self.prober.probe(item.item_id)
            except TransportError as e:
                self.logger.warning(f"Stock check for {item.item_id} failed, retrying: {e}")
                continue
            item.update_stock(status, status_name)
            self._report_item()

        self.logger.info(f"{item.item_id} is in stock after {self.result.polls} checks")

    def _purchase(self):
        item = self.item
        link = self.orders.cart_link(item)
        self.logger.info(f"Purchase link: {link}")

        last_error: Optional[Exception] = None
        marker = ""
        try:
            marker = self.orders.add_to_cart(link)
        except RushBuyError as e:
            self.logger.error(f"Purchase of {item.item_id} failed: {e}")
            last_error = e

        count = 0
        if marker:
            if item.quantity > 1:
                try:
                    count = self.orders.set_quantity(item.item_id, item.quantity)
                except RushBuyError as e:
                    self.logger.error(f"Could not set count of {item.item_id} to {item.quantity}: {e}")
                    last_error = e
            else:
                count = 1

        if count <= 0:
            raise last_error or PurchaseFailedError(f"no cart confirmation for {item.item_id}")

        self.result.cart_count = count
        self.purchase_log.info(f"ADDED TO CART: {count} x {item.item_id} ({item.name})")

    def _request_submission(self):
        self._enter(TaskState.SUBMISSION_REQUESTED)
        request = self.submit(SubmissionRequest(item_id=self.item_id))
        submission = request.future.result()

        if not submission.success:
            raise submission.error or PurchaseFailedError(
                f"order submission failed ({submission.code} : {submission.message})")

        self.result.order_id = submission.order_id
        self._enter(TaskState.DONE)

    def _report_item(self):
        if self.board is not None:
            self.board.record_item(self.item, self.result.polls)
