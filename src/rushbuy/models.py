"""
Data model shared by the stock checker, purchase tasks and order worker
"""
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class StockStatus(Enum):
    UNKNOWN = "unknown"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class TaskState(Enum):
    PROBING = "probing"
    POLLING = "polling"
    PURCHASING = "purchasing"
    ORDER_REVIEW = "order-review"
    SUBMISSION_REQUESTED = "submission-requested"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (TaskState.DONE, TaskState.FAILED)


@dataclass
class ItemTarget:
    """One good the user wants to buy"""
    item_id: str
    quantity: int = 1
    price: str = ""
    status: StockStatus = StockStatus.UNKNOWN
    status_name: str = ""
    name: str = ""
    link: str = ""

    def update_stock(self, status: StockStatus, status_name: str = ""):
        """Record a probe result.

        unknown -> available|unavailable, unavailable -> unavailable|available.
        Nothing leaves available and nothing goes back to unknown.
        """
        if status is StockStatus.UNKNOWN:
            if self.status is not StockStatus.UNKNOWN:
                raise ValueError(f"stock status of {self.item_id} cannot regress to unknown")
            return
        if self.status is StockStatus.AVAILABLE and status is not StockStatus.AVAILABLE:
            raise ValueError(f"stock status of {self.item_id} cannot leave available")
        self.status = status
        self.status_name = status_name

    @property
    def available(self) -> bool:
        return self.status is StockStatus.AVAILABLE


@dataclass
class SubmissionResult:
    success: bool
    order_id: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None
    started_at: float = 0.0
    finished_at: float = 0.0
    error: Optional[Exception] = None


@dataclass
class SubmissionRequest:
    """Ask the order worker to finalize the current order.

    The order endpoint works on the session's cart, so the request carries no
    item payload; ``item_id`` is only used for logging.
    """
    item_id: Optional[str] = None
    future: Future = field(default_factory=Future)
    requested_at: float = field(default_factory=time.monotonic)


@dataclass
class TaskResult:
    """Completion signal every purchase task hands back to the orchestrator"""
    item_id: str
    state: TaskState
    history: List[TaskState] = field(default_factory=list)
    polls: int = 0
    cart_count: int = 0
    name: str = ""
    order_id: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.state is TaskState.DONE
