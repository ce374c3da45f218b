"""
Purchasing pipeline: per-item tasks, the order worker and the orchestrator
"""

from .order_service import OrderService
from .order_worker import OrderSubmissionWorker
from .purchase_task import PurchaseTask
from .orchestrator import RushBuyOrchestrator

__all__ = ['OrderService', 'OrderSubmissionWorker', 'PurchaseTask', 'RushBuyOrchestrator']
