#!/usr/bin/env python3
"""
JingDongBuyer - the three operations a caller needs: login, rush_buy, release
"""
import logging
import pickle
from typing import Dict, List, Optional

from .config import BuyerConfig
from .models import TaskResult
from .monitoring.status_board import StatusBoard
from .purchasing.orchestrator import RushBuyOrchestrator
from .purchasing.order_service import OrderService
from .response_parser import CartDetails
from .session.authenticator import Authenticator
from .session.cookie_manager import SessionStore
from .session.opener import Opener, SystemOpener
from .session.transport import HttpTransport
from .stock_checker import StockProber


class JingDongBuyer:
    """Wires the session, prober and purchasing pipeline around one config.

    Cookies are loaded at construction and persisted by ``release()``; use
    the buyer as a context manager to get that on exit.
    """

    def __init__(self, config: BuyerConfig, opener: Optional[Opener] = None,
                 board: Optional[StatusBoard] = None):
        self.config = config.validate()
        self.logger = logging.getLogger(__name__)

        self.store = SessionStore(config.cookie_file, config.jar_type)
        try:
            self.store.load()
        except (OSError, ValueError, KeyError, pickle.UnpicklingError) as e:
            self.logger.error(f"Failed to load cookies: {e}")
            self.store.clean()

        self.transport = HttpTransport(config, self.store)
        self.authenticator = Authenticator(config, self.transport, self.store,
                                           opener or SystemOpener())
        self.prober = StockProber(config, self.transport)
        self.orders = OrderService(config, self.transport, self.store)
        self.board = board or StatusBoard()
        self.orchestrator = RushBuyOrchestrator(config, self.prober, self.orders, board=self.board)

    def login(self) -> bool:
        return self.authenticator.login()

    def rush_buy(self, items: Dict[str, int]) -> List[TaskResult]:
        return self.orchestrator.rush_buy(items)

    def cart_details(self) -> CartDetails:
        return self.orders.cart_details()

    def release(self):
        try:
            self.store.persist()
        except (OSError, pickle.PicklingError, TypeError) as e:
            self.logger.error(f"Failed to persist cookies: {e}")
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
