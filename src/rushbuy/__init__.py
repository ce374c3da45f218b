"""
rushbuy - automated JD.com purchasing

QR login, stock polling with rush mode, concurrent add-to-cart and a single
serialized order submission worker.
"""

from .buyer import JingDongBuyer
from .config import BuyerConfig, Endpoints, StockPolicy, load_config, setup_logging
from .errors import (
    AuthTimeoutError,
    ConfigError,
    ManualVerificationRequired,
    ProtocolError,
    PurchaseCancelledError,
    PurchaseFailedError,
    RushBuyError,
    SubmitOrderError,
    TransportError,
)
from .goods import parse_goods
from .models import ItemTarget, StockStatus, TaskResult, TaskState

__version__ = "0.1.0"

__all__ = [
    'JingDongBuyer', 'BuyerConfig', 'Endpoints', 'StockPolicy', 'load_config', 'setup_logging',
    'AuthTimeoutError', 'ConfigError', 'ManualVerificationRequired', 'ProtocolError',
    'PurchaseCancelledError', 'PurchaseFailedError', 'RushBuyError', 'SubmitOrderError', 'TransportError',
    'parse_goods', 'ItemTarget', 'StockStatus', 'TaskResult', 'TaskState',
]
