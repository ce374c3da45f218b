"""
Error taxonomy for the purchase core
"""
from typing import Optional


class RushBuyError(Exception):
    """Base class for every error raised by rushbuy"""


class ConfigError(RushBuyError):
    """Invalid or unreadable configuration"""


class TransportError(RushBuyError):
    """Network or connection failure talking to the site"""


class ProtocolError(RushBuyError):
    """Response did not have the expected shape"""


class AuthTimeoutError(RushBuyError):
    """QR confirmation was not seen within the poll budget"""


class ManualVerificationRequired(RushBuyError):
    """The site wants a human to pass an extra verification page"""

    def __init__(self, url: str):
        super().__init__(f"manual verification required: {url}")
        self.url = url


class PurchaseFailedError(RushBuyError):
    """Add-to-cart returned no confirmation"""


class PurchaseCancelledError(RushBuyError):
    """The rush was stopped before the task finished"""


class SubmitOrderError(ProtocolError):
    """Order submission was answered with a failure code"""

    def __init__(self, code: Optional[str], message: Optional[str]):
        super().__init__(f"failed to submit order ({code} : {message})")
        self.code = code
        self.message = message
