"""
Session handling: cookie store, HTTP transport and QR login
"""

from .cookie_manager import SessionStore
from .transport import HttpTransport
from .authenticator import Authenticator
from .opener import Opener, SystemOpener, LogOpener

__all__ = ['SessionStore', 'HttpTransport', 'Authenticator', 'Opener', 'SystemOpener', 'LogOpener']
