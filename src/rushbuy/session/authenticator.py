#!/usr/bin/env python3
"""
QR code login for JD.com

The saved cookies are tried first. When they no longer pass the user-verify
check the jar is cleared and the four step QR handshake runs:

    1. load the login page (sets the handshake cookies)
    2. download the QR image and open it for the user
    3. poll the check endpoint until the phone app confirms the scan
    4. trade the returned ticket for a full session
"""
import logging
import mimetypes
import time
from pathlib import Path
from typing import Callable

from ..config import BuyerConfig
from ..errors import AuthTimeoutError, ManualVerificationRequired, ProtocolError, TransportError
from ..response_parser import parse_qr_check, parse_ticket_rejection
from .cookie_manager import SessionStore
from .opener import Opener
from .transport import HttpTransport, timestamp_ms

QR_APP_ID = "133"
QR_SIZE = "147"
QR_TOKEN_COOKIE = "wlfstk_smdl"
JSONP_CALLBACK = "jQuery123456"


class Authenticator:
    """Runs the login state machine on the shared transport"""

    def __init__(self, config: BuyerConfig, transport: HttpTransport, store: SessionStore,
                 opener: Opener, sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.endpoints = config.endpoints
        self.transport = transport
        self.store = store
        self.opener = opener
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)
        self.ticket = ""

    def login(self) -> bool:
        """Make sure the session is authenticated.

        Returns True on success. Raises TransportError, ProtocolError,
        AuthTimeoutError or ManualVerificationRequired otherwise.
        """
        if self.is_logged_in():
            self.logger.info("Saved session is still valid, no login needed")
            return True

        self.logger.info("Open the JD mobile app and get ready to scan the QR code")
        self.store.clean()
        self.ticket = ""

        self.load_login_page()
        qr_path = self.fetch_qr_code()
        try:
            self.opener.open(str(qr_path))
        except OSError as e:
            self.logger.warning(f"Could not open QR image, open {qr_path} yourself: {e}")

        self.ticket = self.wait_for_scan()
        self.validate_ticket(self.ticket)
        self.logger.info("Login succeeded")
        return True

    def is_logged_in(self) -> bool:
        """Cheap check: the verify page answers 200 only to a logged in session"""
        try:
            response = self.transport.get(self.endpoints.user_verify, allow_redirects=False)
        except TransportError as e:
            self.logger.info(f"Login required: {e}")
            return False

        if response.status_code != 200:
            self.logger.info(f"Login required (verify check returned {response.status_code})")
            return False
        return True

    def load_login_page(self):
        self.transport.get(self.endpoints.login_page)

    def fetch_qr_code(self) -> Path:
        response = self.transport.get(self.endpoints.qr_show, params={
            'appid': QR_APP_ID,
            'size': QR_SIZE,
            't': timestamp_ms(),
        })
        if response.status_code != 200:
            raise ProtocolError(f"QR image request returned HTTP {response.status_code}")
        if not response.content:
            raise ProtocolError("QR image response was empty")

        content_type = response.headers.get('Content-Type', '').split(';')[0].strip()
        extension = mimetypes.guess_extension(content_type) or '.png'

        path = Path(self.config.qr_code_file + extension).resolve()
        path.write_bytes(response.content)
        self.logger.info(f"QR image saved to {path}")
        return path

    def wait_for_scan(self) -> str:
        """Poll until the scan is confirmed and return the ticket"""
        params = {
            'callback': JSONP_CALLBACK,
            'appid': QR_APP_ID,
            'token': self.store.get(QR_TOKEN_COOKIE),
        }
        headers = {'Referer': self.endpoints.login_page}

        retries = self.config.qr_poll_retries
        for attempt in range(1, retries + 1):
            params['_'] = timestamp_ms()
            response = self.transport.get(self.endpoints.qr_check, params=params, headers=headers)

            if response.status_code == 200:
                result = parse_qr_check(response.text)
                if result.confirmed:
                    self.logger.info("QR scan confirmed")
                    return result.ticket
                self.logger.info(f"[{attempt}/{retries}] {result.code} : {result.message}")
            else:
                self.logger.info(f"[{attempt}/{retries}] QR check returned HTTP {response.status_code}")

            if attempt < retries:
                self.sleep(self.config.qr_poll_interval)

        raise AuthTimeoutError(f"QR scan not confirmed after {retries} checks")

    def validate_ticket(self, ticket: str):
        response = self.transport.get(self.endpoints.qr_validate, params={'t': ticket})

        # No P3P header means JD considers the login risky and wants a manual check.
        # url: https://safe.jd.com/dangerousVerify/index.action?username=...
        if not response.headers.get('P3P'):
            rejection = parse_ticket_rejection(response.content)
            if rejection.url:
                self.logger.error(f"Security verification required: {rejection.url}")
                self._open_quietly(rejection.url)
                raise ManualVerificationRequired(rejection.url)
            raise ProtocolError(f"ticket validation refused (returnCode={rejection.return_code})")

        if response.status_code != 200:
            raise ProtocolError(f"ticket validation returned HTTP {response.status_code}")

        self.logger.debug(f"P3P: {response.headers.get('P3P')}")

    def _open_quietly(self, target: str):
        try:
            self.opener.open(target)
        except OSError as e:
            self.logger.warning(f"Could not open {target}: {e}")
