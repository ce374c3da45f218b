#!/usr/bin/env python3
"""
Cart and order endpoints: add to cart, change count, order summary, submit
"""
import logging
import random
from urllib.parse import urlencode

from ..config import BuyerConfig
from ..errors import ProtocolError, SubmitOrderError
from ..models import ItemTarget
from ..response_parser import (
    CartDetails,
    OrderSummary,
    parse_cart_added,
    parse_cart_page,
    parse_change_count,
    parse_order_summary,
    parse_submit_result,
)
from ..session.cookie_manager import SessionStore
from ..session.transport import HttpTransport, timestamp_ms

SEPARATOR = "+" * 60


class OrderService:
    def __init__(self, config: BuyerConfig, transport: HttpTransport, store: SessionStore):
        self.config = config
        self.endpoints = config.endpoints
        self.transport = transport
        self.store = store
        self.logger = logging.getLogger(__name__)
        self.purchase_log = logging.getLogger('purchases')

    def _content(self, response, what: str) -> bytes:
        if response.status_code != 200:
            raise ProtocolError(f"{what} returned HTTP {response.status_code}")
        return response.content

    def cart_link(self, item: ItemTarget) -> str:
        """Canonical link from the item page, or a direct gate link when a
        count other than 1 is wanted or the page had none"""
        if item.link and item.quantity == 1:
            return item.link
        query = urlencode({'pid': item.item_id, 'pcount': item.quantity, 'ptype': 1})
        return f"{self.endpoints.add_to_cart}?{query}"

    def add_to_cart(self, link: str) -> str:
        """Open the purchase link, return the confirmation marker ('' when absent)"""
        response = self.transport.get(link)
        return parse_cart_added(self._content(response, "add to cart"))

    def set_quantity(self, item_id: str, count: int) -> int:
        """Set the cart count for an item, returns the count the cart reports"""
        response = self.transport.post(self.endpoints.change_count, params={
            'venderId': '8888',
            'targetId': '0',
            'promoID': '0',
            'outSkus': '',
            'ptype': '1',
            'pid': item_id,
            'pcount': str(count),
            'random': f"{random.random():.16f}",
            'locationId': self.config.ship_area,
        })
        return parse_change_count(self._content(response, "change count"))

    def order_summary(self) -> OrderSummary:
        response = self.transport.get(self.endpoints.order_info, params={'rid': timestamp_ms()})
        summary = parse_order_summary(self._content(response, "order page"))

        self.logger.info(SEPARATOR)
        self.logger.info("Order details>")
        self.logger.info(f"Goods total: {summary.ware_price}")
        self.logger.info(f"Shipping:    {summary.freight}")
        self.logger.info(f"Payable:     {summary.payable}")
        if summary.phone:
            self.logger.info(summary.phone)
        if summary.address:
            self.logger.info(summary.address)
        return summary

    def submit_order(self) -> str:
        """Submit the current order. Returns the order id or raises SubmitOrderError."""
        self.logger.info(SEPARATOR)
        self.logger.info("Submitting order>")

        response = self.transport.post(self.endpoints.submit_order, params={
            'overseaPurchaseCookies': '',
            'submitOrderParam.fp': '',
            'submitOrderParam.eid': '',
            'submitOrderParam.btSupport': '1',
            'submitOrderParam.sopNotPutInvoice': 'false',
            'submitOrderParam.ignorePriceChange': '0',
            'submitOrderParam.trackID': self.store.get('TrackID'),
        })
        result = parse_submit_result(self._content(response, "submit order"))

        if result.success:
            self.purchase_log.info(f"ORDER PLACED: {result.order_id}")
            return result.order_id

        self.purchase_log.error(f"ORDER FAILED: {result.code} : {result.message}")
        raise SubmitOrderError(result.code, result.message)

    def cart_details(self) -> CartDetails:
        response = self.transport.get(self.endpoints.cart_info)
        details = parse_cart_page(self._content(response, "cart page"), self.config.max_name_length)

        self.logger.info(SEPARATOR)
        self.logger.info("Cart details>")
        self.logger.info(f"{'Buy':<6}{'Count':<6}{'Price':<10}{'Total':<10}{'ID':<12}Name")
        for line in details.lines:
            check = " +" if line.checked else " -"
            self.logger.info(f"{check:<6}{line.count:<6}{line.price:<10}{line.total:<10}{line.item_id:<12}{line.name}")
        self.logger.info(f"Items: {details.total_count}")
        self.logger.info(f"Total: {details.total_value}")
        return details
