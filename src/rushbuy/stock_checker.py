"""
Stock, price and item detail lookups for one item id
"""
import logging
from typing import Tuple

from .config import BuyerConfig, StockPolicy
from .errors import ProtocolError, RushBuyError
from .models import ItemTarget, StockStatus
from .response_parser import parse_item_page, parse_price, parse_stock
from .session.transport import HttpTransport, timestamp_ms


def classify_stock(code: int, policy: StockPolicy) -> StockStatus:
    """Map the site's stock code onto availability.

    33 = on sale, 34 = out of stock. Other codes (e.g. "in procurement")
    usually still accept orders, so they follow ``unknown_is_available``.
    """
    if code in policy.available_codes:
        return StockStatus.AVAILABLE
    if code in policy.unavailable_codes:
        return StockStatus.UNAVAILABLE
    return StockStatus.AVAILABLE if policy.unknown_is_available else StockStatus.UNAVAILABLE


class StockProber:
    def __init__(self, config: BuyerConfig, transport: HttpTransport):
        self.config = config
        self.endpoints = config.endpoints
        self.transport = transport
        self.logger = logging.getLogger(__name__)

    def _fetch(self, url: str, params=None, what: str = "") -> bytes:
        response = self.transport.get(url, params=params)
        if response.status_code != 200:
            raise ProtocolError(f"{what or url} returned HTTP {response.status_code}")
        return response.content

    def probe(self, item_id: str) -> Tuple[StockStatus, str]:
        """Current stock status and the site's display text for it"""
        raw = self._fetch(self.endpoints.stock_state, params={
            'type': 'getstocks',
            'skuIds': item_id,
            'area': self.config.ship_area,
            '_': timestamp_ms(),
        }, what="stock query")

        info = parse_stock(raw, item_id)
        status = classify_stock(info.code, self.config.stock_policy)
        self.logger.debug(f"Stock {item_id}: {info.code} {info.name} -> {status.value}")
        return status, info.name

    def price(self, item_id: str) -> str:
        raw = self._fetch(self.endpoints.price, params={
            'type': '1',
            'skuIds': 'J_' + item_id,
            'pduid': timestamp_ms(),
        }, what="price query")
        return parse_price(raw)

    def detail(self, item_id: str, quantity: int = 1) -> ItemTarget:
        """Item page (name, cart link) plus price and stock.

        Item page and stock failures propagate; a missing price is only logged.
        """
        raw = self._fetch(self.endpoints.item_detail.format(item_id=item_id), what="item page")
        page = parse_item_page(raw, self.config.max_name_length)

        item = ItemTarget(item_id=item_id, quantity=quantity, name=page.name, link=page.link)

        try:
            item.price = self.price(item_id)
        except RushBuyError as e:
            self.logger.warning(f"Could not get price for {item_id}: {e}")

        status, status_name = self.probe(item_id)
        item.update_stock(status, status_name)

        self.logger.info(f"Item {item.item_id}: stock {item.status_name or item.status.value}, "
                         f"price {item.price or '?'}, {item.name}")
        return item
