"""Pytest fixtures for rushbuy tests."""

import json
from collections import defaultdict, deque

import pytest

from rushbuy.config import BuyerConfig


class FakeResponse:
    """Just enough of requests.Response for the parsers and components."""

    def __init__(self, content=b"", status_code=200, headers=None, url=""):
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.content = content
        self.status_code = status_code
        self.headers = headers or {}
        self.url = url

    @property
    def text(self):
        return self.content.decode("utf-8", errors="replace")


def json_response(data, **kwargs):
    return FakeResponse(json.dumps(data, ensure_ascii=False).encode("utf-8"), **kwargs)


def gbk_json_response(data, **kwargs):
    return FakeResponse(json.dumps(data, ensure_ascii=False).encode("gbk"), **kwargs)


class FakeTransport:
    """Stands in for HttpTransport.

    Routes are keyed by URL without query string. Each route holds a queue
    of responses (the last one repeats) or a callable taking the call dict.
    Every call is recorded in ``calls``.
    """

    def __init__(self):
        self.routes = defaultdict(deque)
        self.calls = []

    def add(self, url, *responses):
        self.routes[url].extend(responses)
        return self

    def count(self, url):
        return sum(1 for call in self.calls if call["url"].split("?")[0] == url)

    def request(self, method, url, params=None, headers=None, allow_redirects=True):
        call = {
            "method": method,
            "url": url,
            "params": dict(params or {}),
            "headers": dict(headers or {}),
            "allow_redirects": allow_redirects,
        }
        self.calls.append(call)

        route = self.routes.get(url.split("?")[0])
        if not route:
            raise AssertionError(f"unexpected request {method} {url}")

        handler = route[0] if len(route) == 1 else route.popleft()
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(call)
        return handler

    def get(self, url, params=None, **kwargs):
        return self.request("GET", url, params=params, **kwargs)

    def post(self, url, params=None, **kwargs):
        return self.request("POST", url, params=params, **kwargs)

    def close(self):
        pass


class RecordingOpener:
    def __init__(self, fail=False):
        self.opened = []
        self.fail = fail

    def open(self, target):
        self.opened.append(target)
        if self.fail:
            raise OSError("no viewer")


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


ITEM_PAGE = """
<html><body>
  <div class="sku-name">
      Apple iPhone 15 Pro 256GB 黑色
  </div>
  <a id="InitCartUrl" href="//cart.jd.com/gate.action?pid={item_id}&pcount=1&ptype=1">add</a>
</body></html>
"""

CART_ADDED_PAGE = """
<html><body><div class="success"><h3 class="ftx-02">商品已成功加入购物车！</h3></div></body></html>
"""

ORDER_PAGE = """
<html><body>
  <div class="order-summary">
    <span id="warePriceId"> 7999.00 </span>
    <span id="freightPriceId">0.00</span>
  </div>
  <div class="trade-foot">
    <span id="sumPayPriceId">7999.00</span>
    <span id="sendMobile">138****0000</span>
    <span id="sendAddr">Beijing Chaoyang</span>
  </div>
</body></html>
"""

CART_PAGE = """
<html><body>
  <div class="item-form">
    <div class="cart-checkbox"><input type="checkbox" checked="checked"/></div>
    <div class="p-img"><a href="//item.jd.com/2567304.html">img</a></div>
    <div class="p-name"><a> Kindle Paperwhite </a></div>
    <div class="p-price"><strong>958.00</strong></div>
    <div class="quantity-form"><input value="2"/></div>
    <div class="p-sum"><strong>1916.00</strong></div>
  </div>
  <div class="item-form">
    <div class="cart-checkbox"><input type="checkbox"/></div>
    <div class="p-img"><a href="//item.jd.com/3133851.html">img</a></div>
    <div class="p-name"><a>USB cable</a></div>
    <div class="p-price"><strong>19.90</strong></div>
    <div class="quantity-form"><input value="1"/></div>
    <div class="p-sum"><strong>19.90</strong></div>
  </div>
  <div class="amount-sum"><em>3</em></div>
  <span class="sumPrice"><em>1935.90</em></span>
</body></html>
"""


def stock_payload(item_id, code, name="现货"):
    return {item_id: {"StockState": code, "StockStateName": name, "IsPurchase": True}}


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def opener():
    return RecordingOpener()


@pytest.fixture
def config(tmp_path):
    return BuyerConfig(
        jar_type="memory",
        cookie_file="",
        qr_code_file=str(tmp_path / "jd.qr"),
        log_dir=str(tmp_path / "logs"),
        period=0.1,
        submit_cooldown=0.0,
    )


@pytest.fixture
def site(transport, config):
    """Transport pre-wired with a happy path for one item (100)."""
    endpoints = config.endpoints
    transport.add(endpoints.item_detail.format(item_id="100"),
                  FakeResponse(ITEM_PAGE.format(item_id="100").encode("gbk")))
    transport.add(endpoints.price, json_response([{"id": "J_100", "p": "7999.00"}]))
    transport.add(endpoints.stock_state, gbk_json_response(stock_payload("100", 33)))
    transport.add("https://cart.jd.com/gate.action", FakeResponse(CART_ADDED_PAGE))
    transport.add(endpoints.order_info, FakeResponse(ORDER_PAGE))
    return transport
