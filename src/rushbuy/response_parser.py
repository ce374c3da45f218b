#!/usr/bin/env python3
"""
Response parsing for the JD endpoints

Each endpoint gets a typed result. Anything that does not match the
expected shape raises ProtocolError instead of quietly returning zero values.
"""
import json
from dataclasses import dataclass, field
from typing import Any, List, Optional

from bs4 import BeautifulSoup

from .errors import ProtocolError

LEGACY_ENCODING = "gbk"
BS_PARSER = "html.parser"


@dataclass
class StockInfo:
    code: int
    name: str


@dataclass
class QrCheckResult:
    code: int
    message: str = ""
    ticket: str = ""

    @property
    def confirmed(self) -> bool:
        return self.code == 200 and bool(self.ticket)


@dataclass
class TicketRejection:
    return_code: Optional[int] = None
    url: str = ""


@dataclass
class ItemPage:
    name: str = ""
    link: str = ""


@dataclass
class OrderSummary:
    ware_price: str = ""
    freight: str = ""
    payable: str = ""
    phone: str = ""
    address: str = ""


@dataclass
class CartLine:
    checked: bool
    count: str
    price: str
    total: str
    item_id: str
    name: str


@dataclass
class CartDetails:
    lines: List[CartLine] = field(default_factory=list)
    total_count: str = ""
    total_value: str = ""


@dataclass
class SubmitOrderResult:
    success: bool
    order_id: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None


def decode_legacy(raw: bytes) -> str:
    """Decode a GBK payload (stock and item endpoints)"""
    return raw.decode(LEGACY_ENCODING, errors="replace")


def truncate(text: str, max_len: int = 40) -> str:
    if len(text) > max_len:
        return text[:max_len - 1] + "..."
    return text


def with_scheme(link: str) -> str:
    """Site links are often protocol-relative (//cart.jd.com/...)"""
    if link and not link.startswith(("https:", "http:")):
        return "https:" + link
    return link


def load_json(text, what: str) -> Any:
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError as e:
        raise ProtocolError(f"malformed {what} response: {e}: {text[:200]!r}")


def unwrap_jsonp(text: str) -> str:
    """Strip a ``callback(...)`` wrapper"""
    start = text.find("(")
    end = text.rfind(")")
    if start < 0 or end <= start:
        raise ProtocolError(f"not a JSONP payload: {text[:200]!r}")
    return text[start + 1:end]


def parse_stock(raw: bytes, item_id: str) -> StockInfo:
    """
    {"3133811":{"StockState":33,"StockStateName":"现货","IsPurchase":true,...}}
    """
    data = load_json(decode_legacy(raw), "stock")
    if not isinstance(data, dict) or not isinstance(data.get(item_id), dict):
        raise ProtocolError(f"no stock entry for {item_id}")

    entry = data[item_id]
    try:
        code = int(entry["StockState"])
    except (KeyError, TypeError, ValueError):
        raise ProtocolError(f"stock entry for {item_id} has no usable StockState: {entry!r}")
    return StockInfo(code=code, name=str(entry.get("StockStateName") or ""))


def parse_price(raw: bytes) -> str:
    """
    [{"id":"J_5105046","p":"1999.00","m":"9999.00","op":"1999.00"}]
    """
    data = load_json(raw, "price")
    if not isinstance(data, list) or not data or not isinstance(data[0], dict) or "p" not in data[0]:
        raise ProtocolError(f"unexpected price payload: {data!r}")
    return str(data[0]["p"])


def parse_qr_check(text: str) -> QrCheckResult:
    """
    jQuery123456({"code" : 201, "msg" : "二维码未扫描 ，请扫描二维码"})
    jQuery123456({"code" : 200, "ticket" : "AAEAM..."})
    """
    data = load_json(unwrap_jsonp(text), "QR check")
    if not isinstance(data, dict) or "code" not in data:
        raise ProtocolError(f"QR check payload has no code: {data!r}")
    try:
        code = int(data["code"])
    except (TypeError, ValueError):
        raise ProtocolError(f"QR check code is not a number: {data['code']!r}")
    return QrCheckResult(
        code=code,
        message=str(data.get("msg") or ""),
        ticket=str(data.get("ticket") or ""),
    )


def parse_ticket_rejection(raw: bytes) -> TicketRejection:
    """Body returned when ticket validation is refused"""
    data = load_json(raw, "ticket validation")
    if not isinstance(data, dict):
        raise ProtocolError(f"unexpected ticket validation payload: {data!r}")
    return TicketRejection(
        return_code=data.get("returnCode"),
        url=with_scheme(str(data.get("url") or "")),
    )


def _soup(raw, encoding: str = "utf-8") -> BeautifulSoup:
    if isinstance(raw, bytes):
        raw = raw.decode(encoding, errors="replace")
    return BeautifulSoup(raw, BS_PARSER)


def _text(node) -> str:
    return node.get_text().strip(" \t\n\r") if node is not None else ""


def parse_item_page(raw: bytes, max_name_length: int = 40) -> ItemPage:
    soup = _soup(raw, LEGACY_ENCODING)

    link = ""
    anchor = soup.select_one("a#InitCartUrl")
    if anchor is not None and anchor.get("href"):
        link = with_scheme(anchor["href"].strip())

    name = truncate(_text(soup.select_one("div.sku-name")), max_name_length)
    if not name and not link:
        raise ProtocolError("item page has neither a name nor a cart link")
    return ItemPage(name=name, link=link)


def parse_cart_added(raw: bytes) -> str:
    """Success marker on the add-to-cart result page, empty when missing"""
    soup = _soup(raw)
    marker = _text(soup.select_one("h3.ftx-02"))
    if not marker:
        marker = _text(soup.select_one("div.p-name a"))
    return marker


def parse_change_count(raw: bytes) -> int:
    data = load_json(raw, "change count")
    if not isinstance(data, dict) or "pcount" not in data:
        raise ProtocolError(f"change count payload has no pcount: {data!r}")
    try:
        return int(data["pcount"])
    except (TypeError, ValueError):
        raise ProtocolError(f"pcount is not a number: {data['pcount']!r}")


def parse_order_summary(raw: bytes) -> OrderSummary:
    soup = _soup(raw)
    summary = OrderSummary()

    order = soup.select_one("div.order-summary")
    if order is not None:
        summary.ware_price = _text(order.select_one("#warePriceId"))
        summary.freight = _text(order.select_one("#freightPriceId"))

    foot = soup.select_one("div.trade-foot")
    if foot is not None:
        summary.payable = _text(foot.select_one("#sumPayPriceId"))
        summary.phone = _text(foot.select_one("#sendMobile"))
        summary.address = _text(foot.select_one("#sendAddr"))

    if order is None and foot is None:
        raise ProtocolError("order page has no summary section")
    return summary


def _item_id_from_href(href: str) -> str:
    # http://item.jd.com/2967929.html
    tail = href.rsplit("/", 1)[-1]
    return tail.split(".", 1)[0]


def parse_cart_page(raw: bytes, max_name_length: int = 40) -> CartDetails:
    soup = _soup(raw)
    details = CartDetails()

    for row in soup.select("div.item-form"):
        checkbox = row.select_one("div.cart-checkbox input")
        quantity = row.select_one("div.quantity-form input")
        anchor = row.select_one("div.p-img a")
        details.lines.append(CartLine(
            checked=checkbox is not None and checkbox.has_attr("checked"),
            count=quantity.get("value", "0") if quantity is not None else "0",
            price=_text(row.select_one("div.p-price strong")),
            total=_text(row.select_one("div.p-sum strong")),
            item_id=_item_id_from_href(anchor.get("href", "")) if anchor is not None else "",
            name=truncate(_text(row.select_one("div.p-name a")), max_name_length),
        ))

    details.total_count = _text(soup.select_one("div.amount-sum em"))
    details.total_value = _text(soup.select_one("span.sumPrice em"))
    return details


def parse_submit_result(raw: bytes) -> SubmitOrderResult:
    """
    {"success":true,"orderId":71234567890,...}
    {"success":false,"resultCode":600158,"message":"..."}
    """
    data = load_json(raw, "submit order")
    if not isinstance(data, dict) or "success" not in data:
        raise ProtocolError(f"submit order payload has no success flag: {data!r}")

    if data["success"] is True:
        order_id = data.get("orderId")
        if order_id in (None, ""):
            raise ProtocolError("order submitted but no orderId returned")
        return SubmitOrderResult(success=True, order_id=str(order_id))

    code = data.get("resultCode")
    return SubmitOrderResult(
        success=False,
        code=str(code) if code is not None else None,
        message=data.get("message"),
    )
