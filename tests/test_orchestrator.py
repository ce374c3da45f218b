"""Tests for the rush buy orchestrator."""

import concurrent.futures
import itertools
import threading
import time

import pytest

from conftest import (
    CART_ADDED_PAGE,
    ITEM_PAGE,
    ORDER_PAGE,
    FakeResponse,
    gbk_json_response,
    json_response,
    stock_payload,
)
from rushbuy.errors import PurchaseCancelledError
from rushbuy.models import TaskState
from rushbuy.monitoring.status_board import StatusBoard
from rushbuy.purchasing.orchestrator import RushBuyOrchestrator
from rushbuy.purchasing.order_service import OrderService
from rushbuy.session.cookie_manager import SessionStore
from rushbuy.stock_checker import StockProber


class SubmitEndpoint:
    """Order endpoint that hands out order ids and records call times"""

    def __init__(self):
        self.times = []
        self._ids = itertools.count(9001)
        self._lock = threading.Lock()

    def __call__(self, call):
        with self._lock:
            self.times.append(time.monotonic())
            return json_response({"success": True, "orderId": next(self._ids)})


@pytest.fixture
def shop(transport, config):
    """Items 100 and 200 in stock, 300 has a broken item page"""
    endpoints = config.endpoints
    for item_id in ("100", "200"):
        transport.add(endpoints.item_detail.format(item_id=item_id),
                      FakeResponse(ITEM_PAGE.format(item_id=item_id).encode("gbk")))
    transport.add(endpoints.item_detail.format(item_id="300"), FakeResponse(b"", status_code=500))

    def stock(call):
        item_id = call["params"]["skuIds"]
        return gbk_json_response(stock_payload(item_id, 33))

    transport.add(endpoints.stock_state, stock)
    transport.add(endpoints.price, json_response([{"id": "J_0", "p": "10.00"}]))
    transport.add("https://cart.jd.com/gate.action", FakeResponse(CART_ADDED_PAGE))
    transport.add(endpoints.order_info, FakeResponse(ORDER_PAGE))
    transport.submit_endpoint = SubmitEndpoint()
    transport.add(endpoints.submit_order, transport.submit_endpoint)
    return transport


def make_orchestrator(config, transport, board=None, **kwargs):
    prober = StockProber(config, transport)
    orders = OrderService(config, transport, SessionStore(None))
    return RushBuyOrchestrator(config, prober, orders, board=board, **kwargs)


def test_empty_input(config, transport):
    assert make_orchestrator(config, transport).rush_buy({}) == []
    assert transport.calls == []


def test_two_items_submit_serially_with_cooldown(shop, config):
    config.auto_submit = True
    config.submit_cooldown = 1.0

    results = make_orchestrator(config, shop).rush_buy({"100": 1, "200": 1})

    assert sorted(r.item_id for r in results) == ["100", "200"]
    assert all(r.succeeded for r in results)
    assert sorted(r.order_id for r in results) == ["9001", "9002"]

    times = shop.submit_endpoint.times
    assert len(times) == 2
    assert times[1] - times[0] >= 1.0


def test_without_auto_submit_no_orders(shop, config):
    results = make_orchestrator(config, shop).rush_buy({"100": 1, "200": 1})

    assert len(results) == 2
    assert all(r.state is TaskState.DONE for r in results)
    assert all(r.order_id is None for r in results)
    assert shop.submit_endpoint.times == []


def test_failing_item_does_not_block_others(shop, config):
    config.auto_submit = True
    board = StatusBoard()

    results = make_orchestrator(config, shop, board=board).rush_buy({"100": 1, "300": 1})
    by_id = {r.item_id: r for r in results}

    assert by_id["100"].succeeded
    assert by_id["100"].order_id == "9001"
    assert by_id["300"].state is TaskState.FAILED
    assert len(shop.submit_endpoint.times) == 1

    summary = board.snapshot()["summary"]
    assert summary == {"total": 2, "done": 1, "failed": 1, "active": 0}


def wait_for(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


@pytest.fixture
def stock_codes(shop, config):
    """Per-item stock codes the stock route answers with, changeable mid-run"""
    codes = {"100": 33, "200": 33}

    def stock(call):
        item_id = call["params"]["skuIds"]
        return gbk_json_response(stock_payload(item_id, codes[item_id]))

    shop.routes[config.endpoints.stock_state].clear()
    shop.add(config.endpoints.stock_state, stock)
    return codes


def test_cancel_ends_polling(shop, config, stock_codes):
    config.auto_rush = True
    stock_codes["100"] = 34
    orchestrator = make_orchestrator(config, shop)
    results = []

    runner = threading.Thread(target=lambda: results.extend(orchestrator.rush_buy({"100": 1})))
    runner.start()
    wait_for(lambda: shop.count(config.endpoints.stock_state) >= 3)

    orchestrator.cancel()
    runner.join(timeout=5)

    assert not runner.is_alive()
    assert results[0].state is TaskState.FAILED
    assert isinstance(results[0].error, PurchaseCancelledError)
    assert TaskState.POLLING in results[0].history


def test_interrupt_stops_polling_and_propagates(shop, config, stock_codes, monkeypatch):
    config.auto_rush = True
    stock_codes["100"] = 34
    board = StatusBoard()

    def interrupted(futures):
        wait_for(lambda: shop.count(config.endpoints.stock_state) >= 2)
        raise KeyboardInterrupt

    monkeypatch.setattr(concurrent.futures, "as_completed", interrupted)

    started = time.monotonic()
    with pytest.raises(KeyboardInterrupt):
        make_orchestrator(config, shop, board=board).rush_buy({"100": 1})

    assert time.monotonic() - started < 5
    assert board.get_item("100")["state"] == "failed"


def test_overlapping_runs_keep_their_own_worker(shop, config, stock_codes):
    config.auto_rush = True
    config.auto_submit = True
    stock_codes["100"] = 34
    orchestrator = make_orchestrator(config, shop)

    # hold the first run on its item page until the second run is polling
    release_first = threading.Event()
    page_200 = config.endpoints.item_detail.format(item_id="200")
    shop.routes[page_200].clear()

    def slow_page(call):
        release_first.wait(5)
        return FakeResponse(ITEM_PAGE.format(item_id="200").encode("gbk"))

    shop.add(page_200, slow_page)

    first, second = [], []
    first_run = threading.Thread(target=lambda: first.extend(orchestrator.rush_buy({"200": 1})))
    second_run = threading.Thread(target=lambda: second.extend(orchestrator.rush_buy({"100": 1})))

    first_run.start()
    wait_for(lambda: shop.count(page_200) == 1)
    second_run.start()
    wait_for(lambda: shop.count(config.endpoints.stock_state) >= 2)

    release_first.set()
    first_run.join(timeout=5)
    assert first[0].succeeded

    stock_codes["100"] = 33
    second_run.join(timeout=5)

    assert not second_run.is_alive()
    assert second[0].succeeded
    assert second[0].order_id is not None
    assert len(shop.submit_endpoint.times) == 2
