"""
Configuration for the rush buyer

Everything the components need is carried by one BuyerConfig that is handed
to each of them at construction. Values come from the dataclass defaults,
then an optional JSON file, then command line overrides.
"""
import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .errors import ConfigError

AREA_BEIJING = "1_72_2799_0"

JAR_TYPES = ("memory", "json", "pickle")


def _default_headers() -> Dict[str, str]:
    return {
        "User-Agent": "Chrome/51.0.2704.103",
        "Content-Type": "application/json",
        "Connection": "keep-alive",
        "Accept-Encoding": "gzip, deflate",
        "Accept-Language": "zh-CN,zh;q=0.8",
    }


@dataclass
class Endpoints:
    """Site URLs used by the core. Exact values are site specific."""
    login_page: str = "https://passport.jd.com/new/login.aspx"
    qr_show: str = "https://qr.m.jd.com/show"
    qr_check: str = "https://qr.m.jd.com/check"
    qr_validate: str = "https://passport.jd.com/uc/qrCodeTicketValidation"
    user_verify: str = "http://home.jd.com/getUserVerifyRight.action"
    stock_state: str = "https://c0.3.cn/stocks"
    item_detail: str = "http://item.jd.com/{item_id}.html"
    price: str = "http://p.3.cn/prices/mgets"
    add_to_cart: str = "https://cart.jd.com/gate.action"
    change_count: str = "http://cart.jd.com/changeNum.action"
    cart_info: str = "https://cart.jd.com/cart.action"
    order_info: str = "http://trade.jd.com/shopping/order/getOrderInfo.action"
    submit_order: str = "http://trade.jd.com/shopping/order/submitOrder.action"


@dataclass
class StockPolicy:
    """Maps the site's numeric stock codes onto availability.

    Codes listed in neither tuple fall back to ``unknown_is_available``; the
    site reports some "in procurement" states that still accept orders.
    """
    available_codes: Tuple[int, ...] = (33,)
    unavailable_codes: Tuple[int, ...] = (34,)
    unknown_is_available: bool = True


@dataclass
class BuyerConfig:
    ship_area: str = AREA_BEIJING
    period: float = 0.5                 # seconds between re-probes in rush mode
    auto_rush: bool = False
    auto_submit: bool = False

    cookie_file: str = "jd.cookies"
    jar_type: str = "pickle"
    qr_code_file: str = "jd.qr"

    request_timeout: float = 60.0
    qr_poll_retries: int = 50
    qr_poll_interval: float = 3.0
    submit_cooldown: float = 1.0
    max_name_length: int = 40

    log_dir: str = "logs"
    log_level: str = "INFO"

    headers: Dict[str, str] = field(default_factory=_default_headers)
    endpoints: Endpoints = field(default_factory=Endpoints)
    stock_policy: StockPolicy = field(default_factory=StockPolicy)
    products: Dict[str, int] = field(default_factory=dict)

    def validate(self):
        if self.jar_type not in JAR_TYPES:
            raise ConfigError(f"unknown jar type {self.jar_type!r}, expected one of {JAR_TYPES}")
        if self.period < 0:
            raise ConfigError("period must not be negative")
        if self.qr_poll_retries < 1:
            raise ConfigError("qr_poll_retries must be at least 1")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        for item_id, count in self.products.items():
            if count < 1:
                raise ConfigError(f"product {item_id} has non-positive count {count}")
        return self

    def with_overrides(self, **overrides) -> "BuyerConfig":
        """Copy with the given non-None fields replaced"""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validate()


def _as_bool(value) -> bool:
    """JSON booleans, plus the usual spellings when written as strings"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "on", "1"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "off", "0"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


# JSON key -> (section, BuyerConfig field, converter)
_SETTINGS_MAP = {
    ("purchase", "ship_area"): ("ship_area", str),
    ("purchase", "period_ms"): ("period", lambda v: float(v) / 1000.0),
    ("purchase", "rush"): ("auto_rush", _as_bool),
    ("purchase", "submit_order"): ("auto_submit", _as_bool),
    ("purchase", "submit_cooldown_seconds"): ("submit_cooldown", float),
    ("session", "cookie_file"): ("cookie_file", str),
    ("session", "jar_type"): ("jar_type", str),
    ("login", "qr_code_file"): ("qr_code_file", str),
    ("login", "poll_retries"): ("qr_poll_retries", int),
    ("login", "poll_interval_seconds"): ("qr_poll_interval", float),
    ("http", "timeout_seconds"): ("request_timeout", float),
    ("logging", "level"): ("log_level", str),
    ("logging", "log_dir"): ("log_dir", str),
}


def _convert(name: str, convert, value):
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"bad value for {name}: {value!r} ({e})")


def _section(data: Dict, key: str) -> Dict:
    section = data.get(key, {})
    if not isinstance(section, dict):
        raise ConfigError(f"{key} must be an object, got {type(section).__name__}")
    return section


def _parse_products(entries) -> Dict[str, int]:
    if not isinstance(entries, list):
        raise ConfigError(f"products must be a list, got {type(entries).__name__}")

    products = {}
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigError(f"bad product entry {entry!r}")
        if not _convert("products.enabled", _as_bool, entry.get("enabled", True)):
            continue
        try:
            products[str(entry["id"]).strip()] = int(entry.get("count", 1))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"bad product entry {entry!r}: {e}")
    return products


def _codes(values) -> Tuple[int, ...]:
    return tuple(int(c) for c in values)


def _parse_stock_policy(stock: Dict) -> StockPolicy:
    return StockPolicy(
        available_codes=_convert("stock.available_codes", _codes, stock.get("available_codes", (33,))),
        unavailable_codes=_convert("stock.unavailable_codes", _codes, stock.get("unavailable_codes", (34,))),
        unknown_is_available=_convert("stock.unknown_is_available", _as_bool,
                                      stock.get("unknown_is_available", True)),
    )


def load_config(config_path: Optional[str] = None) -> BuyerConfig:
    """Load configuration from JSON, falling back to defaults when no file is given"""
    config = BuyerConfig()
    if not config_path:
        return config

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"failed to read config {path}: {e}")
    if not isinstance(raw, dict):
        raise ConfigError(f"config {path} must hold a JSON object")

    logger = logging.getLogger(__name__)
    settings = _section(raw, "settings")
    changes: Dict[str, Any] = {}

    for section in settings:
        if section in ("http", "stock"):
            continue
        for key, value in _section(settings, section).items():
            target = _SETTINGS_MAP.get((section, key))
            if target is None:
                logger.warning(f"Ignoring unknown setting {section}.{key}")
                continue
            name, convert = target
            changes[name] = _convert(f"{section}.{key}", convert, value)

    http = _section(settings, "http")
    if "timeout_seconds" in http:
        changes["request_timeout"] = _convert("http.timeout_seconds", float, http["timeout_seconds"])
    if "headers" in http:
        headers = _default_headers()
        headers.update(_section(http, "headers"))
        changes["headers"] = headers

    stock = _section(settings, "stock")
    if stock:
        changes["stock_policy"] = _parse_stock_policy(stock)

    if "endpoints" in raw:
        try:
            changes["endpoints"] = Endpoints(**_section(raw, "endpoints"))
        except TypeError as e:
            raise ConfigError(f"bad endpoints section: {e}")

    if "products" in raw:
        changes["products"] = _parse_products(raw["products"])

    return replace(config, **changes).validate()


def setup_logging(log_dir: str = "logs", level: str = "INFO"):
    """Console + file logging, plus a separate purchases log"""
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_path / 'rushbuy.log', encoding='utf-8'),
            logging.StreamHandler()
        ]
    )

    # Purchase logger (separate file)
    purchase_logger = logging.getLogger('purchases')
    if not purchase_logger.handlers:
        purchase_handler = logging.FileHandler(log_path / 'purchases.log', encoding='utf-8')
        purchase_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
        )
        purchase_logger.addHandler(purchase_handler)
    purchase_logger.setLevel(logging.INFO)
