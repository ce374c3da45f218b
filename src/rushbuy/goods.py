"""
Goods list parsing for the command line
"""
from typing import Dict

from .errors import ConfigError


def parse_goods(goods: str) -> Dict[str, int]:
    """Parse a comma separated goods list into {item_id: count}.

    Each entry is an item id with an optional ``:count``; a missing count
    means 1. Whitespace around tokens is ignored.

        2567304              -> {"2567304": 1}
        2567304:3            -> {"2567304": 3}
        2567304,3133851:4    -> {"2567304": 1, "3133851": 4}
    """
    result: Dict[str, int] = {}
    if not goods or not goods.strip():
        return result

    for entry in goods.split(","):
        entry = entry.strip()
        if not entry:
            continue

        item_id, sep, count = entry.partition(":")
        item_id = item_id.strip()
        if not item_id:
            raise ConfigError(f"missing goods id in {entry!r}")

        if not sep:
            result[item_id] = 1
            continue

        try:
            quantity = int(count.strip())
        except ValueError:
            raise ConfigError(f"bad count for goods {item_id}: {count!r}")
        if quantity < 1:
            raise ConfigError(f"count for goods {item_id} must be positive, got {quantity}")
        result[item_id] = quantity

    return result
