#!/usr/bin/env python3
"""
Thread-safe status storage shared between purchase tasks and the dashboard
"""
import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from ..models import ItemTarget, TaskResult, TaskState


class StatusBoard:
    """Latest state of every purchase task, keyed by item id"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._items: Dict[str, Dict] = {}
        self._started: Optional[datetime] = None

    def _entry(self, item_id: str) -> Dict:
        entry = self._items.get(item_id)
        if entry is None:
            entry = {
                'item_id': item_id,
                'state': None,
                'history': [],
                'name': '',
                'price': '',
                'stock': '',
                'polls': 0,
                'order_id': None,
                'error': None,
                'updated': None,
            }
            self._items[item_id] = entry
        return entry

    def start_run(self, item_ids):
        with self._lock:
            self._items.clear()
            self._started = datetime.now()
            for item_id in item_ids:
                self._entry(item_id)

    def record_state(self, item_id: str, state: TaskState):
        with self._lock:
            entry = self._entry(item_id)
            entry['state'] = state.value
            entry['history'].append(state.value)
            entry['updated'] = datetime.now().isoformat()

    def record_item(self, item: ItemTarget, polls: int = 0):
        with self._lock:
            entry = self._entry(item.item_id)
            entry['name'] = item.name
            entry['price'] = item.price
            entry['stock'] = item.status_name or item.status.value
            entry['polls'] = polls
            entry['updated'] = datetime.now().isoformat()

    def record_result(self, result: TaskResult):
        with self._lock:
            entry = self._entry(result.item_id)
            entry['state'] = result.state.value
            entry['polls'] = result.polls
            entry['order_id'] = result.order_id
            entry['error'] = str(result.error) if result.error else None
            entry['updated'] = datetime.now().isoformat()

    def get_item(self, item_id: str) -> Optional[Dict]:
        with self._lock:
            entry = self._items.get(item_id)
            if entry is None:
                return None
            copy = dict(entry)
            copy['history'] = list(entry['history'])
            return copy

    def snapshot(self) -> Dict:
        with self._lock:
            items = {item_id: self.get_item(item_id) for item_id in self._items}
            states = [entry['state'] for entry in items.values()]
            return {
                'items': items,
                'started': self._started.isoformat() if self._started else None,
                'summary': {
                    'total': len(items),
                    'done': states.count(TaskState.DONE.value),
                    'failed': states.count(TaskState.FAILED.value),
                    'active': sum(1 for s in states if s not in (TaskState.DONE.value, TaskState.FAILED.value)),
                },
            }
