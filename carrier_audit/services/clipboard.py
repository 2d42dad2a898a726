"""
Per-user clipboard history for tracking numbers, case numbers, amounts and
addresses. History is kept pinned-first, with a cap on unpinned items.
Storage is injected so the history can outlive the process if needed.
"""

import re
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional, Protocol

from carrier_audit import config
from carrier_audit.models import ClipboardItem

CLIPBOARD_TYPES = ('text', 'tracking', 'case_number', 'amount', 'address')

TRACKING_PATTERN = re.compile(r'^(1Z|T|92|94|03|93)[A-Z0-9]{15,}$', re.IGNORECASE)
CASE_NUMBER_PATTERN = re.compile(r'^CASE-\d{6}$', re.IGNORECASE)
AMOUNT_PATTERN = re.compile(r'^\$?\d+(\.\d{2})?$')
ADDRESS_PATTERN = re.compile(r'\d+.*\d{5}')


class ClipboardLimitError(ValueError):
    pass


class ClipboardStore(Protocol):
    def load(self, user_id: int) -> list[ClipboardItem]: ...

    def save(self, user_id: int, items: list[ClipboardItem]) -> None: ...


class InMemoryClipboardStore:
    def __init__(self):
        self._items: dict[int, list[ClipboardItem]] = {}

    def load(self, user_id: int) -> list[ClipboardItem]:
        return list(self._items.get(user_id, []))

    def save(self, user_id: int, items: list[ClipboardItem]) -> None:
        self._items[user_id] = list(items)


def detect_type(content: str) -> str:
    if TRACKING_PATTERN.match(content):
        return 'tracking'
    if CASE_NUMBER_PATTERN.match(content):
        return 'case_number'
    if AMOUNT_PATTERN.match(content):
        return 'amount'
    if ADDRESS_PATTERN.search(content):
        return 'address'
    return 'text'


def _pinned_first(items: list[ClipboardItem]) -> list[ClipboardItem]:
    return [i for i in items if i.pinned] + [i for i in items if not i.pinned]


class ClipboardManager:
    def __init__(self, store: ClipboardStore,
                 max_items: int = config.CLIPBOARD_MAX_ITEMS,
                 max_pinned: int = config.CLIPBOARD_MAX_PINNED,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.store = store
        self.max_items = max_items
        self.max_pinned = max_pinned
        self.clock = clock

    def add_item(self, user_id: int, content: str,
                 type: Optional[str] = None, label: Optional[str] = None) -> ClipboardItem:
        """
        Push `content` onto the user's history.

        Re-adding content that is already there moves the existing item to
        the top with a fresh timestamp and returns it, rather than adding a
        second copy.
        """
        if type is not None and type not in CLIPBOARD_TYPES:
            raise ValueError(f"Unknown clipboard type: {type}")

        items = self.store.load(user_id)
        existing = next((i for i in items if i.content == content), None)
        if existing is not None:
            items.remove(existing)
            existing.timestamp = self.clock()
            item = existing
        else:
            item = ClipboardItem(
                id=f"clip_{uuid.uuid4().hex[:12]}",
                content=content,
                type=type or detect_type(content),
                timestamp=self.clock(),
                user_id=user_id,
                label=label,
            )
        items.insert(0, item)

        pinned = [i for i in items if i.pinned]
        unpinned = [i for i in items if not i.pinned][:self.max_items]
        self.store.save(user_id, pinned + unpinned)
        return item

    def get_history(self, user_id: int, limit: Optional[int] = None) -> list[ClipboardItem]:
        items = self.store.load(user_id)
        return items[:limit] if limit else items

    def toggle_pin(self, user_id: int, item_id: str) -> Optional[bool]:
        """Flip the pin on an item; None if the item is unknown."""
        items = self.store.load(user_id)
        item = next((i for i in items if i.id == item_id), None)
        if item is None:
            return None

        pinned_count = sum(1 for i in items if i.pinned)
        if not item.pinned and pinned_count >= self.max_pinned:
            raise ClipboardLimitError(f"Maximum {self.max_pinned} pinned items allowed")

        item.pinned = not item.pinned
        self.store.save(user_id, _pinned_first(items))
        return item.pinned

    def delete_item(self, user_id: int, item_id: str) -> bool:
        items = self.store.load(user_id)
        remaining = [i for i in items if i.id != item_id]
        if len(remaining) == len(items):
            return False
        self.store.save(user_id, remaining)
        return True

    def clear_history(self, user_id: int) -> int:
        items = self.store.load(user_id)
        pinned = [i for i in items if i.pinned]
        self.store.save(user_id, pinned)
        return len(items) - len(pinned)

    def search(self, user_id: int, query: str) -> list[ClipboardItem]:
        needle = query.lower()
        return [
            i for i in self.store.load(user_id)
            if needle in i.content.lower() or (i.label and needle in i.label.lower())
        ]

    def get_by_type(self, user_id: int, type: str) -> list[ClipboardItem]:
        return [i for i in self.store.load(user_id) if i.type == type]

    def get_stats(self, user_id: int) -> dict:
        items = self.store.load(user_id)
        return {
            "total": len(items),
            "pinned": sum(1 for i in items if i.pinned),
            "by_type": {t: sum(1 for i in items if i.type == t) for t in CLIPBOARD_TYPES},
            "oldest_item": items[-1].timestamp if items else None,
            "newest_item": items[0].timestamp if items else None,
        }
