"""
Authoritative in-memory queue.

Every mutation path (enqueue, remove, instruction edits, status transitions)
goes through :class:`QueueStore`. The processor re-reads it before acting on an
item instead of trusting a reference captured earlier.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .errors import ItemNotFoundError, SingleFlightViolation
from .models import GeneratedImage, ItemStatus, QueueItem, SourceImage

logger = logging.getLogger(__name__)


class QueueStore:
    def __init__(self) -> None:
        # dicts keep insertion order, which is also processing order
        self._items: Dict[str, QueueItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def items(self) -> List[QueueItem]:
        return list(self._items.values())

    def get(self, item_id: str) -> Optional[QueueItem]:
        return self._items.get(item_id)

    def require(self, item_id: str) -> QueueItem:
        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def enqueue(self, sources: Iterable[SourceImage]) -> List[QueueItem]:
        added: List[QueueItem] = []
        for source in sources:
            item = QueueItem(source=source)
            while item.item_id in self._items:
                item = QueueItem(source=source)
            self._items[item.item_id] = item
            added.append(item)
            logger.info("Enqueued item id=%s file=%s", item.item_id, source.filename)
        return added

    def remove(self, item_id: str) -> QueueItem:
        item = self._items.pop(item_id, None)
        if item is None:
            raise ItemNotFoundError(item_id)
        logger.info("Removed item id=%s status=%s", item_id, item.status.value)
        return item

    def clear(self) -> int:
        count = len(self._items)
        self._items.clear()
        return count

    def set_custom_instruction(self, item_id: str, text: Optional[str]) -> QueueItem:
        item = self.require(item_id)
        item.set_custom_instruction(text)
        return item

    def eligible_ids(self) -> List[str]:
        """Ids of ``idle``/``error`` items in queue order."""
        return [item.item_id for item in self._items.values() if item.is_eligible]

    def processing_item(self) -> Optional[QueueItem]:
        for item in self._items.values():
            if item.status is ItemStatus.PROCESSING:
                return item
        return None

    def mark_processing(self, item_id: str) -> QueueItem:
        item = self.require(item_id)
        current = self.processing_item()
        if current is not None and current.item_id != item_id:
            raise SingleFlightViolation(
                f"Item {current.item_id} is already processing; refusing to start {item_id}"
            )
        item.mark_processing()
        return item

    def mark_success(self, item_id: str, result: GeneratedImage) -> Optional[QueueItem]:
        """Attach a result; returns ``None`` when the item was removed meanwhile."""
        item = self._items.get(item_id)
        if item is None:
            return None
        item.mark_success(result)
        return item

    def mark_error(
        self, item_id: str, message: str, category: Optional[str] = None
    ) -> Optional[QueueItem]:
        item = self._items.get(item_id)
        if item is None:
            return None
        item.mark_error(message, category)
        return item
