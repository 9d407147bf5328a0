"""Queue item, run configuration and result types."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import ItemLockedError


class ItemStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


ELIGIBLE_STATUSES = frozenset({ItemStatus.IDLE, ItemStatus.ERROR})
EDITABLE_STATUSES = ELIGIBLE_STATUSES


@dataclass(frozen=True)
class SourceImage:
    filename: str
    data: bytes = field(repr=False)
    media_type: Optional[str] = None


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes = field(repr=False)
    media_type: str = "image/png"


@dataclass(frozen=True)
class RunConfig:
    """Instruction text shared by every item of one run."""

    global_instruction: str = ""


@dataclass
class QueueItem:
    """
    One image waiting for (or done with) an edit.

    ``result`` is only set while the item is ``success`` and ``error_message``
    only while it is ``error``. State changes go through the ``mark_*``
    methods so those pairings cannot drift apart.
    """

    source: SourceImage
    item_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: ItemStatus = ItemStatus.IDLE
    custom_instruction: Optional[str] = None
    result: Optional[GeneratedImage] = None
    error_message: Optional[str] = None
    error_category: Optional[str] = None

    @property
    def is_eligible(self) -> bool:
        return self.status in ELIGIBLE_STATUSES

    def set_custom_instruction(self, text: Optional[str]) -> None:
        if self.status not in EDITABLE_STATUSES:
            raise ItemLockedError(
                f"Instruction of item {self.item_id} cannot change while {self.status.value}"
            )
        self.custom_instruction = text or None

    def mark_processing(self) -> None:
        if not self.is_eligible:
            raise ValueError(f"Item {self.item_id} is {self.status.value} and cannot be processed")
        self.status = ItemStatus.PROCESSING
        self.error_message = None
        self.error_category = None

    def mark_success(self, result: GeneratedImage) -> None:
        if self.status is not ItemStatus.PROCESSING:
            raise ValueError(f"Item {self.item_id} is not processing")
        self.status = ItemStatus.SUCCESS
        self.result = result

    def mark_error(self, message: str, category: Optional[str] = None) -> None:
        if self.status is not ItemStatus.PROCESSING:
            raise ValueError(f"Item {self.item_id} is not processing")
        self.status = ItemStatus.ERROR
        self.error_message = message
        self.error_category = category
