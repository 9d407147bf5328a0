"""
Application context.

Holds the objects that live for the whole process (queue store, credential
provider, processor, current global instruction) and exposes the intents the
presentation layer may issue. Nothing else mutates the queue.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from . import config
from .credentials import CredentialProvider
from .errors import QueueBusyError
from .image_client import GeminiImageEditClient, ImageEditClient
from .models import QueueItem, RunConfig, SourceImage
from .processor import SequentialQueueProcessor
from .queue_store import QueueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueItemView:
    """Read-only copy of an item for rendering."""

    item_id: str
    filename: str
    status: str
    custom_instruction: Optional[str]
    error_message: Optional[str]
    error_category: Optional[str]
    has_result: bool


class AppContext:
    def __init__(
        self,
        settings: config.Settings,
        *,
        client: Optional[ImageEditClient] = None,
        credentials: Optional[CredentialProvider] = None,
    ) -> None:
        self.settings = settings
        self.store = QueueStore()
        self.credentials = credentials or CredentialProvider(settings.gemini_api_key)
        self.global_instruction = settings.default_global_instruction
        self.client = client or GeminiImageEditClient(
            api_key_source=lambda: self.credentials.api_key,
            model=settings.gemini_model,
        )
        self.processor = SequentialQueueProcessor(
            self.store,
            self.client,
            self.credentials,
            self.run_config,
            image_size=settings.image_size,
            default_media_type=settings.default_media_type,
        )

    def run_config(self) -> RunConfig:
        return RunConfig(global_instruction=self.global_instruction)

    # Intents

    def enqueue(self, sources: Iterable[SourceImage]) -> List[QueueItem]:
        return self.store.enqueue(sources)

    def remove(self, item_id: str) -> QueueItem:
        return self.store.remove(item_id)

    def set_custom_instruction(self, item_id: str, text: Optional[str]) -> QueueItem:
        return self.store.set_custom_instruction(item_id, text)

    def set_global_instruction(self, text: str) -> None:
        # An active run already captured its RunConfig.
        self.global_instruction = text

    def start_run(self) -> Optional[asyncio.Task]:
        return self.processor.start()

    def cancel_run(self) -> bool:
        return self.processor.cancel()

    def clear_all(self) -> int:
        if self.processor.is_running:
            raise QueueBusyError("Queue cannot be cleared while a run is active")
        count = self.store.clear()
        logger.info("Cleared %d item(s)", count)
        return count

    # Read side

    def snapshot(self) -> List[QueueItemView]:
        return [
            QueueItemView(
                item_id=item.item_id,
                filename=item.source.filename,
                status=item.status.value,
                custom_instruction=item.custom_instruction,
                error_message=item.error_message,
                error_category=item.error_category,
                has_result=item.result is not None,
            )
            for item in self.store.items()
        ]

    def eligible_count(self) -> int:
        return len(self.store.eligible_ids())
