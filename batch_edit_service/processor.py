"""
Sequential queue processor.

One run walks a snapshot of the eligible items (``idle`` or ``error``) taken
when the run starts, and sends them to the image-edit client strictly one at a
time. Items enqueued after that moment wait for the next run.

Per item: re-read the store -> ``processing`` -> build request -> await the
client -> ``success`` or ``error``. A rejected API key invalidates the shared
credential and stops the run; every other failure only marks the item.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .credentials import CredentialProvider
from .error_classifier import classify_failure
from .errors import NoImageGenerated
from .image_client import ImageEditClient
from .models import ItemStatus, RunConfig
from .queue_store import QueueStore
from .request_builder import DEFAULT_IMAGE_SIZE, DEFAULT_MEDIA_TYPE, build_edit_request

logger = logging.getLogger(__name__)

IMAGE_DECODE_CATEGORY = "image_decode"
INTERRUPTED_MESSAGE = "Run interrupted before the edit finished"


class RunOutcome(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    AUTH_REJECTED = "auth_rejected"
    ALREADY_ACTIVE = "already_active"
    NO_CREDENTIAL = "no_credential"


@dataclass
class RunSummary:
    """Counters for one run."""

    outcome: RunOutcome
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    discarded: int = 0


class SequentialQueueProcessor:
    def __init__(
        self,
        store: QueueStore,
        client: ImageEditClient,
        credentials: CredentialProvider,
        run_config_source: Callable[[], RunConfig],
        *,
        image_size: str = DEFAULT_IMAGE_SIZE,
        default_media_type: str = DEFAULT_MEDIA_TYPE,
    ) -> None:
        self._store = store
        self._client = client
        self._credentials = credentials
        self._run_config_source = run_config_source
        self._image_size = image_size
        self._default_media_type = default_media_type

        self._running = False
        self._cancel_requested = False
        self._current_item_id: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self.last_summary: Optional[RunSummary] = None

    @property
    def is_running(self) -> bool:
        return self._running or (self._task is not None and not self._task.done())

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def current_item_id(self) -> Optional[str]:
        return self._current_item_id

    def start(self) -> Optional[asyncio.Task]:
        """
        Schedule a run on the current event loop.

        Returns the already scheduled task when a run is active, so repeated
        starts never produce a second pass.
        """
        if self._task is not None and not self._task.done():
            return self._task
        if self._running:
            return None
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def cancel(self) -> bool:
        """Stop before the next item; the in-flight request is left to finish."""
        if not self._running:
            return False
        if not self._cancel_requested:
            logger.info("Cancel requested; stopping after item id=%s", self._current_item_id)
        self._cancel_requested = True
        return True

    async def shutdown(self) -> None:
        """Cancel a scheduled run task outright; used when the service stops."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def run(self) -> RunSummary:
        if self._running:
            logger.info("Run already active; ignoring start request")
            return RunSummary(outcome=RunOutcome.ALREADY_ACTIVE)
        if not self._credentials.has_usable_credential():
            logger.warning("Run not started: no usable API key")
            self._credentials.prompt_credential_selection()
            return RunSummary(outcome=RunOutcome.NO_CREDENTIAL)

        self._running = True
        self._cancel_requested = False
        summary = RunSummary(outcome=RunOutcome.COMPLETED)
        try:
            run_config = self._run_config_source()
            work_list = self._store.eligible_ids()
            logger.info("Run started with %d item(s)", len(work_list))

            for item_id in work_list:
                if self._cancel_requested:
                    summary.outcome = RunOutcome.CANCELLED
                    break
                item = self._store.get(item_id)
                if item is None or not item.is_eligible:
                    logger.info("Skipping item id=%s: no longer queued for processing", item_id)
                    summary.skipped += 1
                    continue
                if await self._process_item(item_id, run_config, summary):
                    summary.outcome = RunOutcome.AUTH_REJECTED
                    break
        finally:
            self._running = False
            self._cancel_requested = False
            self._current_item_id = None
            self.last_summary = summary

        logger.info(
            "Run finished outcome=%s processed=%d succeeded=%d failed=%d skipped=%d",
            summary.outcome.value,
            summary.processed,
            summary.succeeded,
            summary.failed,
            summary.skipped,
        )
        return summary

    async def _process_item(self, item_id: str, run_config: RunConfig, summary: RunSummary) -> bool:
        """Run one item to a settled state. Returns ``True`` when the run must halt."""
        item = self._store.mark_processing(item_id)
        self._current_item_id = item_id
        summary.processed += 1
        logger.info("Processing item id=%s file=%s", item_id, item.source.filename)
        try:
            return await self._edit_item(item_id, run_config, summary)
        except asyncio.CancelledError:
            self._fail(item_id, INTERRUPTED_MESSAGE, None, summary)
            raise
        finally:
            self._current_item_id = None

    async def _edit_item(self, item_id: str, run_config: RunConfig, summary: RunSummary) -> bool:
        item = self._store.require(item_id)
        try:
            request = await build_edit_request(
                item,
                run_config,
                image_size=self._image_size,
                default_media_type=self._default_media_type,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not prepare item id=%s: %s", item_id, exc)
            self._fail(item_id, f"Could not read image: {exc}", IMAGE_DECODE_CATEGORY, summary)
            return False

        try:
            result = await self._client.edit(request)
            if result is None:
                raise NoImageGenerated()
        except Exception as exc:  # noqa: BLE001
            classification = classify_failure(exc)
            if classification.fatal:
                logger.error("API key rejected while processing item id=%s; halting run", item_id)
                self._credentials.invalidate(classification.detail)
                self._fail(item_id, classification.user_message, classification.category.value, summary)
                return True
            logger.warning(
                "Item id=%s failed category=%s detail=%s",
                item_id,
                classification.category.value,
                classification.detail,
            )
            self._fail(item_id, classification.user_message, classification.category.value, summary)
            return False

        if self._store.mark_success(item_id, result) is None:
            logger.info("Item id=%s was removed while processing; discarding result", item_id)
            summary.discarded += 1
        else:
            logger.info("Item id=%s succeeded", item_id)
            summary.succeeded += 1
        return False

    def _fail(
        self, item_id: str, message: str, category: Optional[str], summary: RunSummary
    ) -> None:
        item = self._store.get(item_id)
        if item is None:
            logger.info("Item id=%s was removed while processing; dropping error", item_id)
            summary.discarded += 1
            return
        if item.status is ItemStatus.PROCESSING:
            self._store.mark_error(item_id, message, category)
            summary.failed += 1
