"""
Process-wide credential state for the image-edit API.

The provider is created once at application start and lives for the whole
process. It only ever loses its usable key through :meth:`invalidate`, which
the processor calls when the API rejects the key.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

UsabilityCallback = Callable[[bool], None]
Sleep = Callable[[float], Awaitable[None]]


class CredentialProvider:
    def __init__(self, api_key: Optional[str] = None) -> None:
        self._api_key = api_key or None
        self._usable = self._api_key is not None
        self._selection_requested = False
        self._last_rejection: Optional[str] = None

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key if self._usable else None

    @property
    def selection_requested(self) -> bool:
        return self._selection_requested

    @property
    def last_rejection(self) -> Optional[str]:
        return self._last_rejection

    def has_usable_credential(self) -> bool:
        return self._usable

    def prompt_credential_selection(self) -> None:
        """Ask for a new key; callers re-poll ``has_usable_credential`` afterwards."""
        if not self._selection_requested:
            logger.warning("No usable API key; waiting for a key to be selected")
        self._selection_requested = True

    def select_api_key(self, api_key: str) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("API key must not be empty")
        self._api_key = api_key.strip()
        self._usable = True
        self._selection_requested = False
        self._last_rejection = None
        logger.info("API key selected")

    def invalidate(self, reason: str = "") -> None:
        self._usable = False
        self._last_rejection = reason or None
        logger.error("API key marked unusable: %s", reason or "rejected")
        self.prompt_credential_selection()


class CredentialWatcher:
    """
    Reports changes in credential usability.

    ``check()`` can be called on demand; ``start()`` runs the same check on an
    interval until ``stop()`` cancels it. ``sleep`` is injectable so tests can
    drive the loop without real delays.
    """

    def __init__(
        self,
        provider: CredentialProvider,
        on_change: UsabilityCallback,
        interval_seconds: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._provider = provider
        self._on_change = on_change
        self._interval = interval_seconds
        self._sleep = sleep
        self._last: Optional[bool] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def check(self) -> bool:
        usable = self._provider.has_usable_credential()
        if usable != self._last:
            self._last = usable
            self._on_change(usable)
        return usable

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._watch())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _watch(self) -> None:
        while True:
            self.check()
            await self._sleep(self._interval)
