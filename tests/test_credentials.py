from __future__ import annotations

import asyncio

import allure
import pytest

from batch_edit_service.credentials import CredentialProvider, CredentialWatcher

pytestmark = [
    allure.epic("Queue Processing"),
    allure.feature("Credentials"),
]


def test_provider_without_key_is_not_usable() -> None:
    provider = CredentialProvider(None)
    assert provider.has_usable_credential() is False
    assert provider.api_key is None


def test_invalidate_hides_key_and_requests_selection() -> None:
    provider = CredentialProvider("key-1")
    assert provider.api_key == "key-1"

    provider.invalidate("Requested entity was not found.")

    assert provider.has_usable_credential() is False
    assert provider.api_key is None
    assert provider.selection_requested is True
    assert provider.last_rejection == "Requested entity was not found."


def test_selecting_a_key_restores_usability() -> None:
    provider = CredentialProvider(None)
    provider.prompt_credential_selection()

    provider.select_api_key("  key-2 ")

    assert provider.has_usable_credential() is True
    assert provider.api_key == "key-2"
    assert provider.selection_requested is False


def test_selecting_blank_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        CredentialProvider(None).select_api_key("   ")


def test_watcher_check_reports_only_changes() -> None:
    provider = CredentialProvider("key")
    changes = []
    watcher = CredentialWatcher(provider, changes.append, interval_seconds=1.0)

    watcher.check()
    watcher.check()
    provider.invalidate("gone")
    watcher.check()

    assert changes == [True, False]


def test_watcher_loop_polls_until_stopped() -> None:
    provider = CredentialProvider(None)
    changes = []
    sleeps = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        if len(sleeps) == 2:
            provider.select_api_key("key")
        await asyncio.sleep(0)

    async def scenario() -> None:
        watcher = CredentialWatcher(provider, changes.append, interval_seconds=2.0, sleep=fake_sleep)
        task = watcher.start()
        assert watcher.start() is task
        while len(sleeps) < 4:
            await asyncio.sleep(0)
        await watcher.stop()
        assert watcher.running is False

    asyncio.run(scenario())

    assert changes == [False, True]
    assert set(sleeps) == {2.0}


def test_watcher_requires_positive_interval() -> None:
    with pytest.raises(ValueError):
        CredentialWatcher(CredentialProvider(None), lambda usable: None, interval_seconds=0)
