import asyncio

import pytest

from ankiportal.services import AnkiConnectError, ProfileSwitcher, ReadinessCheck


class NeverReady(ReadinessCheck):
    def __init__(self, error=None):
        self.error = error
        self.polls = 0

    async def snapshot(self):
        return None

    async def is_ready(self, before):
        self.polls += 1
        if self.error:
            raise self.error
        return False


def _timed(coro_factory):
    async def scenario():
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await coro_factory()
        return result, loop.time() - started

    return asyncio.run(scenario())


def test_switch_confirmed_when_deck_list_changes(anki) -> None:
    anki.profiles["Mia"].decks.add("Mia Only")
    switcher = ProfileSwitcher(anki, settle_delay=0, poll_interval=0.001, min_accept=10, max_wait=1)

    confirmed, elapsed = _timed(lambda: switcher.switch_and_wait("Mia"))

    assert confirmed is True
    assert anki.active == "Mia"
    assert elapsed < 1


def test_switch_accepted_after_min_delay_when_decks_identical(anki) -> None:
    switcher = ProfileSwitcher(anki, settle_delay=0, poll_interval=0.005, min_accept=0.05, max_wait=1)

    confirmed, elapsed = _timed(lambda: switcher.switch_and_wait("Mia"))

    assert confirmed is True
    assert 0.05 <= elapsed < 1


def test_switch_fails_open_after_max_wait(anki) -> None:
    readiness = NeverReady()
    switcher = ProfileSwitcher(
        anki, readiness=readiness, settle_delay=0.01, poll_interval=0.005, min_accept=5, max_wait=0.1
    )

    confirmed, elapsed = _timed(lambda: switcher.switch_and_wait("Mia"))

    assert confirmed is False
    assert readiness.polls > 1
    assert 0.1 <= elapsed < 1


def test_switch_poll_errors_count_as_not_ready(anki) -> None:
    readiness = NeverReady(error=AnkiConnectError("collection is not open"))
    switcher = ProfileSwitcher(anki, readiness=readiness, settle_delay=0, poll_interval=0.005, min_accept=0, max_wait=0.05)

    confirmed, _ = _timed(lambda: switcher.switch_and_wait("Mia"))

    assert confirmed is False
    assert readiness.polls > 1


def test_switch_command_failure_propagates(anki) -> None:
    switcher = ProfileSwitcher(anki, settle_delay=0, poll_interval=0.001, min_accept=0, max_wait=0.05)

    with pytest.raises(AnkiConnectError):
        asyncio.run(switcher.switch_and_wait("Nobody"))
    assert anki.active == "Home"


def test_switcher_reads_timings_from_settings(anki, settings) -> None:
    settings.set("PROFILE_MAX_WAIT", 42)
    switcher = ProfileSwitcher.from_settings(anki, settings)

    assert switcher.max_wait == 42.0
    assert switcher.settle_delay == 0.0


def test_switch_polls_once_when_settle_delay_exceeds_budget(anki) -> None:
    anki.profiles["Mia"].decks.add("Mia Only")
    switcher = ProfileSwitcher(anki, settle_delay=0.05, poll_interval=0.005, min_accept=10, max_wait=0.01)

    confirmed, _ = _timed(lambda: switcher.switch_and_wait("Mia"))

    assert confirmed is True
    assert len(anki.actions("deckNames")) == 2


def test_switch_without_budget_still_checks_readiness_once(anki) -> None:
    readiness = NeverReady()
    switcher = ProfileSwitcher(anki, readiness=readiness, settle_delay=0.02, poll_interval=0.005, min_accept=10, max_wait=0)

    confirmed, _ = _timed(lambda: switcher.switch_and_wait("Mia"))

    assert confirmed is False
    assert readiness.polls == 1
