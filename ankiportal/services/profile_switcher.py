"""
Profile switcher - switch Anki's active profile and wait until it is ready.

AnkiConnect's ``loadProfile`` returns before the new collection is open,
so readiness is inferred by polling a ReadinessCheck. The wait is bounded
and fails open: when the switch cannot be confirmed in time the caller
proceeds anyway.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..config import Config

logger = logging.getLogger(__name__)


class ReadinessCheck(ABC):
    """Strategy deciding whether a profile switch has taken effect."""

    @abstractmethod
    async def snapshot(self) -> Any:
        """Capture backend state before the switch."""
        pass

    @abstractmethod
    async def is_ready(self, before: Any) -> bool:
        """Return True once the backend state shows the switch completed."""
        pass


class DeckListReadiness(ReadinessCheck):
    """
    Deck-name set difference as the readiness oracle.

    Two profiles with identical deck names are indistinguishable from a
    switch that has not happened yet; ProfileSwitcher covers that case
    with its minimum-accept delay.
    """

    def __init__(self, client):
        self.client = client

    async def snapshot(self) -> frozenset:
        try:
            return frozenset(await self.client.deck_names())
        except Exception as e:
            logger.debug("Deck snapshot failed, treating as empty: %s", e)
            return frozenset()

    async def is_ready(self, before: frozenset) -> bool:
        now = frozenset(await self.client.deck_names())
        return now != before


class ProfileSwitcher:
    """
    Issue a profile switch and poll until the backend confirms it.

    All timings are in seconds and default to the PROFILE_* values of
    Config; pass them explicitly to override.
    """

    def __init__(
        self,
        client,
        readiness: Optional[ReadinessCheck] = None,
        settle_delay: Optional[float] = None,
        poll_interval: Optional[float] = None,
        min_accept: Optional[float] = None,
        max_wait: Optional[float] = None,
    ):
        self.client = client
        self.readiness = readiness or DeckListReadiness(client)
        self.settle_delay = Config.PROFILE_SETTLE_DELAY if settle_delay is None else settle_delay
        self.poll_interval = Config.PROFILE_POLL_INTERVAL if poll_interval is None else poll_interval
        self.min_accept = Config.PROFILE_MIN_ACCEPT if min_accept is None else min_accept
        self.max_wait = Config.PROFILE_MAX_WAIT if max_wait is None else max_wait

    @classmethod
    def from_settings(cls, client, settings, readiness: Optional[ReadinessCheck] = None) -> "ProfileSwitcher":
        """Build a switcher with timings taken from a SettingsManager."""
        return cls(
            client,
            readiness=readiness,
            settle_delay=float(settings.get("PROFILE_SETTLE_DELAY")),
            poll_interval=float(settings.get("PROFILE_POLL_INTERVAL")),
            min_accept=float(settings.get("PROFILE_MIN_ACCEPT")),
            max_wait=float(settings.get("PROFILE_MAX_WAIT")),
        )

    async def switch_and_wait(self, target: str, max_wait: Optional[float] = None) -> bool:
        """
        Switch to ``target`` and wait for the backend to be ready.

        Only a failure of the switch command itself propagates; failures
        while polling count as "not ready yet".

        Args:
            target: Profile name
            max_wait: Overall budget in seconds, counted from the switch command

        Returns:
            True if the switch was confirmed (or accepted after the
            minimum delay), False if the budget ran out (fail open)
        """
        budget = self.max_wait if max_wait is None else max_wait
        loop = asyncio.get_running_loop()

        before = await self.readiness.snapshot()

        logger.info("Switching Anki profile to %r", target)
        await self.client.load_profile(target)
        started = loop.time()

        await asyncio.sleep(self.settle_delay)

        # At least one poll runs, even when the settle delay used up the budget
        while True:
            try:
                if await self.readiness.is_ready(before):
                    logger.debug("Profile %r ready after %.1fs", target, loop.time() - started)
                    return True
                # Same deck layout in both profiles looks like "not switched yet"
                if loop.time() - started >= self.min_accept:
                    logger.debug("Profile %r unchanged after %.1fs, accepting", target, self.min_accept)
                    return True
            except Exception as e:
                logger.debug("Readiness poll failed for %r: %s", target, e)

            if loop.time() - started >= budget:
                break
            await asyncio.sleep(self.poll_interval)

        logger.warning("Could not confirm switch to profile %r within %.1fs, continuing", target, budget)
        return False
