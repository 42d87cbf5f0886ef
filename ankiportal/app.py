"""Application wiring: one object graph around a single ProfileLock."""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import SettingsManager
from .pipeline import EnrichmentPipeline
from .services import (
    AIService,
    AnkiConnectClient,
    Distributor,
    MediaService,
    ProfileLock,
    ProfileService,
    ProfileSwitcher,
    VocabularyService,
)

logger = logging.getLogger(__name__)


@dataclass
class App:
    """Every service of one running process."""

    settings: SettingsManager
    client: AnkiConnectClient
    lock: ProfileLock
    switcher: ProfileSwitcher
    distributor: Distributor
    profiles: ProfileService
    vocabulary: VocabularyService
    ai: AIService
    media: MediaService
    pipeline: EnrichmentPipeline

    async def close(self) -> None:
        """Close every HTTP session."""
        await self.media.close()
        await self.ai.close()
        await self.client.close()

    async def __aenter__(self) -> "App":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def build_app(settings: Optional[SettingsManager] = None, client: Optional[AnkiConnectClient] = None) -> App:
    """
    Build the service graph.

    Distributor and ProfileService share one ProfileLock; creating a second
    graph in the same process would give it an independent lock, so build
    exactly one per process.

    Args:
        settings: SettingsManager (the singleton when None)
        client: AnkiConnect client override, mostly for tests
    """
    settings = settings or SettingsManager()
    client = client or AnkiConnectClient(
        url=settings.get("ANKI_CONNECT_URL"),
        timeout=int(settings.get("TIMEOUT")),
    )

    lock = ProfileLock()
    switcher = ProfileSwitcher.from_settings(client, settings)
    distributor = Distributor(client, switcher, lock, settings)
    profiles = ProfileService(client, switcher, lock, settings)
    vocabulary = VocabularyService(client)
    ai = AIService.from_settings(settings)
    media = MediaService.from_settings(client, settings)
    pipeline = EnrichmentPipeline(
        client,
        vocabulary,
        ai,
        media,
        distributor,
        profiles,
        batch_size=int(settings.get("ENRICH_BATCH_SIZE")),
    )

    logger.debug("Built app for AnkiConnect at %s", client.url)
    return App(
        settings=settings,
        client=client,
        lock=lock,
        switcher=switcher,
        distributor=distributor,
        profiles=profiles,
        vocabulary=vocabulary,
        ai=ai,
        media=media,
        pipeline=pipeline,
    )
