"""Base fetcher class."""

from abc import ABC, abstractmethod


class MediaGenerationError(Exception):
    """A media backend failed to produce a usable file."""


class BaseFetcher(ABC):
    """
    Common interface of the media backends.

    A fetcher turns text (a word, a sentence, an image prompt) into file
    bytes. It may hold a network session, so use it as an async context
    manager or call close() when done.
    """

    @abstractmethod
    async def fetch(self, source: str, **options) -> bytes:
        """
        Generate a media file.

        Args:
            source: Text or prompt to process
            **options: Fetcher-specific options (voice, rate, ...)

        Returns:
            Raw file content

        Raises:
            MediaGenerationError: If nothing usable was produced
        """
        pass

    async def close(self) -> None:
        """Release sessions; a no-op for stateless fetchers."""
        pass

    async def __aenter__(self) -> "BaseFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
