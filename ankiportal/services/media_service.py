"""
Media Service - audio and image generation for notes.

Produces MediaAsset objects (filename + base64 payload) so the same files
can be stored in the home profile and later in every distribution target.
"""

import base64
import logging
from typing import Any, Dict, Optional

from ..config import get_language
from ..fetchers import AudioFetcher, ImageFetcher, image_mime_type
from ..models import MediaAsset
from ..utils.parsing import TextParser
from ..utils.paths import MediaPathGenerator
from .prompts import build_image_prompt

logger = logging.getLogger(__name__)


class MediaService:
    """
    Service for generating and storing media files.

    Filenames come from MediaPathGenerator and depend only on the word
    and the note id, so regenerating overwrites instead of piling up.
    """

    def __init__(
        self,
        client,
        audio_fetcher: Optional[AudioFetcher] = None,
        image_fetcher: Optional[ImageFetcher] = None,
    ):
        """
        Initialize media service.

        Args:
            client: AnkiConnectClient used by store()
            audio_fetcher: TTS backend (Edge TTS by default)
            image_fetcher: Image backend (Gemini by default, without a key)
        """
        self.client = client
        self._audio_fetcher = audio_fetcher
        self._image_fetcher = image_fetcher

    @classmethod
    def from_settings(cls, client, settings) -> "MediaService":
        image_fetcher = ImageFetcher(
            api_key=settings.get("GEMINI_API_KEY") or None,
            timeout=int(settings.get("IMAGE_TIMEOUT")),
            retries=int(settings.get("RETRIES")),
        )
        return cls(client, image_fetcher=image_fetcher)

    @property
    def audio_fetcher(self) -> AudioFetcher:
        """Lazy-load audio fetcher."""
        if self._audio_fetcher is None:
            self._audio_fetcher = AudioFetcher()
        return self._audio_fetcher

    @property
    def image_fetcher(self) -> ImageFetcher:
        """Lazy-load image fetcher."""
        if self._image_fetcher is None:
            self._image_fetcher = ImageFetcher()
        return self._image_fetcher

    async def close(self) -> None:
        """Clean up all fetchers."""
        if self._image_fetcher:
            await self._image_fetcher.close()
        if self._audio_fetcher:
            await self._audio_fetcher.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    @staticmethod
    def _encode(data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")

    async def generate_word_audio(
        self, word: str, note_id: int, language: Optional[Dict[str, Any]] = None
    ) -> MediaAsset:
        """
        Speak the word slowly.

        Raises:
            MediaGenerationError: TTS failed
        """
        lang = language or get_language(None)
        data = await self.audio_fetcher.fetch(word, voice=lang["voice"], rate=lang["word_rate"])
        return MediaAsset(MediaPathGenerator.audio_word(word, note_id), self._encode(data))

    async def generate_sentence_audio(
        self,
        sentence: str,
        word: str,
        note_id: int,
        language: Optional[Dict[str, Any]] = None,
    ) -> MediaAsset:
        """
        Speak the example sentence (HTML stripped).

        Raises:
            MediaGenerationError: TTS failed
        """
        lang = language or get_language(None)
        data = await self.audio_fetcher.fetch(
            TextParser.strip_html(sentence), voice=lang["voice"], rate=lang["sentence_rate"]
        )
        return MediaAsset(MediaPathGenerator.audio_sentence(word, note_id), self._encode(data))

    async def generate_image(self, word: str, sentence: str, note_id: int) -> MediaAsset:
        """
        Illustrate the example sentence.

        Raises:
            MediaGenerationError: Image generation failed
        """
        prompt = build_image_prompt(word, TextParser.strip_html(sentence))
        data = await self.image_fetcher.fetch(prompt)
        filename = MediaPathGenerator.image(word, note_id, image_mime_type(data))
        return MediaAsset(filename, self._encode(data))

    async def store(self, asset: MediaAsset) -> str:
        """Store the asset in the active profile's media folder."""
        stored = await self.client.store_media_file(asset.filename, asset.data)
        logger.debug("Stored media %s", asset.filename)
        return stored or asset.filename
