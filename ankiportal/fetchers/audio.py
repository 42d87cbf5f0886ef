"""Audio fetcher - text-to-speech via Edge TTS."""

import logging
from typing import Optional

import edge_tts

from ..config import get_language
from ..utils.parsing import TextParser
from .base import BaseFetcher, MediaGenerationError

logger = logging.getLogger(__name__)

# Anything shorter is an error page, not speech
MIN_AUDIO_BYTES = 100


class AudioFetcher(BaseFetcher):
    """Handle audio generation via TTS (Edge TTS)."""

    def __init__(self, voice: Optional[str] = None):
        """
        Initialize audio fetcher.

        Args:
            voice: Default voice when fetch() is called without one
        """
        self.voice = voice or get_language(None)["voice"]

    def clean_text(self, text: str) -> str:
        """Clean text for TTS processing using centralized TextParser."""
        return TextParser.clean_for_tts(text)

    async def fetch(self, source: str, voice: Optional[str] = None, rate: str = "+0%") -> bytes:
        """
        Synthesize speech with Edge TTS.

        Args:
            source: Text to convert to speech (HTML is stripped)
            voice: Neural voice name, e.g. "en-US-AnaNeural"
            rate: Speaking rate adjustment, e.g. "-10%"

        Returns:
            MP3 bytes

        Raises:
            MediaGenerationError: Empty text or failed synthesis
        """
        clean_text = self.clean_text(source or "")
        if not clean_text:
            raise MediaGenerationError("No text to synthesize")

        selected_voice = voice or self.voice
        communicate = edge_tts.Communicate(clean_text, selected_voice, rate=rate)

        audio = bytearray()
        try:
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio.extend(chunk["data"])
        except Exception as e:
            error_msg = str(e)
            if "429" in error_msg or "Too Many Requests" in error_msg:
                logger.warning("Edge TTS rate limit hit: %s", error_msg[:80])
            raise MediaGenerationError(f"TTS failed: {error_msg[:200]}") from e

        if len(audio) < MIN_AUDIO_BYTES:
            raise MediaGenerationError(f"TTS returned {len(audio)} bytes for {clean_text[:30]!r}")
        return bytes(audio)
