"""Image fetcher - generate images via the Gemini API."""

import asyncio
import base64
import logging
from typing import Optional

import aiohttp

from ..config import Config
from .base import BaseFetcher, MediaGenerationError

logger = logging.getLogger(__name__)


# Image format magic bytes for validation
IMAGE_MAGIC_BYTES = {
    b'\xff\xd8\xff': 'jpeg',      # JPEG
    b'\x89PNG': 'png',            # PNG
    b'GIF8': 'gif',               # GIF
}

IMAGE_MIME_TYPES = {
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
}


def detect_image_format(content: bytes) -> Optional[str]:
    """Detect image format from magic bytes."""
    if not content or len(content) < 4:
        return None
    for magic, fmt in IMAGE_MAGIC_BYTES.items():
        if content.startswith(magic):
            return fmt
    # WebP is RIFF....WEBP
    if content[:4] == b'RIFF' and len(content) > 12 and content[8:12] == b'WEBP':
        return 'webp'
    return None


def image_mime_type(content: bytes) -> str:
    """MIME type for image bytes, PNG when unknown."""
    return IMAGE_MIME_TYPES.get(detect_image_format(content) or "", "image/png")


class ImageFetcher(BaseFetcher):
    """Handle image generation via Gemini with a reused session."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[int] = None,
        retries: Optional[int] = None,
    ):
        """
        Initialize image fetcher.

        Args:
            api_key: Gemini API key
            api_url: generateContent endpoint (defaults to Config.GEMINI_API_URL)
            timeout: Request timeout in seconds
            retries: Attempts for rate-limited or transient failures
        """
        self.api_key = api_key
        self.api_url = api_url or Config.GEMINI_API_URL
        self.timeout = timeout or Config.IMAGE_TIMEOUT
        self.retries = retries or Config.RETRIES
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create a shared aiohttp session (connection pooling)."""
        async with self._session_lock:
            if self._session is None or self._session.closed:
                headers = {
                    "Content-Type": "application/json",
                    "x-goog-api-key": self.api_key or "",
                }
                timeout = aiohttp.ClientTimeout(total=self.timeout)
                self._session = aiohttp.ClientSession(headers=headers, timeout=timeout)
            return self._session

    async def close(self) -> None:
        """Close the aiohttp session. Call this when done with the fetcher."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
                self._session = None

    @staticmethod
    def _extract_image(data: dict) -> Optional[bytes]:
        """First inlineData part of the response, decoded."""
        for candidate in data.get("candidates") or []:
            for part in (candidate.get("content") or {}).get("parts") or []:
                inline = part.get("inlineData")
                if inline and inline.get("data"):
                    return base64.b64decode(inline["data"])
        return None

    async def fetch(self, source: str, **options) -> bytes:
        """
        Generate an image from a prompt.

        Args:
            source: Prompt text for image generation

        Returns:
            Image bytes (PNG or JPEG as chosen by the model)

        Raises:
            MediaGenerationError: Missing key, API error, or no valid image
        """
        if not self.api_key:
            raise MediaGenerationError("GEMINI_API_KEY not configured")

        prompt = str(source or "").strip()
        if not prompt:
            raise MediaGenerationError("Empty image prompt")

        session = await self._get_session()
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        last_error = "no attempt made"

        for attempt in range(self.retries):
            try:
                async with session.post(self.api_url, json=payload) as response:
                    if response.status == 200:
                        content = self._extract_image(await response.json())
                        if content is None:
                            raise MediaGenerationError("No image returned from Gemini")
                        if not detect_image_format(content):
                            raise MediaGenerationError(
                                f"Invalid image: {len(content)} bytes, magic: {content[:4]!r}"
                            )
                        return content

                    body = await response.text()
                    last_error = f"Gemini API error {response.status}: {body[:200]}"
                    if response.status == 429:
                        logger.warning("Gemini rate limit (429), waiting...")
                        await asyncio.sleep(5 * (2 ** attempt))
                    elif response.status >= 500:
                        await asyncio.sleep(2 ** attempt)
                    else:
                        raise MediaGenerationError(last_error)
            except asyncio.TimeoutError:
                last_error = "Gemini API timeout"
                logger.warning("Gemini API timeout, retrying...")
                await asyncio.sleep(2 ** attempt)
            except aiohttp.ClientError as e:
                last_error = f"Cannot reach Gemini API: {e}"
                await asyncio.sleep(2 ** attempt)

        raise MediaGenerationError(last_error)
