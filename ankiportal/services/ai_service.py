"""
AI Service - LLM integration for flashcard text enrichment.

Provides abstraction over LLM providers (Anthropic, OpenAI-compatible)
with two entry modes:
- text completion (batched field generation)
- multimodal completion (worksheet image/PDF extraction)
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from ..config import Config
from ..models import ExtractedPage
from .prompts import EXTRACTION_PROMPT, build_batch_prompt, extract_json_array, strip_code_fences

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """The AI backend is missing, unreachable or returned an unusable answer."""


class AIProvider(Enum):
    """Supported AI providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


MODEL_DEFAULTS = {
    AIProvider.ANTHROPIC: "claude-sonnet-4-5-20250929",
    AIProvider.OPENAI: "gpt-4o-mini",
}


@dataclass
class AIConfig:
    """Configuration for AI service."""
    provider: AIProvider = AIProvider.ANTHROPIC
    model: str = MODEL_DEFAULTS[AIProvider.ANTHROPIC]
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = 4096
    timeout: int = Config.AI_TIMEOUT


@dataclass
class ImageInput:
    """Base64 image or PDF passed to a multimodal prompt."""
    base64: str
    media_type: str = "image/jpeg"


class BaseAIProvider(ABC):
    """Abstract base class for AI providers."""

    def __init__(self, config: AIConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _post(self, url: str, headers: Dict[str, str], payload: Dict[str, Any], name: str) -> Dict[str, Any]:
        session = await self._get_session()
        try:
            async with session.post(url, headers=headers, json=payload) as response:
                if response.status == 200:
                    return await response.json()
                error = await response.text()
                raise AIServiceError(f"{name} API error {response.status}: {error[:200]}")
        except asyncio.TimeoutError:
            raise AIServiceError(f"{name} API timeout")
        except aiohttp.ClientError as e:
            raise AIServiceError(f"Cannot reach {name} API: {e}")

    @abstractmethod
    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Generate completion for the given prompt."""
        pass

    @abstractmethod
    async def complete_vision(
        self, prompt: str, images: Sequence[ImageInput], max_tokens: Optional[int] = None
    ) -> str:
        """Generate completion for a prompt with attached images or documents."""
        pass


class AnthropicProvider(BaseAIProvider):
    """Anthropic Claude API provider."""

    DEFAULT_BASE_URL = "https://api.anthropic.com/v1"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key or "",
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
        }

    async def _messages(self, content: Any, max_tokens: Optional[int]) -> str:
        url = f"{self.config.base_url or self.DEFAULT_BASE_URL}/messages"
        payload = {
            "model": self.config.model,
            "max_tokens": max_tokens or self.config.max_tokens,
            "messages": [{"role": "user", "content": content}],
        }
        data = await self._post(url, self._headers(), payload, "Anthropic")
        for block in data.get("content") or []:
            if block.get("type") == "text":
                return block.get("text", "")
        raise AIServiceError("No text response from Anthropic API")

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Generate completion using Anthropic API."""
        return await self._messages(prompt, max_tokens)

    async def complete_vision(
        self, prompt: str, images: Sequence[ImageInput], max_tokens: Optional[int] = None
    ) -> str:
        """Images become image blocks, PDFs become document blocks."""
        content: List[Dict[str, Any]] = []
        for img in images:
            block_type = "document" if img.media_type == "application/pdf" else "image"
            content.append({
                "type": block_type,
                "source": {"type": "base64", "media_type": img.media_type, "data": img.base64},
            })
        content.append({"type": "text", "text": prompt})
        return await self._messages(content, max_tokens)


class OpenAIProvider(BaseAIProvider):
    """OpenAI API provider (also works with compatible APIs)."""

    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    async def _chat(self, content: Any, max_tokens: Optional[int]) -> str:
        url = f"{self.config.base_url or self.DEFAULT_BASE_URL}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": max_tokens or self.config.max_tokens,
        }
        data = await self._post(url, headers, payload, "OpenAI")
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise AIServiceError("No text response from OpenAI API")

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        """Generate completion using OpenAI API."""
        return await self._chat(prompt, max_tokens)

    async def complete_vision(
        self, prompt: str, images: Sequence[ImageInput], max_tokens: Optional[int] = None
    ) -> str:
        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
        for img in images:
            if img.media_type == "application/pdf":
                raise AIServiceError("PDF extraction requires the Anthropic provider")
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{img.media_type};base64,{img.base64}"},
            })
        return await self._chat(content, max_tokens)


class AIService:
    """
    High-level AI service for flashcard content generation.

    - Batched text enrichment (sentence, definition, phonetic, ...)
    - Worksheet extraction from photos
    """

    def __init__(self, config: Optional[AIConfig] = None):
        """
        Initialize AI service.

        Args:
            config: AI configuration. If None, uses a default Anthropic config.
        """
        self.config = config or AIConfig()
        self._provider: Optional[BaseAIProvider] = None

    @classmethod
    def from_settings(cls, settings) -> "AIService":
        """Create the service from a SettingsManager."""
        provider_name = str(settings.get("AI_PROVIDER") or "anthropic").lower()
        provider = {
            "anthropic": AIProvider.ANTHROPIC,
            "openai": AIProvider.OPENAI,
        }.get(provider_name, AIProvider.ANTHROPIC)

        key_name = "OPENAI_API_KEY" if provider == AIProvider.OPENAI else "ANTHROPIC_API_KEY"
        return cls(AIConfig(
            provider=provider,
            model=settings.get("AI_MODEL") or MODEL_DEFAULTS[provider],
            api_key=settings.get(key_name) or None,
            base_url=settings.get("AI_BASE_URL") or None,
            max_tokens=int(settings.get("AI_MAX_TOKENS")),
            timeout=int(settings.get("AI_TIMEOUT")),
        ))

    def _get_provider(self) -> BaseAIProvider:
        """Get or create the appropriate provider."""
        if not self.is_configured:
            raise AIServiceError(
                f"No API key configured for the {self.config.provider.value} AI backend"
            )
        if self._provider is None:
            provider_classes = {
                AIProvider.ANTHROPIC: AnthropicProvider,
                AIProvider.OPENAI: OpenAIProvider,
            }
            provider_class = provider_classes.get(self.config.provider, AnthropicProvider)
            self._provider = provider_class(self.config)
        return self._provider

    async def close(self) -> None:
        """Close the AI service and release resources."""
        if self._provider:
            await self._provider.close()
            self._provider = None

    @property
    def is_configured(self) -> bool:
        """Check if AI service is properly configured."""
        return bool(self.config.api_key)

    async def complete(self, prompt: str, max_tokens: Optional[int] = None) -> str:
        return await self._get_provider().complete(prompt, max_tokens)

    async def complete_json(self, prompt: str) -> Any:
        """Run a prompt and parse the answer as JSON (code fences allowed)."""
        text = await self.complete(prompt)
        try:
            return json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            raise AIServiceError(f"AI returned invalid JSON: {e}")

    async def complete_vision(
        self, prompt: str, images: Sequence[ImageInput], max_tokens: Optional[int] = None
    ) -> str:
        return await self._get_provider().complete_vision(prompt, images, max_tokens)

    async def enrich_batch(
        self,
        cards: Sequence[Dict[str, Any]],
        fields: Sequence[str],
        language_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Generate text fields for a chunk of words with one request.

        Args:
            cards: Dicts with "word" and optional "sentence"
            fields: Field keys to generate
            language_id: Language of the words

        Returns:
            Parsed JSON array, expected to be positionally aligned with
            ``cards``. Items are returned as-is (non-objects included) so
            positions are never shifted.

        Raises:
            AIServiceError: Request failed
            ValueError: Response did not contain a JSON array
        """
        prompt = build_batch_prompt(cards, fields, language_id)
        raw = await self.complete(prompt)
        return extract_json_array(raw)

    async def extract_worksheet(self, images: Sequence[ImageInput]) -> List[ExtractedPage]:
        """Extract worksheet pages (topic, sentences, underlined words) from photos."""
        raw = await self.complete_vision(EXTRACTION_PROMPT, images, max_tokens=8192)
        try:
            pages = extract_json_array(raw)
        except ValueError as e:
            raise AIServiceError(f"Worksheet extraction returned no pages: {e}")
        return [ExtractedPage.from_dict(p) for p in pages if isinstance(p, dict)]
