"""
AnkiConnect client - typed wrapper over Anki's local automation API.

Every call is a JSON POST of {"action", "version", "params"} answered by
{"result", "error"}. A non-null error, a non-200 status or a connection
failure raises AnkiConnectError.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from ..config import Config
from ..models import AnkiNote, NoteDraft

logger = logging.getLogger(__name__)


class AnkiConnectError(Exception):
    """AnkiConnect unreachable or returned an error."""


class AnkiConnectClient:
    """Async client for the AnkiConnect HTTP endpoint."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[int] = None):
        """
        Initialize the client.

        Args:
            url: AnkiConnect endpoint (defaults to Config.ANKI_CONNECT_URL)
            timeout: Request timeout in seconds
        """
        self.url = url or Config.ANKI_CONNECT_URL
        self.timeout = timeout or Config.TIMEOUT
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def invoke(self, action: str, **params: Any) -> Any:
        """
        Call one AnkiConnect action.

        Args:
            action: Action name, e.g. "deckNames"
            **params: Action parameters

        Returns:
            The ``result`` member of the response

        Raises:
            AnkiConnectError: On HTTP, connection or AnkiConnect errors
        """
        session = await self._get_session()
        payload: Dict[str, Any] = {"action": action, "version": Config.ANKI_CONNECT_VERSION}
        if params:
            payload["params"] = params

        try:
            async with session.post(self.url, json=payload) as response:
                if response.status != 200:
                    raise AnkiConnectError(f"AnkiConnect HTTP error: {response.status}")
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise AnkiConnectError(f"Cannot reach AnkiConnect at {self.url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise AnkiConnectError(f"AnkiConnect timeout on {action}") from e

        if not isinstance(data, dict):
            raise AnkiConnectError(f"Malformed AnkiConnect response to {action}")
        if data.get("error"):
            raise AnkiConnectError(f"AnkiConnect error: {data['error']}")
        return data.get("result")

    async def ping(self) -> bool:
        """Check if AnkiConnect is reachable."""
        try:
            await self.version()
            return True
        except AnkiConnectError:
            return False

    async def version(self) -> int:
        return await self.invoke("version")

    async def deck_names(self) -> List[str]:
        return await self.invoke("deckNames")

    async def model_names(self) -> List[str]:
        return await self.invoke("modelNames")

    async def model_field_names(self, model_name: str) -> List[str]:
        return await self.invoke("modelFieldNames", modelName=model_name)

    async def create_deck(self, deck: str) -> int:
        """Create a deck; an existing deck is left as is."""
        return await self.invoke("createDeck", deck=deck)

    async def find_notes(self, query: str) -> List[int]:
        """Search notes with Anki query syntax."""
        return await self.invoke("findNotes", query=query)

    async def notes_info(self, note_ids: Sequence[int]) -> List[AnkiNote]:
        infos = await self.invoke("notesInfo", notes=list(note_ids))
        # Deleted ids come back as empty objects
        return [AnkiNote.from_info(info) for info in infos or [] if info and info.get("noteId")]

    async def add_note(self, draft: NoteDraft) -> int:
        """Add a single note; duplicates raise AnkiConnectError."""
        return await self.invoke("addNote", note=draft.to_params())

    async def add_notes(self, drafts: Sequence[NoteDraft]) -> List[Optional[int]]:
        """Add several notes; a None id marks a note that was not created."""
        return await self.invoke("addNotes", notes=[d.to_params() for d in drafts])

    async def update_note_fields(self, note_id: int, fields: Dict[str, str]) -> None:
        await self.invoke("updateNoteFields", note={"id": note_id, "fields": fields})

    async def store_media_file(self, filename: str, data: str) -> str:
        """Store a base64 media file in the active profile's collection."""
        return await self.invoke("storeMediaFile", filename=filename, data=data)

    async def get_profiles(self) -> List[str]:
        return await self.invoke("getProfiles")

    async def load_profile(self, name: str) -> bool:
        """
        Ask Anki to load a profile.

        Returns before the switch has completed; use ProfileSwitcher to
        wait for it.
        """
        return await self.invoke("loadProfile", name=name)

    async def sync(self) -> None:
        await self.invoke("sync")
