from __future__ import annotations

import itertools
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ankiportal.config import LANG_CONFIG, SettingsManager
from ankiportal.models import AnkiNote, NoteDraft
from ankiportal.services import AnkiConnectError

ENGLISH = LANG_CONFIG["english"]

_QUERY = re.compile(r'deck:"(?P<deck>[^"]*)"\s+(?:(?P<field>[\w ]+):)?"(?P<value>[^"]*)"')
_ids = itertools.count(1_700_000_000_000)

ENV_KEYS = (
    "ANKI_CONNECT_URL",
    "ACTIVE_PROFILE",
    "DISTRIBUTION_PROFILES",
    "AI_PROVIDER",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "ENRICH_BATCH_SIZE",
)


@dataclass
class Collection:
    decks: set = field(default_factory=set)
    models: set = field(default_factory=set)
    notes: Dict[int, dict] = field(default_factory=dict)
    media: Dict[str, str] = field(default_factory=dict)


class FakeAnkiConnect:
    """
    In-memory AnkiConnect with several profiles.

    Every call is recorded in ``calls`` as (active profile, action, detail).
    ``fail`` maps an action name to an exception raised on its next calls.
    """

    def __init__(self, active: str = "Home"):
        self.url = "http://anki.test:8765"
        self.profiles: Dict[str, Collection] = {}
        self.active = active
        self.calls: List[tuple] = []
        self.fail: Dict[str, Exception] = {}
        self.field_names: Dict[str, List[str]] = {}

    def add_profile(self, name: str, decks=(ENGLISH["deck_name"],), models=(ENGLISH["note_type"],)) -> Collection:
        collection = Collection(decks=set(decks), models=set(models))
        self.profiles[name] = collection
        return collection

    @property
    def current(self) -> Collection:
        return self.profiles[self.active]

    def _record(self, action: str, detail=None) -> None:
        self.calls.append((self.active, action, detail))
        if action in self.fail:
            raise self.fail[action]

    def actions(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[1] == name]

    def seed_note(self, profile: str, word: str, uuid: str, deck: Optional[str] = None, **fields) -> int:
        note_id = next(_ids)
        values = dict(ENGLISH["note_fields"])
        values.update({"Word": word, "Note ID": uuid})
        values.update(fields)
        self.profiles[profile].notes[note_id] = {
            "deck": deck or ENGLISH["deck_name"],
            "model": ENGLISH["note_type"],
            "fields": values,
            "tags": ["seed"],
        }
        return note_id

    def notes_in(self, profile: str) -> List[dict]:
        return list(self.profiles[profile].notes.values())

    async def close(self) -> None:
        pass

    async def ping(self) -> bool:
        return "version" not in self.fail

    async def version(self) -> int:
        self._record("version")
        return 6

    async def deck_names(self) -> List[str]:
        self._record("deckNames")
        return sorted(self.current.decks)

    async def model_names(self) -> List[str]:
        self._record("modelNames")
        return sorted(self.current.models)

    async def model_field_names(self, model_name: str) -> List[str]:
        self._record("modelFieldNames", model_name)
        if model_name not in self.current.models:
            raise AnkiConnectError(f"AnkiConnect error: model was not found: {model_name}")
        return list(self.field_names.get(model_name, ENGLISH["note_fields"]))

    async def create_deck(self, deck: str) -> int:
        self._record("createDeck", deck)
        self.current.decks.add(deck)
        return 1

    async def get_profiles(self) -> List[str]:
        self._record("getProfiles")
        return list(self.profiles)

    async def load_profile(self, name: str) -> bool:
        self._record("loadProfile", name)
        if name not in self.profiles:
            raise AnkiConnectError(f"AnkiConnect error: profile {name} not found")
        self.active = name
        return True

    async def find_notes(self, query: str) -> List[int]:
        self._record("findNotes", query)
        match = _QUERY.match(query)
        assert match, f"unexpected query {query!r}"
        found = []
        for note_id, note in self.current.notes.items():
            if note["deck"] != match["deck"]:
                continue
            if match["field"]:
                if note["fields"].get(match["field"], "").lower() == match["value"].lower():
                    found.append(note_id)
            elif any(match["value"] in v for v in note["fields"].values()):
                found.append(note_id)
        return found

    async def notes_info(self, note_ids) -> List[AnkiNote]:
        self._record("notesInfo", list(note_ids))
        notes = []
        for note_id in note_ids:
            note = self.current.notes.get(note_id)
            if note is None:
                continue
            notes.append(AnkiNote(note_id, note["model"], dict(note["fields"]), list(note["tags"]), note["deck"]))
        return notes

    def _create(self, draft: NoteDraft) -> int:
        if draft.deck_name not in self.current.decks:
            raise AnkiConnectError(f"AnkiConnect error: deck was not found: {draft.deck_name}")
        if draft.model_name not in self.current.models:
            raise AnkiConnectError(f"AnkiConnect error: model was not found: {draft.model_name}")
        word = draft.fields.get("Word", "")
        for note in self.current.notes.values():
            if note["deck"] == draft.deck_name and note["fields"].get("Word") == word:
                raise AnkiConnectError("AnkiConnect error: cannot create note because it is a duplicate")
        note_id = next(_ids)
        self.current.notes[note_id] = {
            "deck": draft.deck_name,
            "model": draft.model_name,
            "fields": dict(draft.fields),
            "tags": list(draft.tags),
        }
        return note_id

    async def add_note(self, draft: NoteDraft) -> int:
        self._record("addNote", draft.fields.get("Word"))
        return self._create(draft)

    async def add_notes(self, drafts) -> List[Optional[int]]:
        self._record("addNotes", [d.fields.get("Word") for d in drafts])
        ids = []
        for draft in drafts:
            try:
                ids.append(self._create(draft))
            except AnkiConnectError:
                ids.append(None)
        return ids

    async def update_note_fields(self, note_id: int, fields: Dict[str, str]) -> None:
        self._record("updateNoteFields", (note_id, dict(fields)))
        if note_id not in self.current.notes:
            raise AnkiConnectError("AnkiConnect error: note was not found")
        self.current.notes[note_id]["fields"].update(fields)

    async def sync(self) -> None:
        self._record("sync")

    async def store_media_file(self, filename: str, data: str) -> str:
        self._record("storeMediaFile", filename)
        self.current.media[filename] = data
        return filename


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> SettingsManager:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    SettingsManager.reset_instance()
    manager = SettingsManager(str(tmp_path / "settings.json"))
    manager.update({
        "ACTIVE_PROFILE": "Home",
        "PROFILE_SETTLE_DELAY": 0.0,
        "PROFILE_POLL_INTERVAL": 0.001,
        "PROFILE_MIN_ACCEPT": 0.0,
        "PROFILE_MAX_WAIT": 0.05,
    })
    yield manager
    SettingsManager.reset_instance()


@pytest.fixture()
def anki() -> FakeAnkiConnect:
    fake = FakeAnkiConnect(active="Home")
    fake.add_profile("Home")
    fake.add_profile("Mia")
    return fake
