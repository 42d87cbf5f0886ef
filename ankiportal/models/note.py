"""Data models for ankiportal."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import Config


@dataclass
class AnkiNote:
    """A note as read from one Anki profile."""

    note_id: int
    model_name: str
    fields: Dict[str, str] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    deck_name: Optional[str] = None

    @property
    def uuid(self) -> str:
        """Cross-profile identity key; the numeric id is profile-local."""
        return self.fields.get(Config.NOTE_ID_FIELD, "")

    @property
    def word(self) -> str:
        return self.fields.get(Config.WORD_FIELD, "")

    @classmethod
    def from_info(cls, info: Dict[str, Any]) -> "AnkiNote":
        """
        Build from a ``notesInfo`` entry.

        AnkiConnect returns fields as {name: {"value": ..., "order": n}};
        the result keeps them in template order.
        """
        raw_fields = info.get("fields") or {}
        ordered = sorted(raw_fields.items(), key=lambda item: item[1].get("order", 0))
        return cls(
            note_id=int(info["noteId"]),
            model_name=info.get("modelName", ""),
            fields={name: value.get("value", "") for name, value in ordered},
            tags=list(info.get("tags") or []),
            deck_name=info.get("deckName"),
        )


@dataclass
class NoteDraft:
    """Parameters for creating a note."""

    deck_name: str
    model_name: str
    fields: Dict[str, str]
    tags: List[str] = field(default_factory=list)

    def to_params(self) -> Dict[str, Any]:
        return {
            "deckName": self.deck_name,
            "modelName": self.model_name,
            "fields": dict(self.fields),
            "tags": list(self.tags),
            "options": {
                "allowDuplicate": False,
                "duplicateScope": "deck",
            },
        }


@dataclass
class MediaAsset:
    """A media file ready to store in Anki (base64 payload)."""

    filename: str
    data: str


@dataclass
class DistributeResult:
    """Outcome of distributing notes into one target profile."""

    profile: str
    success: bool
    notes_distributed: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "profile": self.profile,
            "success": self.success,
            "notesDistributed": self.notes_distributed,
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class EnrichResult:
    """Outcome of the text stage for one note."""

    note_id: int
    word: str
    sentence: Optional[str] = None
    definition: Optional[str] = None
    phonetic: Optional[str] = None
    synonyms: Any = None
    extra_info: Optional[str] = None
    sentence_pinyin: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PipelineResult:
    """Final report of one enrichment run."""

    created: int = 0
    duplicates: int = 0
    errors: List[str] = field(default_factory=list)
    note_ids: List[int] = field(default_factory=list)
    distribution: List[DistributeResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "duplicates": self.duplicates,
            "errors": list(self.errors),
            "noteIds": list(self.note_ids),
            "distribution": [r.to_dict() for r in self.distribution],
        }


@dataclass
class ExtractedSentence:
    number: int
    sentence: str
    word: str


@dataclass
class ExtractedPage:
    """One worksheet page as returned by the vision extraction."""

    page_number: int
    term_week: str
    topic: str
    sentences: List[ExtractedSentence] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractedPage":
        sentences = [
            ExtractedSentence(
                number=int(s.get("number") or i + 1),
                sentence=str(s.get("sentence") or ""),
                word=str(s.get("word") or ""),
            )
            for i, s in enumerate(data.get("sentences") or [])
        ]
        return cls(
            page_number=int(data.get("pageNumber") or 1),
            term_week=str(data.get("termWeek") or ""),
            topic=str(data.get("topic") or ""),
            sentences=sentences,
        )
