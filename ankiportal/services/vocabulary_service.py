"""
Vocabulary Service - note creation and field updates in the home profile.

Builds spelling notes from plain word lists or extracted worksheets and
writes generated text back into them. Every note gets a fresh UUID in
its "Note ID" field; that value, not Anki's numeric id, identifies the
note across profiles.
"""

import logging
import re
import uuid
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Set

from ..config import Config, detect_language
from ..models import EnrichResult, ExtractedPage, NoteDraft
from ..utils.parsing import TextParser

logger = logging.getLogger(__name__)

DEFAULT_TAGS = ["quick_add"]


class CreatedNote(NamedTuple):
    """A note that addNotes actually created."""
    note_id: int
    word: str
    sentence: str = ""


def _tag(text: str) -> str:
    return re.sub(r"\s+", "_", text.strip().lower())


class VocabularyService:
    """
    Service for spelling notes stored through AnkiConnect.

    Usage:
        vocab = VocabularyService(client)
        existing = await vocab.check_duplicates(["creature"], lang)
        created = await vocab.create_word_notes(["habitat"], lang)
    """

    def __init__(self, client):
        """
        Initialize vocabulary service.

        Args:
            client: AnkiConnectClient bound to the home profile
        """
        self.client = client

    async def check_duplicates(self, words: Sequence[str], language: Dict[str, Any]) -> Set[str]:
        """
        Find which words already have a note in the language's deck.

        Args:
            words: Words to check
            language: LANG_CONFIG entry

        Returns:
            Set of existing words, lowercased

        Raises:
            AnkiConnectError: AnkiConnect unreachable
        """
        existing: Set[str] = set()
        for word in words:
            note_ids = await self.client.find_notes(
                f'deck:"{language["deck_name"]}" {Config.WORD_FIELD}:"{word}"'
            )
            if note_ids:
                existing.add(word.lower())
        return existing

    def build_draft(
        self,
        word: str,
        language: Optional[Dict[str, Any]] = None,
        sentence: str = "",
        tags: Optional[Sequence[str]] = None,
    ) -> NoteDraft:
        """Note with identity fields (and the worksheet sentence, if any) filled in."""
        lang = language or detect_language(word)
        fields = dict(lang["note_fields"])
        fields[Config.WORD_FIELD] = word
        fields[Config.NOTE_ID_FIELD] = str(uuid.uuid4())
        if sentence:
            fields["Main Sentence"] = TextParser.build_main_sentence(sentence, word)
            fields["Cloze"] = TextParser.build_cloze(sentence, word)
        return NoteDraft(
            deck_name=lang["deck_name"],
            model_name=lang["note_type"],
            fields=fields,
            tags=list(tags if tags is not None else DEFAULT_TAGS),
        )

    async def _add(self, drafts: List[NoteDraft], words: List[str], sentences: List[str]) -> List[CreatedNote]:
        if not drafts:
            return []
        await self.client.create_deck(drafts[0].deck_name)
        note_ids = await self.client.add_notes(drafts)
        created = []
        for i, note_id in enumerate(note_ids or []):
            if note_id is None:
                logger.warning("Anki did not create a note for %r", words[i])
                continue
            created.append(CreatedNote(int(note_id), words[i], sentences[i]))
        return created

    async def create_word_notes(
        self,
        words: Sequence[str],
        language: Dict[str, Any],
        tags: Optional[Sequence[str]] = None,
    ) -> List[CreatedNote]:
        """
        Create one note per word with only the identity fields set.

        Returns:
            Notes that were created; failed ones are dropped

        Raises:
            AnkiConnectError: AnkiConnect unreachable
        """
        words = list(words)
        drafts = [self.build_draft(w, language, tags=tags) for w in words]
        return await self._add(drafts, words, [""] * len(words))

    async def create_notes_from_extraction(
        self,
        pages: Sequence[ExtractedPage],
        language: Optional[Dict[str, Any]] = None,
        skip: Optional[Set[str]] = None,
    ) -> List[CreatedNote]:
        """
        Create notes from worksheet pages, keeping the worksheet sentence.

        Args:
            pages: Extracted pages
            language: LANG_CONFIG entry, detected per word when None
            skip: Lowercased words to leave out (duplicates)

        Raises:
            AnkiConnectError: AnkiConnect unreachable
        """
        skip = skip or set()
        drafts, words, sentences = [], [], []
        for page in pages:
            tags = [t for t in (_tag(page.term_week), _tag(page.topic)) if t]
            for item in page.sentences:
                if not item.word or item.word.lower() in skip:
                    continue
                drafts.append(self.build_draft(item.word, language, item.sentence, tags))
                words.append(item.word)
                sentences.append(item.sentence)
        return await self._add(drafts, words, sentences)

    @staticmethod
    def text_fields(result: EnrichResult, word: str, include_sentence: bool = True) -> Dict[str, str]:
        """Map generated text onto note fields; empty values are left out."""
        fields: Dict[str, str] = {}
        if include_sentence and result.sentence:
            fields["Main Sentence"] = TextParser.build_main_sentence(result.sentence, word)
            fields["Cloze"] = TextParser.build_cloze(result.sentence, word)
        if result.definition:
            fields["Definition"] = result.definition
        if result.phonetic:
            fields["Phonetic symbol"] = result.phonetic
        if result.synonyms:
            fields["Synonyms"] = TextParser.format_synonyms(result.synonyms)
        if result.extra_info:
            fields["Extra information"] = result.extra_info
        if result.sentence_pinyin:
            fields["Main Sentence Pinyin"] = result.sentence_pinyin
        return fields

    async def save_text_fields(self, result: EnrichResult, include_sentence: bool = True) -> bool:
        """
        Write generated text into the note.

        Returns:
            False when there was nothing to write
        """
        fields = self.text_fields(result, result.word, include_sentence)
        if not fields:
            return False
        await self.client.update_note_fields(result.note_id, fields)
        return True
