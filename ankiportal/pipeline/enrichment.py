"""
Enrichment pipeline - from a word list (or worksheet) to finished notes.

Stages run strictly in order, each one for the whole batch before the next
starts: duplicate filter, creation, text, text persistence, audio, image,
distribution. Failures inside a stage are recorded per note and the batch
carries on; only AnkiConnect connectivity failures during the duplicate
filter and creation propagate.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config import Config, detect_language
from ..models import EnrichResult, ExtractedPage, MediaAsset, PipelineResult
from ..services.vocabulary_service import CreatedNote
from ..utils.paths import MediaPathGenerator
from .progress import ProgressSink

logger = logging.getLogger(__name__)

NO_RESULT_ERROR = "No result returned for this word"


class EnrichmentPipeline:
    """
    Orchestrates VocabularyService, AIService, MediaService and Distributor.

    Usage:
        pipeline = EnrichmentPipeline(client, vocabulary, ai, media, distributor, profiles)
        result = await pipeline.run(["creature", "habitat"], ConsoleProgress())
    """

    def __init__(
        self,
        client,
        vocabulary,
        ai,
        media,
        distributor,
        profiles,
        batch_size: Optional[int] = None,
    ):
        """
        Initialize pipeline.

        Args:
            client: AnkiConnectClient (home profile)
            vocabulary: VocabularyService
            ai: AIService used for text generation
            media: MediaService used for audio and images
            distributor: Distributor for the final stage
            profiles: ProfileService providing distribution targets
            batch_size: Words per text-generation request
        """
        self.client = client
        self.vocabulary = vocabulary
        self.ai = ai
        self.media = media
        self.distributor = distributor
        self.profiles = profiles
        self.batch_size = batch_size or Config.ENRICH_BATCH_SIZE

    async def run(
        self,
        words: Sequence[str],
        reporter: ProgressSink,
        language: Optional[Dict[str, Any]] = None,
    ) -> PipelineResult:
        """
        Add and fully enrich a list of words.

        Args:
            words: Words or phrases to add
            reporter: Progress sink
            language: LANG_CONFIG entry, detected from the first word when None

        Raises:
            AnkiConnectError: AnkiConnect unreachable during stages 1-2
        """
        result = PipelineResult()
        words = [w.strip() for w in words if w and w.strip()]
        if not words:
            return result
        lang = language or detect_language(words[0])

        # 1. Duplicate filter
        await reporter.update(f"Checking duplicates for {len(words)} words...")
        dupes = await self.vocabulary.check_duplicates(words, lang)
        new_words = [w for w in words if w.lower() not in dupes]
        result.duplicates = len(dupes)
        if not new_words:
            return result

        # 2. Creation
        await reporter.update(
            f"{len(dupes)} duplicate(s) skipped. Creating {len(new_words)} notes..."
        )
        created = await self.vocabulary.create_word_notes(new_words, lang)
        if not created:
            result.errors.append("Failed to create any notes")
            return result
        result.created = len(created)
        result.note_ids = [c.note_id for c in created]

        # 3. Text generation
        await reporter.update(f"Enriching text fields for {len(created)} words...")
        enriched = await self.enrich_text(created, lang["enrich_fields"], lang, reporter)
        for item in enriched:
            if not item.ok:
                result.errors.append(f'Text for "{item.word}": {item.error}')

        # 4. Text persistence
        await reporter.update("Saving text fields to Anki...")
        await self._save_text(enriched, result.errors, include_sentence=True)

        # Only text failures keep a note out of the media stages
        ready = [
            CreatedNote(item.note_id, item.word, item.sentence or "")
            for item in enriched if item.ok
        ]

        media_assets = await self._generate_media(ready, lang, result.errors, reporter)
        await self._distribute(result, media_assets, reporter)
        return result

    async def run_extracted(
        self,
        pages: Sequence[ExtractedPage],
        reporter: ProgressSink,
        language: Optional[Dict[str, Any]] = None,
    ) -> PipelineResult:
        """
        Add words from extracted worksheet pages.

        The worksheet sentence becomes the note sentence and is never
        regenerated; only the remaining text fields come from the AI.

        Raises:
            AnkiConnectError: AnkiConnect unreachable during stages 1-2
        """
        result = PipelineResult()
        words = [s.word for page in pages for s in page.sentences if s.word]
        if not words:
            result.errors.append("No words extracted")
            return result
        lang = language or detect_language(words[0])

        # 1. Duplicate filter
        await reporter.update(f"Checking duplicates for {len(words)} extracted words...")
        dupes = await self.vocabulary.check_duplicates(words, lang)
        result.duplicates = len(dupes)
        if all(w.lower() in dupes for w in words):
            return result

        # 2. Creation, sentence and cloze included
        await reporter.update(
            f"{len(dupes)} duplicate(s) skipped. Creating {len(words) - len(dupes)} notes..."
        )
        created = await self.vocabulary.create_notes_from_extraction(pages, lang, skip=dupes)
        if not created:
            result.errors.append("Failed to create any notes")
            return result
        result.created = len(created)
        result.note_ids = [c.note_id for c in created]

        # 3. Text generation for the non-sentence fields
        fields = [f for f in lang["enrich_fields"] if f != "sentence"]
        await reporter.update(f"Enriching text fields for {len(created)} words...")
        enriched = await self.enrich_text(created, fields, lang, reporter)
        for item in enriched:
            if not item.ok:
                result.errors.append(f'Text for "{item.word}": {item.error}')

        # 4. Text persistence, worksheet sentence kept
        await reporter.update("Saving text fields to Anki...")
        await self._save_text(enriched, result.errors, include_sentence=False)

        media_assets = await self._generate_media(created, lang, result.errors, reporter)
        await self._distribute(result, media_assets, reporter)
        return result

    async def enrich_text(
        self,
        notes: Sequence[CreatedNote],
        fields: Sequence[str],
        language: Dict[str, Any],
        reporter: Optional[ProgressSink] = None,
    ) -> List[EnrichResult]:
        """
        Generate text fields chunk by chunk, one AI request per chunk.

        A failing chunk marks each of its notes with the error; other
        chunks are unaffected. No retry.
        """
        results: List[EnrichResult] = []
        chunks = [notes[i:i + self.batch_size] for i in range(0, len(notes), self.batch_size)]

        for index, chunk in enumerate(chunks):
            if reporter is not None and len(chunks) > 1:
                await reporter.update(
                    f"Enriching text fields... batch {index + 1}/{len(chunks)}"
                )
            cards = [{"word": n.word, "sentence": n.sentence} for n in chunk]
            try:
                parsed = await self.ai.enrich_batch(cards, fields, language["id"])
            except Exception as e:
                logger.error("Text batch %d/%d failed: %s", index + 1, len(chunks), e)
                message = f"Text enrichment failed: {e}"
                results.extend(EnrichResult(n.note_id, n.word, error=message) for n in chunk)
                continue
            results.extend(self._match(chunk, parsed))

        return results

    @staticmethod
    def _answer_for(note: CreatedNote, index: int, parsed: List[Any]) -> Optional[Dict[str, Any]]:
        """
        Answer for one note: the item at the same position when it is an
        object for this word (or names no word), else the item naming the word.
        """
        word = note.word.lower()
        item = parsed[index] if index < len(parsed) else None
        if isinstance(item, dict) and item:
            answered = str(item.get("word") or "").strip().lower()
            if not answered or answered == word:
                return item
        return next(
            (
                p for p in parsed
                if isinstance(p, dict) and str(p.get("word") or "").strip().lower() == word
            ),
            None,
        )

    @classmethod
    def _match(cls, chunk: Sequence[CreatedNote], parsed: List[Any]) -> List[EnrichResult]:
        """Pair answers with notes by position, falling back to the word."""
        matched = []
        for i, note in enumerate(chunk):
            item = cls._answer_for(note, i, parsed)
            if not item:
                matched.append(EnrichResult(note.note_id, note.word, error=NO_RESULT_ERROR))
                continue
            matched.append(EnrichResult(
                note_id=note.note_id,
                word=note.word,
                sentence=note.sentence or item.get("sentence") or None,
                definition=item.get("definition"),
                phonetic=item.get("phonetic"),
                synonyms=item.get("synonyms"),
                extra_info=item.get("extra_info"),
                sentence_pinyin=item.get("sentence_pinyin"),
            ))
        return matched

    async def _save_text(self, enriched: Sequence[EnrichResult], errors: List[str], include_sentence: bool) -> None:
        for item in enriched:
            if not item.ok:
                continue
            try:
                await self.vocabulary.save_text_fields(item, include_sentence=include_sentence)
            except Exception as e:
                logger.warning("Saving text for %r failed: %s", item.word, e)
                errors.append(f'Save text for "{item.word}": {e}')

    async def _store(self, asset: MediaAsset, note_id: int, field: str, value: str) -> None:
        await self.media.store(asset)
        await self.client.update_note_fields(note_id, {field: value})

    async def _audio_for(self, note: CreatedNote, language: Dict[str, Any], errors: List[str]) -> List[MediaAsset]:
        """Word and sentence audio for one note, requested concurrently."""
        jobs = [self.media.generate_word_audio(note.word, note.note_id, language)]
        if note.sentence:
            jobs.append(
                self.media.generate_sentence_audio(note.sentence, note.word, note.note_id, language)
            )
        generated = await asyncio.gather(*jobs, return_exceptions=True)

        assets = []
        for field, outcome in zip(("Audio", "Main Sentence Audio"), generated):
            if isinstance(outcome, BaseException):
                errors.append(f'Audio for "{note.word}": {outcome}')
                continue
            try:
                await self._store(outcome, note.note_id, field, MediaPathGenerator.sound_ref(outcome.filename))
            except Exception as e:
                errors.append(f'Audio for "{note.word}": {e}')
                continue
            assets.append(outcome)
        return assets

    async def _generate_media(
        self,
        notes: Sequence[CreatedNote],
        language: Dict[str, Any],
        errors: List[str],
        reporter: ProgressSink,
    ) -> List[MediaAsset]:
        """Stages 5 and 6. Returns every asset stored in the home profile."""
        assets: List[MediaAsset] = []

        # 5. Audio
        for i, note in enumerate(notes):
            await reporter.update(f"Generating audio... {i + 1}/{len(notes)}: {note.word}")
            assets.extend(await self._audio_for(note, language, errors))

        # 6. Images, only for notes with a sentence to illustrate
        for i, note in enumerate(notes):
            if not note.sentence:
                continue
            await reporter.update(f"Generating images... {i + 1}/{len(notes)}: {note.word}")
            try:
                image = await self.media.generate_image(note.word, note.sentence, note.note_id)
                await self._store(image, note.note_id, "Picture", MediaPathGenerator.image_ref(image.filename))
            except Exception as e:
                logger.warning("Image for %r failed: %s", note.word, e)
                errors.append(f'Image for "{note.word}": {e}')
                continue
            assets.append(image)

        return assets

    async def _distribute(self, result: PipelineResult, media: List[MediaAsset], reporter: ProgressSink) -> None:
        """Stage 7: copy every created note, with its media, to the target profiles."""
        targets = self.profiles.distribution_targets()
        if not targets:
            logger.debug("No distribution targets configured")
            return

        await reporter.update(f"Distributing {len(result.note_ids)} note(s) to {', '.join(targets)}...")
        result.distribution = await self.distributor.distribute(result.note_ids, targets, media)
        for dist in result.distribution:
            if not dist.success:
                result.errors.append(f'Distribute to "{dist.profile}": {dist.error}')
