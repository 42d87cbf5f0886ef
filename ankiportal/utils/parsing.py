"""Text parsing utilities for consistent text processing across the application."""

import html
import re
import unicodedata
from typing import List


class TextParser:
    """
    Centralized text parsing utilities.

    Single source of truth for HTML stripping, sentence highlighting,
    cloze building and word-list splitting.
    """

    # HTML tag removal pattern
    HTML_TAG_PATTERN = re.compile(r'<[^>]*>')

    # Whitespace normalization pattern
    WHITESPACE_PATTERN = re.compile(r'\s+')

    # Word list separators: newlines, commas, semicolons
    WORD_LIST_PATTERN = re.compile(r'[\n,;]+')

    # A single entry longer than this is a message, not a word to add
    MAX_WORDS_PER_ENTRY = 5

    HIGHLIGHT_TEMPLATE = '<span class="nodeword">{}</span>'
    CLOZE_TEMPLATE = '{{{{c1::{}}}}}'

    @classmethod
    def normalize_unicode(cls, text: str) -> str:
        """
        Normalize text to NFC form for consistent Unicode handling.

        Args:
            text: Input text

        Returns:
            NFC-normalized text
        """
        if not text:
            return ""
        return unicodedata.normalize('NFC', str(text))

    @classmethod
    def strip_html(cls, text: str) -> str:
        """Remove HTML tags."""
        if not text:
            return ""
        return cls.HTML_TAG_PATTERN.sub('', str(text))

    @classmethod
    def clean_for_tts(cls, text: str) -> str:
        """
        Clean text for TTS processing.

        Removes HTML, unescapes entities, normalizes whitespace.
        """
        if not text:
            return ""

        text = html.unescape(str(text))
        text = cls.HTML_TAG_PATTERN.sub('', text)
        text = cls.WHITESPACE_PATTERN.sub(' ', text).strip()
        return cls.normalize_unicode(text)

    @classmethod
    def _first_match(cls, word: str) -> "re.Pattern":
        return re.compile(f"({re.escape(word)})", re.IGNORECASE)

    @classmethod
    def build_main_sentence(cls, sentence: str, word: str) -> str:
        """
        Wrap the first case-insensitive occurrence of ``word`` in a
        ``nodeword`` span (matches the card template styling).

        The original casing of the sentence is preserved.
        """
        if not sentence or not word:
            return sentence or ""
        return cls._first_match(word).sub(
            lambda m: cls.HIGHLIGHT_TEMPLATE.format(m.group(1)), sentence, count=1
        )

    @classmethod
    def build_cloze(cls, sentence: str, word: str) -> str:
        """Replace the first case-insensitive occurrence of ``word`` with ``{{c1::word}}``."""
        if not sentence or not word:
            return sentence or ""
        return cls._first_match(word).sub(
            lambda m: cls.CLOZE_TEMPLATE.format(m.group(1)), sentence, count=1
        )

    @classmethod
    def safe_filename_part(cls, word: str) -> str:
        """Replace every character that is not an ASCII letter or digit with an underscore."""
        return re.sub(r'[^a-zA-Z0-9]', '_', str(word))

    @classmethod
    def parse_word_list(cls, text: str) -> List[str]:
        """
        Split user input into words to add.

        Multiple entries are separated by newlines, commas or semicolons.
        A single entry with more than five words is treated as a message
        and yields an empty list.
        """
        trimmed = (text or "").strip()
        if not trimmed:
            return []

        parts = [p.strip() for p in cls.WORD_LIST_PATTERN.split(trimmed) if p.strip()]
        if len(parts) > 1:
            return parts

        if len(trimmed.split()) > cls.MAX_WORDS_PER_ENTRY:
            return []
        return [trimmed]

    @classmethod
    def format_synonyms(cls, synonyms) -> str:
        """Join a synonym list with commas; pass strings through."""
        if isinstance(synonyms, (list, tuple)):
            return ", ".join(str(s) for s in synonyms)
        return str(synonyms)
