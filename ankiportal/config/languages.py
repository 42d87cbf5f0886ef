"""Language-specific configurations."""

import re
from typing import Any, Dict, Optional

# Base fields shared by every spelling note type
_BASE_NOTE_FIELDS = {
    "Word": "",
    "Main Sentence": "",
    "Cloze": "",
    "Phonetic symbol": "",
    "Audio": "",
    "Main Sentence Audio": "",
    "Definition": "",
    "Extra information": "",
    "Picture": "",
    "Synonyms": "",
    "Note ID": "",
}

LANG_CONFIG: Dict[str, Dict[str, Any]] = {
    "english": {
        "id": "english",
        "label": "English",
        "deck_name": "Gao English Spelling",
        "note_type": "school spelling",
        "voice": "en-US-AnaNeural",
        "word_rate": "-10%",
        "sentence_rate": "+0%",
        "enrich_fields": ["sentence", "definition", "phonetic", "synonyms", "extra_info"],
        "note_fields": {**_BASE_NOTE_FIELDS, "is_dictation_mem": ""},
    },
    "chinese": {
        "id": "chinese",
        "label": "Chinese",
        "deck_name": "Gao Chinese",
        "note_type": "school Chinese spelling",
        "voice": "zh-CN-XiaoxiaoNeural",
        "word_rate": "-10%",
        "sentence_rate": "+0%",
        "enrich_fields": [
            "sentence",
            "definition",
            "phonetic",
            "synonyms",
            "extra_info",
            "sentence_pinyin",
        ],
        "note_fields": {
            **_BASE_NOTE_FIELDS,
            "Main Sentence Pinyin": "",
            "Stroke Order Anim": "",
            "is_dictation": "",
            "is_dictation_from_mem": "",
        },
    },
}

DEFAULT_LANGUAGE = "english"

_CJK_PATTERN = re.compile(r"[\u4e00-\u9fff]")


def get_language(language_id: Optional[str]) -> Dict[str, Any]:
    """Get language config by id, falling back to English."""
    return LANG_CONFIG.get(language_id or DEFAULT_LANGUAGE, LANG_CONFIG[DEFAULT_LANGUAGE])


def detect_language(text: str) -> Dict[str, Any]:
    """Chinese characters mean Chinese, anything else is English."""
    if text and _CJK_PATTERN.search(text):
        return LANG_CONFIG["chinese"]
    return LANG_CONFIG[DEFAULT_LANGUAGE]


def get_language_by_note_type(note_type: str) -> Optional[Dict[str, Any]]:
    """Get language config by Anki note type name."""
    for lang in LANG_CONFIG.values():
        if lang["note_type"] == note_type:
            return lang
    return None


def get_language_by_deck(deck_name: str) -> Optional[Dict[str, Any]]:
    """Get language config by Anki deck name."""
    for lang in LANG_CONFIG.values():
        if lang["deck_name"] == deck_name:
            return lang
    return None
