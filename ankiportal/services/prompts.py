"""Prompt templates and response parsing for text enrichment."""

import json
import re
from typing import Any, Dict, List, Optional, Sequence

ENGLISH_FIELD_DESCRIPTIONS = {
    "sentence": '"sentence": a natural example sentence using the word/phrase that a 10-year-old can easily understand (10-20 words)',
    "definition": '"definition": a clear, simple definition suitable for a 10-year-old child. If the word has multiple meanings, list the most common 1-2. Format as HTML: <ul><li>meaning one</li><li>meaning two</li></ul>',
    "phonetic": '"phonetic": IPA pronunciation (e.g., /ˈkriːtʃər/). For multi-word phrases, give pronunciation of the key word.',
    "synonyms": '"synonyms": 2-4 synonyms or related words/phrases, as a JSON array of strings',
    "extra_info": '"extra_info": 2 additional example sentences using the word, formatted as HTML: <ul><li>sentence one</li><li>sentence two</li></ul>',
}

CHINESE_FIELD_DESCRIPTIONS = {
    "sentence": '"sentence": a natural Chinese example sentence using the word/phrase, suitable for a Primary 3 student (8-15 characters)',
    "definition": '"definition": a simple Chinese definition suitable for a Primary 3 child. If the word has multiple meanings, list the most common 1-2. Format as HTML: <ul><li>释义一</li><li>释义二</li></ul>',
    "phonetic": '"phonetic": pinyin with tone marks (e.g., "gǎn kuài"). For multi-character words, give pinyin for each character separated by spaces.',
    "synonyms": '"synonyms": 2-4 Chinese synonyms or related words, as a JSON array of strings',
    "extra_info": '"extra_info": 2 additional Chinese example sentences using the word, formatted as HTML: <ul><li>例句一</li><li>例句二</li></ul>',
    "sentence_pinyin": '"sentence_pinyin": full pinyin with tone marks for the entire sentence (e.g., "tā pǎo de hěn kuài")',
}

ENRICH_SUFFIX = """Important:
- Keep language simple and appropriate for a 10-year-old
- If it's a phrase (like "came down with"), treat it as a unit
- For definitions of phrases, explain the idiomatic meaning"""

EXTRACTION_PROMPT = """You are extracting spelling worksheet data from the provided images.

Return ONLY a JSON array (no markdown, no code fences) with this structure:
[
  {
    "pageNumber": 1,
    "termWeek": "Term X Week Y",
    "topic": "The topic title",
    "sentences": [
      { "number": 1, "sentence": "Full sentence exactly as written.", "word": "the underlined word or phrase" }
    ]
  }
]

Rules:
1. Extract term/week from the header "SPELLING LIST (Term X Week Y)"
2. Extract the topic from the subtitle
3. For each numbered sentence (1-10), copy it EXACTLY and identify the bold/underlined word or phrase
4. The underlined text may be a single word or a multi-word phrase - extract the ENTIRE underlined portion
5. Return ONLY valid JSON, nothing else
"""

_FENCE_START = re.compile(r"^```(?:json)?\n?")
_FENCE_END = re.compile(r"\n?```$")


def get_field_descriptions(fields: Sequence[str], language_id: Optional[str] = None) -> List[str]:
    """Describe each requested field for the given language (English fallback)."""
    descs = CHINESE_FIELD_DESCRIPTIONS if language_id == "chinese" else ENGLISH_FIELD_DESCRIPTIONS
    return [descs.get(f) or ENGLISH_FIELD_DESCRIPTIONS.get(f, "") for f in fields]


def build_batch_prompt(
    cards: Sequence[Dict[str, Any]],
    fields: Sequence[str],
    language_id: Optional[str] = None,
) -> str:
    """
    Build one prompt covering every card of a chunk.

    Args:
        cards: Dicts with "word" and optional "sentence"
        fields: Field keys to generate
        language_id: "english" or "chinese"
    """
    field_descs = ",\n  ".join(get_field_descriptions(fields, language_id))

    lines = []
    for i, card in enumerate(cards):
        line = f'{i + 1}. Word/phrase: "{card["word"]}"'
        if card.get("sentence"):
            line += f' | Context sentence: "{card["sentence"]}"'
        lines.append(line)
    word_list = "\n".join(lines)

    return f"""I have {len(cards)} words/phrases. For EACH word, generate these fields:
{{
  {field_descs}
}}

Words:
{word_list}

Return ONLY a JSON array with exactly {len(cards)} objects, one per word in the same order. Each object must include a "word" field matching the input. No markdown, no code fences.

{ENRICH_SUFFIX}"""


def strip_code_fences(text: str) -> str:
    s = (text or "").strip()
    if s.startswith("```"):
        s = _FENCE_END.sub("", _FENCE_START.sub("", s))
    return s


def extract_json_array(text: str) -> List[Any]:
    """
    Parse a JSON array out of a model response.

    Accepts bare JSON, fenced JSON, or JSON surrounded by prose.

    Raises:
        ValueError: If no JSON array can be found
    """
    s = strip_code_fences(text)
    try:
        result = json.loads(s)
        if isinstance(result, list):
            return result
    except json.JSONDecodeError:
        pass

    start = s.find("[")
    end = s.rfind("]")
    if start == -1 or end == -1 or end <= start:
        raise ValueError("No JSON array found in response")
    result = json.loads(s[start:end + 1])
    if not isinstance(result, list):
        raise ValueError("No JSON array found in response")
    return result


IMAGE_PROMPT = """Create a simple, clear cartoon illustration for a children's vocabulary flashcard.

The illustration must accurately and literally depict this sentence: "{sentence}"
The key vocabulary word is: "{word}"

Requirements:
- Create a scene, but do not literally put the sentence in the result picture
- Show exactly what the sentence describes, with no extra characters, objects or actions
- Real-world objects must look physically correct (right number of limbs, fingers, wheels, handles, etc.)
- Use bright, friendly colors
- Keep the composition simple and uncluttered with one clear focal point
- The illustration should help a 10-year-old understand and remember the word "{word}\""""


def build_image_prompt(word: str, sentence: str) -> str:
    """Prompt for the flashcard picture; ``sentence`` should be plain text."""
    return IMAGE_PROMPT.format(word=word, sentence=sentence)
