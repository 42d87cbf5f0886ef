import pytest

from ankiportal.config import detect_language, get_language, get_language_by_deck, get_language_by_note_type
from ankiportal.utils import MediaPathGenerator, TextParser


def test_main_sentence_wraps_first_case_insensitive_match() -> None:
    sentence = "Creature comforts: every creature needs a home."

    assert TextParser.build_main_sentence(sentence, "creature") == (
        '<span class="nodeword">Creature</span> comforts: every creature needs a home.'
    )
    assert TextParser.build_cloze(sentence, "creature") == (
        "{{c1::Creature}} comforts: every creature needs a home."
    )


def test_word_with_regex_characters_is_matched_literally() -> None:
    assert TextParser.build_cloze("Is it (a.k.a.) fine?", "(a.k.a.)") == "Is it {{c1::(a.k.a.)}} fine?"


def test_sentence_without_the_word_is_unchanged() -> None:
    assert TextParser.build_main_sentence("No match here.", "creature") == "No match here."


@pytest.mark.parametrize(
    "text, expected",
    [
        ("creature", ["creature"]),
        ("creature, habitat; burrow", ["creature", "habitat", "burrow"]),
        ("came down with\nhabitat\n\n", ["came down with", "habitat"]),
        ("can you please add these words for me", []),
        ("   ", []),
    ],
)
def test_parse_word_list(text, expected) -> None:
    assert TextParser.parse_word_list(text) == expected


def test_clean_for_tts_strips_markup() -> None:
    assert TextParser.clean_for_tts('The <span class="nodeword">cat</span> &amp;  dog') == "The cat & dog"


def test_media_filenames_are_deterministic() -> None:
    assert MediaPathGenerator.audio_word("came down with", 17) == "spelling_came_down_with_17.mp3"
    assert MediaPathGenerator.audio_sentence("it's", 17) == "spelling_sentence_it_s_17.mp3"
    assert MediaPathGenerator.image("creature", 17, "image/jpeg") == "spelling_img_creature_17.jpg"
    assert MediaPathGenerator.image("creature", 17, "image/png") == "spelling_img_creature_17.png"
    assert MediaPathGenerator.sound_ref("a.mp3") == "[sound:a.mp3]"


def test_language_lookup() -> None:
    assert detect_language("赶快")["id"] == "chinese"
    assert detect_language("creature")["id"] == "english"
    assert get_language("klingon")["id"] == "english"
    assert get_language_by_deck("Gao Chinese")["note_type"] == "school Chinese spelling"
    assert get_language_by_note_type("Basic") is None
