import asyncio

from conftest import ENGLISH
from ankiportal.models import MediaAsset
from ankiportal.services import AnkiConnectError, Distributor, ProfileLock, ProfileService, ProfileSwitcher

DECK = ENGLISH["deck_name"]
MODEL = ENGLISH["note_type"]


def _build(anki, settings):
    lock = ProfileLock()
    switcher = ProfileSwitcher.from_settings(anki, settings)
    return Distributor(anki, switcher, lock, settings), ProfileService(anki, switcher, lock, settings)


def _distribute(anki, settings, note_ids, targets, media=None):
    async def scenario():
        distributor, _ = _build(anki, settings)
        return await distributor.distribute(note_ids, targets, media)

    return asyncio.run(scenario())


def test_distribute_copies_note_and_media_then_returns_home(anki, settings) -> None:
    note_id = anki.seed_note("Home", "creature", "uuid-1", Definition="an animal")
    media = [MediaAsset("spelling_creature_1.mp3", "QUJD")]

    results = _distribute(anki, settings, [note_id], ["Mia"], media)

    assert [r.to_dict() for r in results] == [
        {"profile": "Mia", "success": True, "notesDistributed": 1}
    ]
    copies = anki.notes_in("Mia")
    assert len(copies) == 1
    assert copies[0]["fields"]["Word"] == "creature"
    assert copies[0]["fields"]["Definition"] == "an animal"
    assert copies[0]["deck"] == DECK
    assert anki.profiles["Mia"].media == {"spelling_creature_1.mp3": "QUJD"}
    assert anki.active == "Home"


def test_distribute_twice_updates_instead_of_duplicating(anki, settings) -> None:
    note_id = anki.seed_note("Home", "creature", "uuid-1", Definition="first")
    _distribute(anki, settings, [note_id], ["Mia"])

    anki.profiles["Home"].notes[note_id]["fields"]["Definition"] = "second"
    results = _distribute(anki, settings, [note_id], ["Mia"])

    assert results[0].success and results[0].notes_distributed == 1
    copies = anki.notes_in("Mia")
    assert len(copies) == 1
    assert copies[0]["fields"]["Definition"] == "second"
    assert len(anki.actions("addNote")) == 1


def test_distribute_reports_missing_deck_and_restores_home(anki, settings) -> None:
    anki.add_profile("Leo", decks=("Other Deck",))
    note_id = anki.seed_note("Home", "creature", "uuid-1")

    results = _distribute(anki, settings, [note_id], ["Leo"])

    assert results[0].to_dict() == {
        "profile": "Leo",
        "success": False,
        "notesDistributed": 0,
        "error": f'Deck "{DECK}" not found in profile "Leo"',
    }
    assert anki.notes_in("Leo") == []
    assert anki.active == "Home"


def test_distribute_reports_missing_note_type(anki, settings) -> None:
    anki.add_profile("Leo", models=("Basic",))
    note_id = anki.seed_note("Home", "creature", "uuid-1")

    results = _distribute(anki, settings, [note_id], ["Leo"])

    assert results[0].error == f'Note type "{MODEL}" not found in profile "Leo"'
    assert anki.active == "Home"


def test_distribute_failure_in_one_target_does_not_stop_others(anki, settings) -> None:
    anki.add_profile("Leo", decks=())
    note_id = anki.seed_note("Home", "creature", "uuid-1")

    results = _distribute(anki, settings, [note_id], ["Leo", "Mia"])

    assert [(r.profile, r.success) for r in results] == [("Leo", False), ("Mia", True)]
    assert len(anki.notes_in("Mia")) == 1


def test_distribute_error_after_switch_still_returns_home(anki, settings) -> None:
    note_id = anki.seed_note("Home", "creature", "uuid-1")
    anki.fail["storeMediaFile"] = AnkiConnectError("disk full")
    anki.fail["findNotes"] = AnkiConnectError("collection closed")

    results = _distribute(anki, settings, [note_id], ["Mia"], [MediaAsset("a.mp3", "QQ==")])

    assert results[0].success is False
    assert results[0].error == "collection closed"
    assert anki.active == "Home"


def test_distribute_skips_home_and_duplicate_targets(anki, settings) -> None:
    note_id = anki.seed_note("Home", "creature", "uuid-1")

    results = _distribute(anki, settings, [note_id], ["Home", "Mia", "Mia", ""])

    assert [r.profile for r in results] == ["Mia"]


def test_distribute_fails_every_target_when_home_unknown(anki, settings) -> None:
    note_id = anki.seed_note("Home", "creature", "uuid-1")
    anki.add_profile("Leo")
    settings.set("ACTIVE_PROFILE", "Ghost")

    results = _distribute(anki, settings, [note_id], ["Mia", "Leo"])

    assert [r.error for r in results] == ['Home profile "Ghost" not found in Anki'] * 2
    assert anki.actions("loadProfile") == []


def test_distribute_without_notes_or_targets_does_nothing(anki, settings) -> None:
    note_id = anki.seed_note("Home", "creature", "uuid-1")

    assert _distribute(anki, settings, [], ["Mia"]) == []
    assert _distribute(anki, settings, [note_id], []) == []
    assert anki.actions("loadProfile") == []


def test_profile_switches_never_interleave(anki, settings) -> None:
    anki.add_profile("Leo")
    note_id = anki.seed_note("Home", "creature", "uuid-1")

    async def scenario():
        distributor, profiles = _build(anki, settings)
        await asyncio.gather(
            distributor.distribute([note_id], ["Mia"]),
            distributor.distribute([note_id], ["Leo"]),
            profiles.switch_profile("Home"),
        )

    asyncio.run(scenario())

    loads = [detail for _, action, detail in anki.calls if action == "loadProfile"]
    # every visit to a target is immediately followed by the return home
    for i, name in enumerate(loads):
        if name != "Home":
            assert loads[i + 1] == "Home"
    assert sorted(n for n in loads if n != "Home") == ["Leo", "Mia"]

    # source notes are only ever read in the home profile
    for profile, action, _ in anki.calls:
        if profile == "Home":
            continue
        assert action in {"deckNames", "modelNames", "storeMediaFile", "findNotes",
                          "updateNoteFields", "addNote", "loadProfile", "getProfiles"}
