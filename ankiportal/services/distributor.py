"""
Distributor - replicate notes from the home profile into other profiles.

For each target profile, under the shared ProfileLock: switch in, check
that the deck and note type exist, store media, upsert every note by its
"Note ID" UUID, and switch back home. Every outcome is returned as a
DistributeResult; nothing is raised to the caller.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..config import Config, get_language, get_language_by_note_type
from ..models import AnkiNote, DistributeResult, MediaAsset, NoteDraft
from .profile_lock import ProfileLock
from .profile_switcher import ProfileSwitcher

logger = logging.getLogger(__name__)


class Distributor:
    """
    Copies notes across Anki profiles.

    Targets are visited one at a time: Anki has a single active-profile
    slot, so concurrent switches would race.
    """

    def __init__(
        self,
        client,
        switcher: ProfileSwitcher,
        lock: ProfileLock,
        settings,
    ):
        """
        Initialize distributor.

        Args:
            client: AnkiConnectClient
            switcher: ProfileSwitcher used for every switch
            lock: The process-wide ProfileLock
            settings: SettingsManager holding ACTIVE_PROFILE
        """
        self.client = client
        self.switcher = switcher
        self.lock = lock
        self.settings = settings

    @property
    def home_profile(self) -> str:
        return str(self.settings.get("ACTIVE_PROFILE") or "")

    async def distribute(
        self,
        note_ids: Sequence[int],
        targets: Sequence[str],
        media: Optional[Sequence[MediaAsset]] = None,
    ) -> List[DistributeResult]:
        """
        Distribute notes to each target profile.

        Args:
            note_ids: Note ids in the home profile
            targets: Profile names to copy into (home is skipped)
            media: Media files referenced by the notes

        Returns:
            One DistributeResult per visited target
        """
        home = self.home_profile
        if not home:
            logger.warning("No active profile configured, skipping distribution")
            return []

        wanted = []
        for target in targets:
            if target and target != home and target not in wanted:
                wanted.append(target)
        if not note_ids or not wanted:
            return []

        home_error = await self._check_home(home)
        if home_error:
            return [DistributeResult(t, False, 0, home_error) for t in wanted]

        try:
            # Anki is only guaranteed to be on the home profile while the lock is held
            source_notes = await self.lock.run(lambda: self.client.notes_info(list(note_ids)))
        except Exception as e:
            logger.error("Could not read source notes: %s", e)
            return [DistributeResult(t, False, 0, f"Could not read source notes: {e}") for t in wanted]
        if not source_notes:
            logger.warning("No source notes found for %d id(s)", len(note_ids))
            return []

        lang = get_language_by_note_type(source_notes[0].model_name) or get_language(None)
        deck_name = source_notes[0].deck_name or lang["deck_name"]
        model_name = source_notes[0].model_name or lang["note_type"]

        results = []
        for target in wanted:
            result = await self.lock.run(
                lambda t=target: self._distribute_one(
                    t, source_notes, deck_name, model_name, media or []
                )
            )
            logger.info(
                "Distribution to %r: %s (%d note(s))%s",
                result.profile,
                "ok" if result.success else "failed",
                result.notes_distributed,
                f" - {result.error}" if result.error else "",
            )
            results.append(result)
        return results

    async def _check_home(self, home: str) -> Optional[str]:
        """
        Revalidate the stored home profile against Anki's profile list.

        Returns an error message when Anki does not know the profile.
        """
        try:
            profiles = await self.client.get_profiles()
        except Exception as e:
            logger.warning("Could not list profiles, trusting stored home %r: %s", home, e)
            return None
        if home not in profiles:
            return f'Home profile "{home}" not found in Anki'
        return None

    async def _distribute_one(
        self,
        target: str,
        source_notes: List[AnkiNote],
        deck_name: str,
        model_name: str,
        media: Sequence[MediaAsset],
    ) -> DistributeResult:
        """Distribute into one profile. Caller holds the lock."""
        home = self.home_profile
        try:
            await self.switcher.switch_and_wait(target)

            decks = await self.client.deck_names()
            if deck_name not in decks:
                await self.switcher.switch_and_wait(home)
                return DistributeResult(
                    target, False, 0, f'Deck "{deck_name}" not found in profile "{target}"'
                )

            models = await self.client.model_names()
            if model_name not in models:
                await self.switcher.switch_and_wait(home)
                return DistributeResult(
                    target, False, 0, f'Note type "{model_name}" not found in profile "{target}"'
                )

            for asset in media:
                try:
                    await self.client.store_media_file(asset.filename, asset.data)
                except Exception as e:
                    logger.warning("Storing %s in %r failed: %s", asset.filename, target, e)

            distributed = 0
            for note in source_notes:
                if await self._upsert(note, target, deck_name, model_name):
                    distributed += 1

            await self.switcher.switch_and_wait(home)
            return DistributeResult(target, True, distributed)

        except Exception as e:
            logger.error("Distribution to %r failed: %s", target, e)
            try:
                await self.switcher.switch_and_wait(home)
            except Exception as restore_error:
                logger.error("Could not switch back to home profile %r: %s", home, restore_error)
            return DistributeResult(target, False, 0, str(e) or "Distribution failed")

    async def _upsert(self, note: AnkiNote, target: str, deck_name: str, model_name: str) -> bool:
        """Update the note matching the UUID or create it. Returns True if distributed."""
        fields: Dict[str, str] = dict(note.fields)
        uuid = fields.get(Config.NOTE_ID_FIELD)
        if not uuid:
            logger.debug("Note %s has no %s, skipping", note.note_id, Config.NOTE_ID_FIELD)
            return False

        existing = await self.client.find_notes(f'deck:"{deck_name}" "{uuid}"')
        if existing:
            await self.client.update_note_fields(existing[0], fields)
            return True

        try:
            await self.client.add_note(NoteDraft(deck_name, model_name, fields, list(note.tags)))
        except Exception as e:
            # Usually a duplicate on the first field
            logger.warning("addNote failed for %r in %r: %s", note.word, target, e)
            return False
        return True
