"""Profile service - manual profile switches and distribution targets."""

import logging
from typing import Any, Dict, List

from ..config import Config, LANG_CONFIG
from .profile_lock import ProfileLock
from .profile_switcher import ProfileSwitcher

logger = logging.getLogger(__name__)


class ProfileService:
    """
    User-initiated profile operations.

    Shares the ProfileLock with the Distributor so a manual switch never
    lands in the middle of a distribution run.
    """

    def __init__(self, client, switcher: ProfileSwitcher, lock: ProfileLock, settings):
        self.client = client
        self.switcher = switcher
        self.lock = lock
        self.settings = settings

    async def list_profiles(self) -> Dict[str, Any]:
        """List Anki profiles and the profile the portal treats as home."""
        profiles = await self.client.get_profiles()
        return {"profiles": profiles, "active": self.settings.get("ACTIVE_PROFILE") or None}

    async def switch_profile(self, name: str) -> bool:
        """
        Make ``name`` the home profile.

        Args:
            name: Profile to load

        Returns:
            Whether the switch was confirmed by the readiness check
        """
        if not name or not isinstance(name, str):
            raise ValueError("Profile name required")

        confirmed = await self.lock.run(lambda: self.switcher.switch_and_wait(name))
        self.settings.set("ACTIVE_PROFILE", name)
        logger.info("Home profile is now %r (confirmed=%s)", name, confirmed)
        return confirmed

    async def sync(self) -> None:
        """
        Sync the home profile with AnkiWeb.

        Held under the lock so the sync never runs against a target
        profile in the middle of a distribution.

        Raises:
            AnkiConnectError: Sync failed or AnkiConnect unreachable
        """
        await self.lock.run(self.client.sync)
        logger.info("Synced profile %r", self.settings.get("ACTIVE_PROFILE"))

    def distribution_targets(self) -> List[str]:
        """Configured DISTRIBUTION_PROFILES without the home profile."""
        home = self.settings.get("ACTIVE_PROFILE") or ""
        targets = []
        for name in self.settings.get_list("DISTRIBUTION_PROFILES"):
            if name != home and name not in targets:
                targets.append(name)
        return targets

    async def health(self) -> Dict[str, Any]:
        """Check AnkiConnect and the presence of each language's deck and note type."""
        checks: Dict[str, Any] = {"ankiConnect": False, "ankiVersion": None, "languages": {}}
        try:
            checks["ankiVersion"] = await self.client.version()
            checks["ankiConnect"] = True
            decks = await self.client.deck_names()
            models = await self.client.model_names()
        except Exception as e:
            logger.warning("AnkiConnect health check failed: %s", e)
            return {"ok": False, "checks": checks}

        for lang_id, lang in LANG_CONFIG.items():
            has_model = lang["note_type"] in models
            missing: List[str] = []
            if has_model:
                try:
                    fields = await self.client.model_field_names(lang["note_type"])
                except Exception as e:
                    logger.warning("Could not read fields of %r: %s", lang["note_type"], e)
                    fields = []
                missing = [f for f in (Config.WORD_FIELD, Config.NOTE_ID_FIELD) if f not in fields]
            checks["languages"][lang_id] = {
                "deck": lang["deck_name"] in decks,
                "model": has_model,
                "missingFields": missing,
            }
        ok = any(
            l["deck"] and l["model"] and not l["missingFields"]
            for l in checks["languages"].values()
        )
        return {"ok": ok, "checks": checks}
