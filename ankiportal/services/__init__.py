"""Services layer for business logic separation."""

from .anki_connect import AnkiConnectClient, AnkiConnectError
from .profile_lock import ProfileLock, ProfileLockError
from .profile_switcher import DeckListReadiness, ProfileSwitcher, ReadinessCheck
from .distributor import Distributor
from .profile_service import ProfileService
from .vocabulary_service import CreatedNote, VocabularyService
from .media_service import MediaService
from .ai_service import AIConfig, AIProvider, AIService, AIServiceError, ImageInput

__all__ = [
    "AnkiConnectClient",
    "AnkiConnectError",
    "ProfileLock",
    "ProfileLockError",
    "ReadinessCheck",
    "DeckListReadiness",
    "ProfileSwitcher",
    "Distributor",
    "ProfileService",
    "CreatedNote",
    "VocabularyService",
    "MediaService",
    "AIService",
    "AIServiceError",
    "AIProvider",
    "AIConfig",
    "ImageInput",
]
