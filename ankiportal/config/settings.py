"""Global settings and configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# .env in the project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


@dataclass
class Config:
    """Application-wide static defaults."""

    # AnkiConnect
    ANKI_CONNECT_URL: str = os.environ.get("ANKI_CONNECT_URL", "http://localhost:8765")
    ANKI_CONNECT_VERSION: int = 6

    # Profile switching (seconds)
    PROFILE_SETTLE_DELAY: float = 2.0
    PROFILE_POLL_INTERVAL: float = 0.5
    PROFILE_MIN_ACCEPT: float = 3.0
    PROFILE_MAX_WAIT: float = 15.0

    # Identity field used to correlate notes across profiles
    NOTE_ID_FIELD: str = "Note ID"
    WORD_FIELD: str = "Word"

    # Text enrichment
    ENRICH_BATCH_SIZE: int = 20

    # Gemini image generation
    GEMINI_API_URL: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-2.5-flash-image:generateContent"
    )

    # Network
    RETRIES: int = 3
    TIMEOUT: int = 30
    AI_TIMEOUT: int = 120
    IMAGE_TIMEOUT: int = 90

    # Cross-platform paths using pathlib
    BASE_DIR: Path = Path(__file__).parent.parent.parent.resolve()
    SETTINGS_FILE: str = str(BASE_DIR / "data" / "settings.json")
    LOG_FILE: str = str(BASE_DIR / "data" / "ankiportal.log")
