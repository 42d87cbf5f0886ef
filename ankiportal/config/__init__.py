"""Configuration module for ankiportal."""

from .settings import Config
from .languages import (
    LANG_CONFIG,
    DEFAULT_LANGUAGE,
    detect_language,
    get_language,
    get_language_by_deck,
    get_language_by_note_type,
)
from .config_manager import SettingsManager

__all__ = [
    'Config',
    'LANG_CONFIG',
    'DEFAULT_LANGUAGE',
    'SettingsManager',
    'detect_language',
    'get_language',
    'get_language_by_deck',
    'get_language_by_note_type',
]
