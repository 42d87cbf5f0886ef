"""ankiportal - multi-profile Anki spelling note enrichment and distribution"""

__version__ = "1.0.0"

from .config import Config, LANG_CONFIG, SettingsManager
from .app import App, build_app

__all__ = [
    'App',
    'Config',
    'LANG_CONFIG',
    'SettingsManager',
    'build_app',
]
