"""Fetchers module - media generation backends."""

from .base import BaseFetcher, MediaGenerationError
from .audio import AudioFetcher
from .images import ImageFetcher, detect_image_format, image_mime_type

__all__ = [
    'BaseFetcher',
    'MediaGenerationError',
    'AudioFetcher',
    'ImageFetcher',
    'detect_image_format',
    'image_mime_type',
]
