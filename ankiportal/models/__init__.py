"""Data models."""

from .note import (
    AnkiNote,
    NoteDraft,
    MediaAsset,
    DistributeResult,
    EnrichResult,
    PipelineResult,
    ExtractedPage,
    ExtractedSentence,
)

__all__ = [
    'AnkiNote',
    'NoteDraft',
    'MediaAsset',
    'DistributeResult',
    'EnrichResult',
    'PipelineResult',
    'ExtractedPage',
    'ExtractedSentence',
]
