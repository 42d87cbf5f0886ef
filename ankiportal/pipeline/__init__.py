"""Enrichment pipeline."""

from .enrichment import EnrichmentPipeline
from .progress import ConsoleProgress, ProgressSink, format_summary

__all__ = [
    'EnrichmentPipeline',
    'ConsoleProgress',
    'ProgressSink',
    'format_summary',
]
