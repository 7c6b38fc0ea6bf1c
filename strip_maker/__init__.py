"""
StripMaker — prompt-to-comic-strip generation.

One prompt → six captioned panels → one composite PNG.

Usage:
    from strip_maker import ComicStripPipeline, ComicSession

    pipeline = ComicStripPipeline(gateway=GeminiClient(api_key), history=history)
    session = ComicSession(title="Robot Painter")
    async for snapshot in pipeline.generate(session, "A robot learns to paint"):
        ...
"""

from strip_maker.comic_generator import ComicStripPipeline, ExportResult
from strip_maker.compositor import StripCompositor
from strip_maker.gemini_client import GeminiClient, ImageBlob
from strip_maker.history import HistoryStore, SQLiteKeyValueStore
from strip_maker.models import Comic, ComicSession, Panel, PanelDefinition, RunStatus, StripSnapshot

__all__ = [
    "ComicStripPipeline",
    "ExportResult",
    "StripCompositor",
    "GeminiClient",
    "ImageBlob",
    "HistoryStore",
    "SQLiteKeyValueStore",
    "Comic",
    "ComicSession",
    "Panel",
    "PanelDefinition",
    "RunStatus",
    "StripSnapshot",
]
