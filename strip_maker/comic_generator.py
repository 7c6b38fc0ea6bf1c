"""
StripMaker — Main Orchestrator.

ComicStripPipeline ties the stages together:
  Prompt → Script → Panel images (one at a time) → History → Composite PNG

Operations publish progress as an async stream of StripSnapshot values. Each
snapshot carries the whole panel tuple, so a consumer can redraw from any one
of them without tracking deltas.

A run's backend results are tagged with the session epoch at the time the run
started. Starting another run (or opening a comic from history) moves the
epoch on, and late results from the old run are dropped.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional, Protocol

from strip_maker.compositor import CompositeExport, StripCompositor
from strip_maker.errors import (
    BackendError,
    CompositionError,
    GenerationError,
    StorageError,
    StripMakerError,
    ValidationError,
)
from strip_maker.gemini_client import ImageBlob
from strip_maker.history import HistoryStore
from strip_maker.models import (
    PANEL_COUNT,
    Comic,
    ComicSession,
    Panel,
    PanelDefinition,
    RunStatus,
    StripSnapshot,
)

logger = logging.getLogger(__name__)

OUTPUT_ROOT = Path("data/comics")

SCRIPT_MESSAGE = "WRITING SCRIPT..."
STEP_MESSAGES = ["INKING...", "COLORING...", "SHADING...", "STAPLING...", "DISTRIBUTING...", "FINALIZING..."]
FALLBACK_STEP_MESSAGE = "DRAWING..."

EMPTY_PROMPT_MESSAGE = "Please enter a story idea."
REDRAW_FAILED_MESSAGE = "Failed to redraw this panel."


def _step_message(index: int) -> str:
    return STEP_MESSAGES[index] if index < len(STEP_MESSAGES) else FALLBACK_STEP_MESSAGE


class StoryGateway(Protocol):
    """The two backend capabilities the pipeline drives."""

    async def decompose_story(self, prompt: str) -> list[PanelDefinition]: ...

    async def render_panel_image(self, description: str, style: str) -> ImageBlob: ...


@dataclass(frozen=True)
class ExportResult:
    """Outcome of one export: a written file, or the reason there isn't one."""
    export: Optional[CompositeExport] = None
    error: Optional[CompositionError] = None

    @property
    def ok(self) -> bool:
        return self.export is not None

    @property
    def path(self) -> Optional[Path]:
        return self.export.path if self.export else None

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""


class ComicStripPipeline:
    """
    Prompt-to-strip generator.

    Usage:
        pipeline = ComicStripPipeline(gateway=GeminiClient(...), history=history)
        session = ComicSession(title="Robot Painter")
        async for snapshot in pipeline.generate(session, "A robot learns to paint"):
            render(snapshot.panels)
        result = await pipeline.export(session)
    """

    def __init__(
        self,
        gateway: StoryGateway,
        history: HistoryStore,
        compositor: Optional[StripCompositor] = None,
        output_root: Optional[str] = None,
    ):
        self.gateway = gateway
        self.history = history
        self.compositor = compositor or StripCompositor()
        self.output_root = Path(output_root) if output_root else OUTPUT_ROOT

    # ------------------------------------------------------------------
    # Full generation
    # ------------------------------------------------------------------

    async def generate(
        self,
        session: ComicSession,
        prompt: str,
        title: Optional[str] = None,
        style: Optional[str] = None,
    ) -> AsyncIterator[StripSnapshot]:
        """
        Generate a complete strip from a prompt.

        Yields one snapshot once the script is in (all panels empty), then one
        per drawn panel; the last is COMPLETE and carries the saved Comic.
        A failure yields a single FAILED snapshot and ends the stream.
        """
        if not prompt or not prompt.strip():
            yield session.snapshot(error=ValidationError(EMPTY_PROMPT_MESSAGE), status=RunStatus.FAILED)
            return

        if title is not None:
            session.title = title
        if style is not None:
            session.style = style

        epoch = session.begin_run()
        session.status = RunStatus.SCRIPTING
        session.loading_message = SCRIPT_MESSAGE
        session.error = None
        session.panels = ()

        logger.info("=" * 60)
        logger.info(f"STRIP PIPELINE [{epoch}]: {prompt.strip()[:60]}")
        logger.info("=" * 60)

        try:
            # === Stage 1: Script ===
            try:
                definitions = await self.gateway.decompose_story(prompt.strip())
            except StripMakerError as e:
                if not session.is_current(epoch):
                    return
                logger.error(f"Script failed: {e}")
                yield self._fail(session, e)
                return

            if not session.is_current(epoch):
                logger.info(f"Run {epoch} superseded during scripting, discarding script")
                return

            if len(definitions) != PANEL_COUNT:
                # Grid layout needs exactly six
                yield self._fail(session, GenerationError(
                    f"Script has {len(definitions)} panels, expected exactly {PANEL_COUNT}"
                ))
                return

            # === Stage 2: Placeholders ===
            session.panels = tuple(Panel.from_definition(d) for d in definitions)
            session.status = RunStatus.DRAWING
            session.loading_message = STEP_MESSAGES[0]
            yield session.snapshot(drawing_index=0)

            # === Stage 3: Panel images, strictly one at a time ===
            style_prompt = session.style
            for i, definition in enumerate(definitions):
                if not session.is_current(epoch):
                    return
                session.loading_message = _step_message(i)
                logger.info(f"Drawing panel {i + 1}/{len(definitions)}")

                try:
                    blob = await self.gateway.render_panel_image(definition.description, style_prompt)
                except StripMakerError as e:
                    if not session.is_current(epoch):
                        return
                    logger.error(f"Panel {i + 1} failed: {e}")
                    yield self._fail(session, e)
                    return

                if not session.is_current(epoch):
                    logger.info(f"Run {epoch} superseded, discarding panel {i + 1}")
                    return

                session.set_panel(i, session.panels[i].with_image(blob.to_data_url()))
                if i < len(definitions) - 1:
                    session.loading_message = _step_message(i + 1)
                    yield session.snapshot(drawing_index=i + 1)

            # === Stage 4: Persist ===
            comic = Comic.create(title=session.title, panels=session.panels, style=style_prompt)
            try:
                self.history.save(comic)
            except StorageError as e:
                logger.error(f"History save failed: {e}")
                yield self._fail(session, e)
                return
            session.status = RunStatus.COMPLETE
            session.loading_message = ""

            logger.info("=" * 60)
            logger.info("STRIP PIPELINE COMPLETE")
            logger.info(f"  Title: {comic.title}")
            logger.info(f"  Panels: {len(comic.panels)}")
            logger.info(f"  History: {len(self.history)} entries")
            logger.info("=" * 60)

            yield session.snapshot(comic=comic)
        finally:
            # Consumer stopped listening (or the task was cancelled) mid-run
            if session.is_current(epoch) and session.is_busy:
                logger.info(f"Run {epoch} abandoned before completion")
                session.status = RunStatus.IDLE
                session.loading_message = ""

    # ------------------------------------------------------------------
    # Single-panel redraw
    # ------------------------------------------------------------------

    async def regenerate_panel(self, session: ComicSession, index: int) -> AsyncIterator[StripSnapshot]:
        """
        Redraw one panel with its stored description and the session style.

        Yields the cleared state first, then the redrawn (or failed) state.
        Other panels are never touched. History is not updated.
        """
        if not 0 <= index < len(session.panels):
            yield session.snapshot(error=ValidationError(f"No panel {index + 1} to redraw"))
            return

        epoch = session.epoch
        token = session.begin_redraw(index)
        description = session.panels[index].description

        session.set_panel(index, session.panels[index].with_image(""))
        yield session.snapshot(drawing_index=index)

        logger.info(f"Redrawing panel {index + 1}")
        try:
            blob = await self.gateway.render_panel_image(description, session.style)
        except StripMakerError as e:
            if not session.is_current_redraw(epoch, index, token):
                return
            logger.error(f"Redraw of panel {index + 1} failed: {e}")
            error = BackendError(REDRAW_FAILED_MESSAGE)
            error.__cause__ = e
            session.error = error
            yield session.snapshot(drawing_index=index, error=error)
            return

        if not session.is_current_redraw(epoch, index, token):
            logger.info(f"Redraw of panel {index + 1} superseded, discarding")
            return

        session.set_panel(index, session.panels[index].with_image(blob.to_data_url()))
        yield session.snapshot()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def save(self, session: ComicSession) -> Comic:
        """
        Store the session's current panels as a new history entry.

        Raises:
            ValidationError: a run is in flight or a panel is still empty
            StorageError: the history store rejected the write
        """
        if session.is_busy:
            raise ValidationError("Wait for the current strip to finish drawing")
        if not session.is_complete:
            raise ValidationError(f"All {PANEL_COUNT} panels must be drawn before saving")
        comic = Comic.create(title=session.title, panels=session.panels, style=session.style)
        self.history.save(comic)
        return comic

    def open_comic(self, session: ComicSession, comic_id: str) -> StripSnapshot:
        """Load a saved comic back into the session for editing."""
        comic = self.history.get(comic_id)
        if comic is None:
            return session.snapshot(error=ValidationError(f"No saved comic with id {comic_id}"))

        session.begin_run()
        session.title = comic.title
        session.style = comic.style or session.style
        session.panels = comic.panels
        session.status = RunStatus.COMPLETE
        session.loading_message = ""
        session.error = None
        logger.info(f"Opened '{comic.title}' from history")
        return session.snapshot(comic=comic)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export(self, session: ComicSession, output_dir: Optional[str] = None) -> ExportResult:
        """Composite the session's panels into one PNG on disk."""
        out_dir = Path(output_dir) if output_dir else self.output_root
        try:
            export = await self.compositor.export(session.title, list(session.panels), out_dir)
        except CompositionError as e:
            logger.error(f"Export failed: {e}")
            return ExportResult(error=e)
        return ExportResult(export=export)

    def _fail(self, session: ComicSession, error: StripMakerError) -> StripSnapshot:
        session.status = RunStatus.FAILED
        session.loading_message = ""
        session.error = error
        return session.snapshot(error=error)
