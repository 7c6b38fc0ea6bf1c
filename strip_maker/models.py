"""
StripMaker — Data models.

Dataclasses for the strip generation pipeline:
PanelDefinition → Panel → Comic, plus the session and the snapshots it
publishes while a run is in flight.

Panels and snapshots are frozen. Every update builds a new panel tuple, so a
snapshot a consumer is holding never changes underneath it.
"""

import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from strip_maker.catalog import default_style_prompt
from strip_maker.errors import StripMakerError

# Fixed by the 3x2 composite grid
PANEL_COUNT = 6

DEFAULT_TITLE = "Untitled Comic"

_last_comic_id = 0


def _next_comic_id() -> str:
    """Millisecond timestamp, bumped so two saves in the same millisecond differ."""
    global _last_comic_id
    _last_comic_id = max(int(time.time() * 1000), _last_comic_id + 1)
    return str(_last_comic_id)


class RunStatus(Enum):
    """Lifecycle of one generation run."""

    IDLE = "idle"
    SCRIPTING = "scripting"
    DRAWING = "drawing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class PanelDefinition:
    """One beat of the script: what to draw, and the caption under it."""
    description: str
    narrative: str


@dataclass(frozen=True)
class Panel:
    """A single comic panel. image_url is empty while its image is pending."""
    narrative: str
    description: str
    image_url: str = ""

    @classmethod
    def from_definition(cls, definition: PanelDefinition) -> "Panel":
        return cls(narrative=definition.narrative, description=definition.description)

    @property
    def is_drawn(self) -> bool:
        return bool(self.image_url)

    def with_image(self, image_url: str) -> "Panel":
        return replace(self, image_url=image_url)

    def to_dict(self) -> dict:
        return {
            "imageUrl": self.image_url,
            "narrative": self.narrative,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Panel":
        return cls(
            narrative=data["narrative"],
            description=data["description"],
            image_url=data.get("imageUrl", ""),
        )


@dataclass(frozen=True)
class Comic:
    """A finished strip as stored in history."""
    id: str
    title: str
    panels: tuple[Panel, ...]
    style: str
    date: str

    @classmethod
    def create(cls, title: str, panels: tuple[Panel, ...], style: str) -> "Comic":
        """Stamp a new comic with a unique millisecond id and today's date."""
        return cls(
            id=_next_comic_id(),
            title=title,
            panels=tuple(panels),
            style=style,
            date=datetime.now().strftime("%Y-%m-%d"),
        )

    def to_dict(self) -> dict:
        """Serialize for the history store."""
        return {
            "id": self.id,
            "title": self.title,
            "panels": [p.to_dict() for p in self.panels],
            "style": self.style,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Comic":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            panels=tuple(Panel.from_dict(p) for p in data["panels"]),
            style=data.get("style", ""),
            date=data.get("date", ""),
        )


@dataclass(frozen=True)
class StripSnapshot:
    """One published view of a session's panels."""
    epoch: int
    status: RunStatus
    panels: tuple[Panel, ...]
    drawing_index: Optional[int] = None
    loading_message: str = ""
    error: Optional[StripMakerError] = None
    comic: Optional[Comic] = None

    @property
    def message(self) -> str:
        """User-facing error text, empty when nothing went wrong."""
        return str(self.error) if self.error else ""

    @property
    def drawn_count(self) -> int:
        return sum(1 for p in self.panels if p.is_drawn)


@dataclass
class ComicSession:
    """
    Editing state for one user: title, style, and the live panel sequence.

    Passed explicitly into every pipeline operation. ``epoch`` increases with
    every new run (or history load); results tagged with an older epoch are
    thrown away.
    """
    title: str = DEFAULT_TITLE
    style: str = field(default_factory=default_style_prompt)
    panels: tuple[Panel, ...] = ()
    status: RunStatus = RunStatus.IDLE
    epoch: int = 0
    loading_message: str = ""
    error: Optional[StripMakerError] = None
    _redraw_tokens: dict[int, int] = field(default_factory=dict, repr=False)

    @property
    def is_busy(self) -> bool:
        return self.status in (RunStatus.SCRIPTING, RunStatus.DRAWING)

    @property
    def is_complete(self) -> bool:
        return len(self.panels) == PANEL_COUNT and all(p.is_drawn for p in self.panels)

    def begin_run(self) -> int:
        """Start a new run, superseding whatever was in flight."""
        self.epoch += 1
        self._redraw_tokens.clear()
        return self.epoch

    def is_current(self, epoch: int) -> bool:
        return self.epoch == epoch

    def begin_redraw(self, index: int) -> int:
        token = self._redraw_tokens.get(index, 0) + 1
        self._redraw_tokens[index] = token
        return token

    def is_current_redraw(self, epoch: int, index: int, token: int) -> bool:
        return self.epoch == epoch and self._redraw_tokens.get(index) == token

    def set_panel(self, index: int, panel: Panel):
        """Replace one panel, publishing a fresh tuple."""
        panels = list(self.panels)
        panels[index] = panel
        self.panels = tuple(panels)

    def snapshot(
        self,
        drawing_index: Optional[int] = None,
        error: Optional[StripMakerError] = None,
        comic: Optional[Comic] = None,
        status: Optional[RunStatus] = None,
    ) -> StripSnapshot:
        return StripSnapshot(
            epoch=self.epoch,
            status=status or self.status,
            panels=self.panels,
            drawing_index=drawing_index,
            loading_message=self.loading_message,
            error=error,
            comic=comic,
        )
