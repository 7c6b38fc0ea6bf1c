"""
StripMaker — Canvas Compositor.

Lays six finished panels out on one PNG:
- Title band across the top (uppercase display font)
- 3 x 2 grid of square panels with drop shadow and border
- Word-wrapped caption under each panel

Layout is fixed, so the same title + panels always produce the same image.
Uses Pillow for all drawing.
"""

import asyncio
import base64
import io
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import httpx
from PIL import Image, ImageDraw, ImageFont

from strip_maker.errors import CompositionError
from strip_maker.models import PANEL_COUNT, Panel

logger = logging.getLogger(__name__)

# Layout constants
PANEL_SIZE = 512
PADDING = 60            # Around the whole composition
GAP = 40                # Between cells
TITLE_AREA = 120        # Band above the grid
CAPTION_HEIGHT = 100    # Band under each row
GRID_COLS = 3
GRID_ROWS = 2

FRAME_INSET = 10
FRAME_WIDTH = 10
SHADOW_OFFSET = 5
BORDER_WIDTH = 4

TITLE_FONT_SIZE = 80
TITLE_BASELINE = PADDING + 60
CAPTION_FONT_SIZE = 22
CAPTION_OFFSET = 40     # Panel bottom → first caption baseline
CAPTION_LINE_HEIGHT = 28

BACKGROUND_COLOR = (255, 255, 255)
INK_COLOR = (0, 0, 0)

UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')

# Bundled fonts first, then system fonts
FONTS_DIR = Path(__file__).parent / "assets" / "fonts"

SYSTEM_FONTS = {
    "Bangers": ["Bangers-Regular.ttf", "Bangers.ttf", "DejaVuSans-Bold.ttf", "arialbd.ttf"],
    "Roboto": ["Roboto-Regular.ttf", "Roboto.ttf", "DejaVuSans.ttf", "arial.ttf"],
}

FONT_DIRS = [
    Path(os.environ.get("WINDIR", "C:\\Windows")) / "Fonts",
    Path("/usr/share/fonts"),
    Path("/usr/share/fonts/truetype"),
    Path("/usr/share/fonts/truetype/dejavu"),
    Path.home() / ".local" / "share" / "fonts",
]


def canvas_size() -> tuple[int, int]:
    width = PANEL_SIZE * GRID_COLS + GAP * (GRID_COLS - 1) + PADDING * 2
    height = (
        PANEL_SIZE * GRID_ROWS + GAP * (GRID_ROWS - 1) + PADDING * 2
        + TITLE_AREA + CAPTION_HEIGHT * GRID_ROWS
    )
    return width, height


def cell_origin(index: int) -> tuple[int, int]:
    """Top-left corner of panel `index` (row-major, 3 per row)."""
    col = index % GRID_COLS
    row = index // GRID_COLS
    x = PADDING + col * (PANEL_SIZE + GAP)
    y = TITLE_AREA + PADDING + row * (PANEL_SIZE + GAP + CAPTION_HEIGHT)
    return x, y


def wrap_caption(text: str, max_width: float, measure: Callable[[str], float]) -> list[str]:
    """
    Greedy line breaking.

    Each candidate line is the current line plus the next word and a trailing
    space. When a candidate is wider than max_width and the line already has a
    word on it, the line is flushed and the word starts the next one. Words are
    never split; a single over-long word gets a line to itself.
    """
    lines = []
    line = ""
    for word in text.split():
        candidate = line + word + " "
        if measure(candidate) > max_width and line:
            lines.append(line)
            line = word + " "
        else:
            line = candidate
    if line:
        lines.append(line)
    return lines


def export_filename(title: str) -> str:
    """Title with whitespace runs as underscores; path separators never survive."""
    name = UNSAFE_FILENAME_CHARS.sub("_", re.sub(r"\s+", "_", title))
    return Path(name + ".png").name


def png_data_url(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@dataclass(frozen=True)
class CompositeExport:
    """A rendered strip written to disk."""
    path: Path
    png_bytes: bytes

    @property
    def data_url(self) -> str:
        return png_data_url(self.png_bytes)


class StripCompositor:
    """Renders a titled 3x2 strip and exports it as PNG."""

    def __init__(self, fonts_dir: Optional[Path] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.fonts_dir = Path(fonts_dir) if fonts_dir else FONTS_DIR
        self._http_client = http_client
        self._title_font: Optional[ImageFont.FreeTypeFont] = None
        self._caption_font: Optional[ImageFont.FreeTypeFont] = None

    def _load_font(self, preferred_name: str, size: int) -> ImageFont.FreeTypeFont:
        """Load a font, trying bundled → system → default."""
        for ext in (".ttf", ".otf"):
            bundled = self.fonts_dir / f"{preferred_name}{ext}"
            if bundled.exists():
                return ImageFont.truetype(str(bundled), size)

        for font_name in SYSTEM_FONTS.get(preferred_name, [preferred_name + ".ttf"]):
            for font_dir in FONT_DIRS:
                font_path = font_dir / font_name
                if font_path.exists():
                    return ImageFont.truetype(str(font_path), size)

        logger.warning(f"Font '{preferred_name}' not found, using default. "
                       f"Place .ttf files in {self.fonts_dir} for better results.")
        return ImageFont.load_default(size=size)

    @property
    def title_font(self) -> ImageFont.FreeTypeFont:
        if self._title_font is None:
            self._title_font = self._load_font("Bangers", TITLE_FONT_SIZE)
        return self._title_font

    @property
    def caption_font(self) -> ImageFont.FreeTypeFont:
        if self._caption_font is None:
            self._caption_font = self._load_font("Roboto", CAPTION_FONT_SIZE)
        return self._caption_font

    def measure_caption(self, text: str) -> float:
        return self.caption_font.getlength(text)

    # ------------------------------------------------------------------
    # Image loading
    # ------------------------------------------------------------------

    async def load_images(self, panels: list[Panel]) -> list[Image.Image]:
        """
        Load every panel image concurrently.

        All loads settle before anything is decided; if any failed the whole
        export is blocked with a CompositionError naming the first bad panel.
        """
        results = await asyncio.gather(
            *(self._load_image(p.image_url) for p in panels),
            return_exceptions=True,
        )
        failures = [(i, r) for i, r in enumerate(results) if isinstance(r, BaseException)]
        if failures:
            index, exc = failures[0]
            logger.error(f"{len(failures)} panel image(s) failed to load; first: panel {index + 1}: {exc}")
            raise CompositionError(f"Panel {index + 1} image failed to load: {exc}") from exc
        return list(results)

    async def _load_image(self, image_url: str) -> Image.Image:
        if not image_url:
            raise CompositionError("panel has no image yet")

        if image_url.startswith("data:"):
            data = self._decode_data_url(image_url)
        elif image_url.startswith(("http://", "https://")):
            data = await self._fetch(image_url)
        else:
            try:
                data = Path(image_url).read_bytes()
            except OSError as e:
                raise CompositionError(f"cannot read {image_url}: {e}") from e

        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (OSError, Image.DecompressionBombError) as e:
            raise CompositionError(f"not a readable image: {e}") from e
        return img.convert("RGB")

    def _decode_data_url(self, url: str) -> bytes:
        header, sep, payload = url.partition(",")
        if not sep or ";base64" not in header:
            raise CompositionError("unsupported data URL (expected base64)")
        try:
            return base64.b64decode(payload, validate=True)
        except ValueError as e:
            raise CompositionError(f"bad base64 image data: {e}") from e

    async def _fetch(self, url: str) -> bytes:
        client = self._http_client
        owns_client = client is None
        if owns_client:
            client = httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=15.0))
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise CompositionError(f"download failed: {e}") from e
        finally:
            if owns_client:
                await client.aclose()
        if response.status_code != 200:
            raise CompositionError(f"download failed ({response.status_code})")
        return response.content

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def render(self, title: str, panels: list[Panel], images: list[Image.Image]) -> Image.Image:
        """Draw the composite from already-loaded images."""
        if len(panels) != PANEL_COUNT or len(images) != PANEL_COUNT:
            raise CompositionError(
                f"A strip needs exactly {PANEL_COUNT} panels, got {len(panels)}"
            )

        width, height = canvas_size()
        canvas = Image.new("RGB", (width, height), BACKGROUND_COLOR)
        draw = ImageDraw.Draw(canvas)

        # Outer frame
        half = FRAME_WIDTH // 2
        draw.rectangle(
            [FRAME_INSET - half, FRAME_INSET - half,
             width - FRAME_INSET + half - 1, height - FRAME_INSET + half - 1],
            outline=INK_COLOR,
            width=FRAME_WIDTH,
        )

        draw.text(
            (width / 2, TITLE_BASELINE),
            title.upper(),
            fill=INK_COLOR,
            font=self.title_font,
            anchor="ms",
        )

        for i, (panel, img) in enumerate(zip(panels, images)):
            x, y = cell_origin(i)

            draw.rectangle(
                [x + SHADOW_OFFSET, y + SHADOW_OFFSET,
                 x + SHADOW_OFFSET + PANEL_SIZE - 1, y + SHADOW_OFFSET + PANEL_SIZE - 1],
                fill=INK_COLOR,
            )
            canvas.paste(self._fit_image(img, PANEL_SIZE, PANEL_SIZE), (x, y))

            border = BORDER_WIDTH // 2
            draw.rectangle(
                [x - border, y - border,
                 x + PANEL_SIZE + border - 1, y + PANEL_SIZE + border - 1],
                outline=INK_COLOR,
                width=BORDER_WIDTH,
            )

            self._draw_caption(draw, panel.narrative, x, y)

        return canvas

    def _draw_caption(self, draw: ImageDraw.ImageDraw, text: str, x: int, y: int):
        text_y = y + PANEL_SIZE + CAPTION_OFFSET
        for line in wrap_caption(text, PANEL_SIZE, self.measure_caption):
            draw.text(
                (x + PANEL_SIZE / 2, text_y),
                line,
                fill=INK_COLOR,
                font=self.caption_font,
                anchor="ms",
            )
            text_y += CAPTION_LINE_HEIGHT

    def _fit_image(self, img: Image.Image, target_w: int, target_h: int) -> Image.Image:
        """Resize and crop image to fit target dimensions (cover mode)."""
        scale = max(target_w / img.width, target_h / img.height)

        new_w = max(target_w, round(img.width * scale))
        new_h = max(target_h, round(img.height * scale))
        img = img.resize((new_w, new_h), Image.Resampling.LANCZOS)

        left = (new_w - target_w) // 2
        top = (new_h - target_h) // 2
        return img.crop((left, top, left + target_w, top + target_h))

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def compose(self, title: str, panels: list[Panel]) -> bytes:
        """Load all images, render, and encode as PNG bytes."""
        if len(panels) != PANEL_COUNT:
            raise CompositionError(
                f"A strip needs exactly {PANEL_COUNT} panels, got {len(panels)}"
            )
        images = await self.load_images(list(panels))
        canvas = self.render(title, list(panels), images)
        buffer = io.BytesIO()
        canvas.save(buffer, format="PNG")
        return buffer.getvalue()

    async def export(self, title: str, panels: list[Panel], output_dir: str | Path) -> CompositeExport:
        """
        Render the strip and write it as <title>.png.

        Raises:
            CompositionError: any panel image is missing or unreadable,
                or the file cannot be written
        """
        png_bytes = await self.compose(title, panels)

        out_dir = Path(output_dir)
        path = out_dir / export_filename(title)
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(png_bytes)
        except OSError as e:
            raise CompositionError(f"Could not write {path}: {e}") from e

        logger.info(f"Strip exported: {path} ({len(png_bytes):,} bytes)")
        return CompositeExport(path=path, png_bytes=png_bytes)
