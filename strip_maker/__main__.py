"""
StripMaker — command line entry point.

Usage:
    python -m strip_maker "A robot learns to paint"             # Generate + export PNG
    python -m strip_maker "..." --title "Robot Painter" --style watercolor
    python -m strip_maker --random                              # Surprise me
    python -m strip_maker "..." --no-export                     # Keep in history only
    python -m strip_maker --list-styles                         # Show art styles
    python -m strip_maker --history                             # Show saved comics
    python -m strip_maker --export-saved <comic_id>             # Re-export a saved comic

Environment:
    Requires GOOGLE_API_KEY in .env (or the environment).
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from strip_maker.catalog import ART_STYLES, find_style, get_art_style, random_seed
from strip_maker.comic_generator import ComicStripPipeline
from strip_maker.config import Settings, load_settings
from strip_maker.errors import ConfigError
from strip_maker.gemini_client import GeminiClient
from strip_maker.history import HistoryStore, SQLiteKeyValueStore
from strip_maker.models import DEFAULT_TITLE, ComicSession, RunStatus

logger = logging.getLogger("strip_maker")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="strip_maker",
        description="StripMaker — turn a story idea into a six-panel comic strip",
    )
    parser.add_argument("prompt", nargs="?", default="", help="Story idea")
    parser.add_argument("--title", default=DEFAULT_TITLE, help="Issue title (used for the file name)")
    parser.add_argument("--style", default=None, help="Art style name (see --list-styles)")
    parser.add_argument("--random", action="store_true", help="Use a random story idea")
    parser.add_argument("--out", default=None, help="Directory for the exported PNG")
    parser.add_argument("--config", default=None, help="YAML settings file")
    parser.add_argument("--no-export", action="store_true", help="Skip writing the PNG")
    parser.add_argument("--list-styles", action="store_true", help="Print art styles and exit")
    parser.add_argument("--history", action="store_true", help="Print saved comics and exit")
    parser.add_argument("--export-saved", metavar="COMIC_ID", help="Export a comic from history and exit")
    return parser.parse_args(argv)


def setup_logging():
    Path("data").mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler("data/strip_maker.log", encoding="utf-8"),
        ],
    )


def print_styles():
    print("\nArt styles:\n")
    for style, config in ART_STYLES.items():
        print(f"  {style.value:<15} {config['name']:<15} {config['prompt']}")
    print()


def print_history(history: HistoryStore):
    if not len(history):
        print("No comics saved yet. Start creating!")
        return
    print(f"\nSaved comics ({len(history)}):\n")
    for comic in history.entries:
        print(f"  {comic.id}  {comic.date}  {comic.title}")
    print()


async def run(args, settings: Settings) -> int:
    history = HistoryStore(SQLiteKeyValueStore(settings.history_db))
    if args.history:
        print_history(history)
        return 0

    gateway = GeminiClient.from_settings(settings)
    pipeline = ComicStripPipeline(gateway=gateway, history=history, output_root=settings.output_dir)
    session = ComicSession(title=args.title)

    try:
        if args.export_saved:
            snapshot = pipeline.open_comic(session, args.export_saved)
            if snapshot.error:
                print(f"Error: {snapshot.message}")
                return 1
            return await _export(pipeline, session, args.out)

        style = None
        if args.style:
            found = find_style(args.style)
            if found is None:
                print(f"Unknown style: {args.style}")
                print_styles()
                return 1
            style = get_art_style(found)["prompt"]

        prompt = random_seed() if args.random else args.prompt
        if args.random:
            logger.info(f"Random story idea: {prompt}")

        final = None
        async for snapshot in pipeline.generate(session, prompt, style=style):
            final = snapshot
            if snapshot.status == RunStatus.DRAWING:
                logger.info(
                    f"{snapshot.loading_message} {snapshot.drawn_count}/{len(snapshot.panels)} panels drawn"
                )

        if final is None or final.status != RunStatus.COMPLETE:
            print(f"Error: {final.message if final else 'generation did not finish'}")
            return 1

        for i, panel in enumerate(final.panels, 1):
            print(f"  Panel {i}: {panel.narrative}")

        if args.no_export:
            return 0
        return await _export(pipeline, session, args.out)
    finally:
        await gateway.close()


async def _export(pipeline: ComicStripPipeline, session: ComicSession, out_dir) -> int:
    result = await pipeline.export(session, out_dir)
    if not result.ok:
        print(f"Export failed: {result.message}")
        return 1
    print(f"\nSaved: {result.path}")
    return 0


def main(argv=None):
    args = parse_args(argv)
    if args.list_styles:
        print_styles()
        return

    setup_logging()
    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        sys.exit(2)

    sys.exit(asyncio.run(run(args, settings)))


if __name__ == "__main__":
    main()
