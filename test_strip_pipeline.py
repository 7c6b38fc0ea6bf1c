"""
StripMaker — Pipeline test suite.

Covers the orchestrator, the Gemini client and the history store. Backend
calls go to fake gateways or httpx.MockTransport; no API key needed.

Usage:
    python test_strip_pipeline.py                     # Run all tests
    python test_strip_pipeline.py test_full_run       # Run specific test
"""

import asyncio
import base64
import io
import json
import os
import sqlite3
import sys
import tempfile
from pathlib import Path

import httpx
from PIL import Image

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent))

from strip_maker.comic_generator import ComicStripPipeline
from strip_maker.errors import (
    BackendError,
    CompositionError,
    ConfigError,
    GenerationError,
    StorageError,
    ValidationError,
)
from strip_maker.gemini_client import GeminiClient, ImageBlob
from strip_maker.history import HISTORY_KEY, HistoryStore, SQLiteKeyValueStore
from strip_maker.models import Comic, ComicSession, Panel, PanelDefinition, RunStatus
from strip_maker.script_parser import parse_story_script


# ============================================================
# Helpers
# ============================================================

def _png_bytes(color=(200, 80, 60), size=64) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (size, size), color=color).save(buffer, format="PNG")
    return buffer.getvalue()


def _script(prompt: str, count: int = 6) -> list[PanelDefinition]:
    return [
        PanelDefinition(description=f"{prompt} #{i}", narrative=f"Caption {i} for {prompt}")
        for i in range(count)
    ]


class FakeGateway:
    """Records every call; fails on request."""

    def __init__(self, panel_count=6, script_error=None, fail_on=(), slow_prefix=None):
        self.panel_count = panel_count
        self.script_error = script_error
        self.fail_on = set(fail_on)
        self.slow_prefix = slow_prefix
        self.gate = asyncio.Event()
        self.events = []
        self.image_calls = 0

    async def decompose_story(self, prompt):
        self.events.append(("script", prompt))
        await asyncio.sleep(0)
        if self.script_error:
            raise self.script_error
        return _script(prompt, self.panel_count)

    async def render_panel_image(self, description, style):
        call = self.image_calls
        self.image_calls += 1
        self.events.append(("start", description))
        if self.slow_prefix and description.startswith(self.slow_prefix):
            await self.gate.wait()
        await asyncio.sleep(0)
        self.events.append(("end", description))
        if call in self.fail_on:
            raise BackendError(f"image {call} refused")
        return ImageBlob(mime_type="image/png", data=_png_bytes((call * 30 % 255, 90, 120)))


def _pipeline(gateway, history=None):
    history = history if history is not None else HistoryStore(SQLiteKeyValueStore(":memory:"))
    return ComicStripPipeline(gateway=gateway, history=history)


async def _collect(agen):
    return [s async for s in agen]


async def _next(agen):
    try:
        return await agen.__anext__()
    except StopAsyncIteration:
        return None


# ============================================================
# Test 1: Full run
# ============================================================

def test_full_run():
    """Seven snapshots, six drawn panels, one history write."""
    gateway = FakeGateway()
    pipeline = _pipeline(gateway)
    session = ComicSession()

    snapshots = asyncio.run(_collect(pipeline.generate(
        session, "A robot learns to paint", title="Robot Painter", style="Watercolor",
    )))

    assert len(snapshots) == 7, f"Expected 7 snapshots, got {len(snapshots)}"
    assert all(not p.image_url for p in snapshots[0].panels), "Initial snapshot should be all placeholders"
    assert len(snapshots[0].panels) == 6
    for n, snap in enumerate(snapshots):
        assert snap.drawn_count == n, f"Snapshot {n} should have {n} drawn panels"

    final = snapshots[-1]
    assert final.status == RunStatus.COMPLETE
    assert final.comic is not None
    assert all(p.image_url.startswith("data:image/png;base64,") for p in final.panels)
    assert session.status == RunStatus.COMPLETE
    assert session.loading_message == ""

    assert len(pipeline.history) == 1
    saved = pipeline.history.entries[0]
    assert saved.title == "Robot Painter"
    assert saved.style == "Watercolor"
    assert len(saved.panels) == 6

    print("  PASS: 7 snapshots, 6 panels drawn, 1 history entry")


def test_snapshots_are_immutable_views():
    """Earlier snapshots keep their panels after later updates."""
    pipeline = _pipeline(FakeGateway())
    snapshots = asyncio.run(_collect(pipeline.generate(ComicSession(), "A robot learns to paint")))

    assert snapshots[0].panels is not snapshots[-1].panels
    assert snapshots[0].panels[0].image_url == ""
    assert snapshots[-1].panels[0].image_url != ""
    print("  PASS: snapshots are independent")


def test_loading_messages():
    """Each drawing snapshot names the step in progress."""
    pipeline = _pipeline(FakeGateway())
    snapshots = asyncio.run(_collect(pipeline.generate(ComicSession(), "A robot learns to paint")))

    messages = [s.loading_message for s in snapshots[:-1]]
    assert messages == ["INKING...", "COLORING...", "SHADING...", "STAPLING...", "DISTRIBUTING...", "FINALIZING..."]
    assert snapshots[-1].loading_message == ""
    print("  PASS: loading messages follow drawing order")


# ============================================================
# Test 2: Ordering
# ============================================================

def test_images_requested_sequentially():
    """Request i+1 only starts after response i."""
    gateway = FakeGateway()
    pipeline = _pipeline(gateway)
    asyncio.run(_collect(pipeline.generate(ComicSession(), "A robot learns to paint")))

    image_events = [e for e in gateway.events if e[0] != "script"]
    assert len(image_events) == 12
    for i in range(6):
        start, end = image_events[2 * i], image_events[2 * i + 1]
        assert start == ("start", f"A robot learns to paint #{i}"), start
        assert end == ("end", f"A robot learns to paint #{i}"), end
    print("  PASS: panels drawn strictly in order")


# ============================================================
# Test 3: Validation & failures
# ============================================================

def test_empty_prompt():
    """Whitespace prompt → ValidationError, no backend calls."""
    gateway = FakeGateway()
    pipeline = _pipeline(gateway)
    session = ComicSession()

    snapshots = asyncio.run(_collect(pipeline.generate(session, "   \n\t")))

    assert len(snapshots) == 1
    assert isinstance(snapshots[0].error, ValidationError)
    assert snapshots[0].message == "Please enter a story idea."
    assert gateway.events == []
    assert session.status == RunStatus.IDLE
    assert session.epoch == 0
    assert len(pipeline.history) == 0
    print("  PASS: empty prompt rejected before any call")


def test_script_failure():
    """Schema failure → one FAILED snapshot, nothing surfaced, nothing saved."""
    gateway = FakeGateway(script_error=GenerationError("Script does not match the panel schema"))
    pipeline = _pipeline(gateway)
    session = ComicSession()

    snapshots = asyncio.run(_collect(pipeline.generate(session, "A robot learns to paint")))

    assert len(snapshots) == 1
    assert snapshots[0].status == RunStatus.FAILED
    assert isinstance(snapshots[0].error, GenerationError)
    assert snapshots[0].panels == ()
    assert gateway.image_calls == 0
    assert len(pipeline.history) == 0
    assert session.status == RunStatus.FAILED
    print("  PASS: script failure aborts run")


def test_short_script_rejected():
    """A gateway returning fewer than six panels fails the run."""
    pipeline = _pipeline(FakeGateway(panel_count=0))
    snapshots = asyncio.run(_collect(pipeline.generate(ComicSession(), "A robot learns to paint")))

    assert len(snapshots) == 1
    assert isinstance(snapshots[0].error, GenerationError)
    assert len(pipeline.history) == 0
    print("  PASS: empty script is a GenerationError")


def test_image_failure_midway():
    """Panel 3 fails → panels 1-2 kept, 3-6 empty, no retry, no history."""
    gateway = FakeGateway(fail_on={2})
    pipeline = _pipeline(gateway)
    session = ComicSession()

    snapshots = asyncio.run(_collect(pipeline.generate(session, "A robot learns to paint")))

    assert len(snapshots) == 4, f"Expected 4 snapshots, got {len(snapshots)}"
    failed = snapshots[-1]
    assert failed.status == RunStatus.FAILED
    assert isinstance(failed.error, BackendError)
    assert [bool(p.image_url) for p in failed.panels] == [True, True, False, False, False, False]
    assert gateway.image_calls == 3
    assert len(pipeline.history) == 0

    # Orchestrator accepts a new run afterwards
    gateway.fail_on.clear()
    again = asyncio.run(_collect(pipeline.generate(session, "A robot learns to paint")))
    assert again[-1].status == RunStatus.COMPLETE
    print("  PASS: mid-run failure keeps drawn panels and allows a new run")


def test_abandoned_run_returns_to_idle():
    """Closing the stream mid-run clears the busy state."""
    session = ComicSession()
    pipeline = _pipeline(FakeGateway())

    async def scenario():
        agen = pipeline.generate(session, "A robot learns to paint")
        first = await agen.__anext__()
        assert session.status == RunStatus.DRAWING
        await agen.aclose()
        return first

    first = asyncio.run(scenario())
    assert len(first.panels) == 6
    assert session.status == RunStatus.IDLE
    assert session.loading_message == ""
    assert len(pipeline.history) == 0
    print("  PASS: abandoned run goes back to idle")


# ============================================================
# Test 4: Supersession
# ============================================================

def test_stale_run_discarded():
    """A superseded run's late image never lands in the active session."""
    gateway = FakeGateway(slow_prefix="slow")
    pipeline = _pipeline(gateway)
    session = ComicSession()

    async def scenario():
        old_run = pipeline.generate(session, "slow story")
        await old_run.__anext__()                       # placeholders for the old run
        pending = asyncio.create_task(_next(old_run))   # blocks inside panel 1's request
        await asyncio.sleep(0)

        new_snapshots = await _collect(pipeline.generate(session, "fast story"))
        gateway.gate.set()
        late = await pending
        return new_snapshots, late

    new_snapshots, late = asyncio.run(scenario())

    assert late is None, "Stale run should end without publishing"
    assert new_snapshots[-1].status == RunStatus.COMPLETE
    assert all(p.description.startswith("fast story") for p in session.panels)
    assert all(p.image_url for p in session.panels)
    assert len(pipeline.history) == 1
    assert pipeline.history.entries[0].panels[0].description == "fast story #0"
    print("  PASS: stale run discarded, active run intact")


# ============================================================
# Test 5: Regeneration
# ============================================================

def _completed_session(pipeline) -> ComicSession:
    session = ComicSession(title="Robot Painter")
    asyncio.run(_collect(pipeline.generate(session, "A robot learns to paint")))
    assert session.status == RunStatus.COMPLETE
    return session


def test_regenerate_panel():
    """Only the redrawn panel changes; history is untouched."""
    gateway = FakeGateway()
    pipeline = _pipeline(gateway)
    session = _completed_session(pipeline)
    before = session.panels

    snapshots = asyncio.run(_collect(pipeline.regenerate_panel(session, 3)))

    assert len(snapshots) == 2
    assert snapshots[0].panels[3].image_url == "", "Redrawn panel should show as pending first"
    after = snapshots[-1].panels
    for i in range(6):
        if i == 3:
            assert after[i].image_url and after[i].image_url != before[i].image_url
            assert after[i].description == before[i].description
        else:
            assert after[i] == before[i], f"Panel {i} should be unchanged"
    assert gateway.events[-2] == ("start", before[3].description)
    assert len(pipeline.history) == 1
    print("  PASS: regenerate changes one panel only")


def test_regenerate_failure():
    """Failed redraw leaves that panel empty and reports a scoped error."""
    gateway = FakeGateway()
    pipeline = _pipeline(gateway)
    session = _completed_session(pipeline)
    before = session.panels
    gateway.fail_on.add(gateway.image_calls)

    snapshots = asyncio.run(_collect(pipeline.regenerate_panel(session, 1)))

    final = snapshots[-1]
    assert isinstance(final.error, BackendError)
    assert final.message == "Failed to redraw this panel."
    assert final.panels[1].image_url == ""
    assert [p for i, p in enumerate(final.panels) if i != 1] == [p for i, p in enumerate(before) if i != 1]
    assert session.status == RunStatus.COMPLETE
    print("  PASS: redraw failure scoped to one panel")


def test_regenerate_invalid_index():
    pipeline = _pipeline(FakeGateway())
    session = _completed_session(pipeline)
    calls = pipeline.gateway.image_calls

    snapshots = asyncio.run(_collect(pipeline.regenerate_panel(session, 6)))

    assert len(snapshots) == 1
    assert isinstance(snapshots[0].error, ValidationError)
    assert pipeline.gateway.image_calls == calls
    print("  PASS: out-of-range redraw rejected")


# ============================================================
# Test 6: History
# ============================================================

def test_history_capacity():
    """Eleven runs → ten entries, oldest evicted, newest first."""
    pipeline = _pipeline(FakeGateway())
    session = ComicSession()

    async def eleven_runs():
        for n in range(1, 12):
            await _collect(pipeline.generate(session, f"Story {n}", title=f"Issue #{n}"))

    asyncio.run(eleven_runs())

    titles = [c.title for c in pipeline.history.entries]
    assert len(titles) == 10
    assert titles[0] == "Issue #11"
    assert titles[-1] == "Issue #2"
    assert "Issue #1" not in titles
    print("  PASS: history capped at 10, FIFO eviction")


def test_history_persistence():
    """History survives a restart and uses the comic_history key."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "history.db")
        store = SQLiteKeyValueStore(db_path)
        history = HistoryStore(store)
        comic = Comic.create(
            title="Saved",
            panels=tuple(Panel(narrative="n", description="d", image_url="data:x") for _ in range(6)),
            style="Watercolor",
        )
        history.save(comic)

        raw = json.loads(store.get(HISTORY_KEY))
        assert raw[0]["title"] == "Saved"
        assert raw[0]["panels"][0] == {"imageUrl": "data:x", "narrative": "n", "description": "d"}

        reloaded = HistoryStore(SQLiteKeyValueStore(db_path))
        assert len(reloaded) == 1
        assert reloaded.entries[0] == comic
        assert reloaded.get(comic.id) == comic
    print("  PASS: history persists across restarts")


def test_history_corrupt_value():
    store = SQLiteKeyValueStore(":memory:")
    store.set(HISTORY_KEY, "{not json")
    history = HistoryStore(store)
    assert len(history) == 0
    print("  PASS: corrupt history starts empty")


def test_save_and_open():
    """Explicit save adds a new entry; open_comic restores a saved one."""
    pipeline = _pipeline(FakeGateway())
    session = _completed_session(pipeline)
    asyncio.run(_collect(pipeline.regenerate_panel(session, 0)))

    resaved = pipeline.save(session)
    assert len(pipeline.history) == 2
    assert pipeline.history.entries[0] is resaved
    assert resaved.panels == session.panels

    other = ComicSession()
    snapshot = pipeline.open_comic(other, resaved.id)
    assert snapshot.error is None
    assert other.title == "Robot Painter"
    assert other.panels == resaved.panels

    missing = pipeline.open_comic(other, "nope")
    assert isinstance(missing.error, ValidationError)

    try:
        pipeline.save(ComicSession())
        raise AssertionError("Saving an empty session should fail")
    except ValidationError:
        pass
    print("  PASS: save creates a new entry, open restores it")


# ============================================================
# Test 7: Export through the pipeline
# ============================================================

def test_pipeline_export():
    pipeline = _pipeline(FakeGateway())
    session = _completed_session(pipeline)

    with tempfile.TemporaryDirectory() as tmpdir:
        result = asyncio.run(pipeline.export(session, tmpdir))
        assert result.ok, result.message
        assert result.path.name == "Robot_Painter.png"
        with Image.open(result.path) as img:
            assert img.size == (1736, 1504)

        # Pending panel blocks the export
        session.set_panel(2, session.panels[2].with_image(""))
        blocked = asyncio.run(pipeline.export(session, tmpdir))
        assert not blocked.ok
        assert "Panel 3" in blocked.message
    print("  PASS: export writes PNG; pending panel blocks it")


# ============================================================
# Test 8: Gemini client
# ============================================================

def _story_response(count=6) -> dict:
    panels = [{"description": f"scene {i}", "narrative": f"caption {i}"} for i in range(count)]
    return {"candidates": [{"content": {"parts": [{"text": json.dumps({"panels": panels})}]}}]}


def test_client_decompose_story():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_story_response())

    client = GeminiClient(api_key="test-key", transport=httpx.MockTransport(handler))

    async def run():
        try:
            return await client.decompose_story("A robot learns to paint")
        finally:
            await client.close()

    definitions = asyncio.run(run())

    assert [d.description for d in definitions] == [f"scene {i}" for i in range(6)]
    assert seen["url"].path.endswith("/models/gemini-3-flash-preview:generateContent")
    assert seen["url"].params["key"] == "test-key"
    config = seen["body"]["generationConfig"]
    assert config["responseMimeType"] == "application/json"
    assert config["responseSchema"]["required"] == ["panels"]
    assert "A robot learns to paint" in seen["body"]["contents"][0]["parts"][0]["text"]
    print("  PASS: story request uses JSON mode + schema")


def test_client_bad_script():
    """Non-JSON or empty panel list → GenerationError (a BackendError)."""
    replies = iter([
        {"candidates": [{"content": {"parts": [{"text": "Once upon a time..."}]}}]},
        {"candidates": [{"content": {"parts": [{"text": '{"panels": []}'}]}}]},
    ])

    def handler(request):
        return httpx.Response(200, json=next(replies))

    client = GeminiClient(api_key="k", transport=httpx.MockTransport(handler))

    async def run():
        errors = []
        for _ in range(2):
            try:
                await client.decompose_story("prompt")
            except GenerationError as e:
                errors.append(e)
        await client.close()
        return errors

    errors = asyncio.run(run())
    assert len(errors) == 2
    assert all(isinstance(e, BackendError) for e in errors)
    print("  PASS: malformed scripts raise GenerationError")


def test_client_render_panel_image():
    png = _png_bytes()
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [
            {"text": "Here is your panel"},
            {"inlineData": {"mimeType": "image/png", "data": base64.b64encode(png).decode()}},
        ]}}]})

    client = GeminiClient(api_key="k", transport=httpx.MockTransport(handler))

    async def run():
        try:
            return await client.render_panel_image("a robot at an easel", "Watercolor")
        finally:
            await client.close()

    blob = asyncio.run(run())
    assert blob.data == png
    assert blob.to_data_url().startswith("data:image/png;base64,")
    text = seen["body"]["contents"][0]["parts"][0]["text"]
    assert "a robot at an easel" in text and "Style: Watercolor" in text
    assert seen["body"]["generationConfig"]["imageConfig"]["aspectRatio"] == "1:1"
    print("  PASS: image request is square and returns inline data")


def test_client_backend_errors():
    """Image-less reply, HTTP error and transport error all raise BackendError."""
    def text_only(request):
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "no"}]}}]})

    def server_error(request):
        return httpx.Response(500, text="internal")

    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def attempt(handler):
        client = GeminiClient(api_key="k", transport=httpx.MockTransport(handler))
        try:
            await client.render_panel_image("desc", "style")
        except BackendError as e:
            return e
        finally:
            await client.close()
        return None

    for handler in (text_only, server_error, unreachable):
        error = asyncio.run(attempt(handler))
        assert isinstance(error, BackendError), f"{handler.__name__} should raise BackendError"
    print("  PASS: backend failures surface as BackendError")


def test_parse_story_script_fenced():
    text = "```json\n" + json.dumps({"panels": [{"description": "d", "narrative": "n"}] * 6}) + "\n```"
    definitions = parse_story_script(text)
    assert len(definitions) == 6
    assert definitions[0] == PanelDefinition(description="d", narrative="n")

    missing_field = json.dumps({"panels": [{"description": "d"}] * 6})
    try:
        parse_story_script(missing_field)
        raise AssertionError("Missing narrative should fail")
    except GenerationError:
        pass
    print("  PASS: fenced JSON accepted, missing fields rejected")


def test_missing_api_key():
    from strip_maker import config

    saved = {k: os.environ.pop(k) for k in ("GOOGLE_API_KEY", "API_KEY") if k in os.environ}
    real_load_dotenv = config.load_dotenv
    config.load_dotenv = lambda *args, **kwargs: False  # ignore any local .env
    try:
        with tempfile.TemporaryDirectory() as tmpdir:
            settings_file = os.path.join(tmpdir, "strip_maker.yaml")
            with open(settings_file, "w", encoding="utf-8") as f:
                f.write("request_timeout: 30\nhistory_db: custom.db\n")
            try:
                config.load_settings(settings_file)
                raise AssertionError("Missing key should fail at startup")
            except ConfigError:
                pass
            os.environ["GOOGLE_API_KEY"] = "abc"
            os.environ["STRIP_IMAGE_MODEL"] = "custom-image-model"
            settings = config.load_settings(settings_file)
            assert settings.api_key == "abc"
            assert settings.image_model == "custom-image-model"
            assert settings.request_timeout == 30.0
            assert settings.history_db == "custom.db"
    finally:
        config.load_dotenv = real_load_dotenv
        os.environ.pop("GOOGLE_API_KEY", None)
        os.environ.pop("STRIP_IMAGE_MODEL", None)
        os.environ.update(saved)
    print("  PASS: missing credential is a ConfigError")


# ============================================================
# Test 9: Robustness
# ============================================================

def test_export_title_with_path_separator():
    """A slash in the title stays inside the output directory."""
    pipeline = _pipeline(FakeGateway())
    session = ComicSession(title="AC/DC Robots")
    asyncio.run(_collect(pipeline.generate(session, "A robot learns to paint")))

    with tempfile.TemporaryDirectory() as tmpdir:
        result = asyncio.run(pipeline.export(session, tmpdir))
        assert result.ok, result.message
        assert result.path.name == "AC_DC_Robots.png"
        assert result.path.parent == Path(tmpdir)
        assert result.path.exists()
    print("  PASS: path separators in titles never leave the output dir")


def test_export_unwritable_destination():
    """A write failure comes back as an ExportResult, not an exception."""
    pipeline = _pipeline(FakeGateway())
    session = _completed_session(pipeline)

    with tempfile.TemporaryDirectory() as tmpdir:
        blocker = Path(tmpdir) / "not_a_dir"
        blocker.write_text("file in the way")
        result = asyncio.run(pipeline.export(session, blocker))
        assert not result.ok
        assert isinstance(result.error, CompositionError)
        assert isinstance(result.error.__cause__, OSError)
    print("  PASS: unwritable output dir reported as CompositionError")


class FailingStore(SQLiteKeyValueStore):
    """Reads work; every write is rejected."""

    def set(self, key, value):
        raise sqlite3.OperationalError("database is locked")


def test_history_write_failure():
    """Store failure at the end of a run → FAILED snapshot, panels kept."""
    history = HistoryStore(FailingStore(":memory:"))
    pipeline = _pipeline(FakeGateway(), history=history)
    session = ComicSession()

    snapshots = asyncio.run(_collect(pipeline.generate(session, "A robot learns to paint")))

    final = snapshots[-1]
    assert final.status == RunStatus.FAILED
    assert isinstance(final.error, StorageError)
    assert isinstance(final.error.__cause__, sqlite3.Error)
    assert final.comic is None
    assert final.drawn_count == 6, "Drawn panels stay visible"
    assert session.status == RunStatus.FAILED
    assert len(history) == 0
    print("  PASS: history write failure published as FAILED snapshot")


def test_comic_ids_unique():
    """Back-to-back comics never share an id."""
    panels = tuple(Panel(narrative="n", description="d", image_url="data:x") for _ in range(6))
    ids = [Comic.create(title=f"Issue #{n}", panels=panels, style="s").id for n in range(50)]
    assert len(set(ids)) == 50
    assert ids == sorted(ids, key=int), "Ids should increase"

    # generate followed straight away by save
    pipeline = _pipeline(FakeGateway())
    session = _completed_session(pipeline)
    first = pipeline.history.entries[0]
    second = pipeline.save(session)
    assert first.id != second.id
    assert pipeline.history.get(first.id) is first
    assert pipeline.history.get(second.id) is second
    print("  PASS: comic ids unique within a process")


# ============================================================
# Runner
# ============================================================

def main():
    """Run tests."""
    specific = sys.argv[1] if len(sys.argv) > 1 else None

    tests = {
        name: func for name, func in globals().items()
        if name.startswith("test_") and callable(func)
    }

    if specific:
        if specific not in tests:
            print(f"Unknown test: {specific}")
            print(f"Available: {', '.join(tests.keys())}")
            sys.exit(1)
        tests = {specific: tests[specific]}

    passed = 0
    failed = 0

    print("\nStripMaker Pipeline Tests")
    print("=" * 50)

    for name, func in tests.items():
        print(f"\n{name}:")
        try:
            func()
            passed += 1
        except Exception as e:
            print(f"  FAIL: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print("\n" + "=" * 50)
    print(f"Results: {passed} passed, {failed} failed")

    if failed > 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
