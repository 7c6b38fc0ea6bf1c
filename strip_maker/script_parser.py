"""
StripMaker — Script Parser.

Builds the script-decomposition request (prompt + response schema) and turns
the model's JSON reply into PanelDefinitions.

The backend is asked for constrained JSON output, so nothing is scraped out
of free text. Anything that does not match the schema, or does not contain
exactly PANEL_COUNT panels, is a GenerationError.
"""

import json
import logging

import pydantic
from pydantic import BaseModel

from strip_maker.errors import GenerationError
from strip_maker.models import PANEL_COUNT, PanelDefinition

logger = logging.getLogger(__name__)

STORY_PROMPT = (
    'Create a cinematic {panel_count}-panel comic strip story based on: "{prompt}". '
    "For each panel, provide a visual description for an image and a short "
    "narrative caption. Return as JSON."
)

# Gemini responseSchema (OpenAPI subset, upper-case type names)
STORY_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "panels": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "description": {"type": "STRING"},
                    "narrative": {"type": "STRING"},
                },
                "required": ["description", "narrative"],
            },
        },
    },
    "required": ["panels"],
}


class PanelScript(BaseModel):
    description: str
    narrative: str


class StoryScript(BaseModel):
    panels: list[PanelScript]


def build_story_prompt(prompt: str, panel_count: int = PANEL_COUNT) -> str:
    return STORY_PROMPT.format(panel_count=panel_count, prompt=prompt.strip())


def _extract_json(text: str) -> str:
    """Strip markdown fences some models wrap around JSON anyway."""
    if "```json" in text:
        text = text.split("```json", 1)[1]
        text = text.rsplit("```", 1)[0]
    elif "```" in text:
        text = text.split("```", 1)[1]
        text = text.rsplit("```", 1)[0]
    return text.strip()


def parse_story_script(text: str, expected_panels: int = PANEL_COUNT) -> list[PanelDefinition]:
    """
    Parse and validate a decomposition reply.

    Args:
        text: Raw JSON text returned by the text model
        expected_panels: Exact number of panels the layout needs

    Returns:
        Ordered PanelDefinitions

    Raises:
        GenerationError: not JSON, wrong shape, or wrong panel count
    """
    json_text = _extract_json(text or "")
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Script is not valid JSON: {e}") from e

    try:
        script = StoryScript.model_validate(data)
    except pydantic.ValidationError as e:
        raise GenerationError(
            f"Script does not match the panel schema ({e.error_count()} errors)"
        ) from e

    if len(script.panels) != expected_panels:
        raise GenerationError(
            f"Script has {len(script.panels)} panels, expected exactly {expected_panels}"
        )

    definitions = [
        PanelDefinition(description=p.description, narrative=p.narrative)
        for p in script.panels
    ]
    logger.info(f"Script parsed: {len(definitions)} panels")
    return definitions
