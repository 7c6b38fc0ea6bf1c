"""
StripMaker — Gemini client.

Wraps the two backend capabilities the pipeline needs:
- decompose_story: prompt → six {description, narrative} beats (JSON mode)
- render_panel_image: description + style → one square image

Plain request/response over the Gemini REST API. No retries, batching or
caching here; the orchestrator decides what to do with a failure.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from strip_maker.config import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL, GEMINI_API_BASE, Settings
from strip_maker.errors import BackendError
from strip_maker.models import PanelDefinition
from strip_maker.script_parser import STORY_RESPONSE_SCHEMA, build_story_prompt, parse_story_script

logger = logging.getLogger(__name__)

PANEL_IMAGE_PROMPT = (
    "A single high-quality comic panel: {description}. Style: {style}. "
    "No text or speech bubbles inside the image."
)

PANEL_ASPECT_RATIO = "1:1"


@dataclass(frozen=True)
class ImageBlob:
    """Raw image bytes returned by the image model."""
    mime_type: str
    data: bytes

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class GeminiClient:
    """Gemini text + image capabilities over httpx."""

    def __init__(
        self,
        api_key: str,
        text_model: str = DEFAULT_TEXT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
        api_base: str = GEMINI_API_BASE,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.text_model = text_model
        self.image_model = image_model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        return cls(
            api_key=settings.api_key,
            text_model=settings.text_model,
            image_model=settings.image_model,
            api_base=settings.api_base,
            timeout=settings.request_timeout,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=30.0),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def decompose_story(self, prompt: str) -> list[PanelDefinition]:
        """
        Ask the text model for a panel-by-panel script.

        Raises:
            BackendError: transport failure or unusable response envelope
            GenerationError: reply text does not match the panel schema
        """
        payload = {
            "contents": [{"parts": [{"text": build_story_prompt(prompt)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": STORY_RESPONSE_SCHEMA,
            },
        }

        logger.info(f"Writing script for: {prompt[:80]}...")
        result = await self._generate(self.text_model, payload)
        parts = self._first_candidate_parts(result)
        text = "".join(part.get("text", "") for part in parts)
        if not text.strip():
            raise BackendError("Script response contained no text")

        return parse_story_script(text)

    async def render_panel_image(self, description: str, style: str) -> ImageBlob:
        """
        Draw one square panel.

        Raises:
            BackendError: transport failure, or no inline image in the reply
        """
        payload = {
            "contents": [{
                "parts": [{"text": PANEL_IMAGE_PROMPT.format(description=description, style=style)}],
            }],
            "generationConfig": {
                "imageConfig": {"aspectRatio": PANEL_ASPECT_RATIO},
            },
        }

        logger.info(f"Drawing panel: {description[:60]}...")
        result = await self._generate(self.image_model, payload)

        for part in self._first_candidate_parts(result):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                try:
                    data = base64.b64decode(inline["data"], validate=True)
                except (ValueError, TypeError) as e:
                    raise BackendError(f"Image payload is not valid base64: {e}") from e
                logger.info(f"Panel image received ({len(data):,} bytes, {mime_type})")
                return ImageBlob(mime_type=mime_type, data=data)

        raise BackendError("No image data returned from API")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _generate(self, model: str, payload: dict) -> dict:
        """POST a generateContent request and return the decoded JSON body."""
        client = await self._get_client()
        url = f"{self.api_base}/models/{model}:generateContent"

        try:
            response = await client.post(url, json=payload, params={"key": self.api_key})
        except httpx.HTTPError as e:
            raise BackendError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            raise BackendError(
                f"Gemini API error {response.status_code}: {response.text[:300]}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Gemini returned a non-JSON body: {e}") from e

    def _first_candidate_parts(self, result: dict) -> list[dict]:
        candidates = result.get("candidates") or []
        if not candidates:
            reason = (result.get("promptFeedback") or {}).get("blockReason", "no candidates")
            raise BackendError(f"Gemini returned no candidates ({reason})")
        content = candidates[0].get("content") or {}
        return content.get("parts") or []
