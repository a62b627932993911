from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from render_providers.config import AIConfig
from render_providers.images import SourceImage
from render_providers.transport import classify_status, client_session, send
from render_providers.types import (
    AuthError,
    CapabilityUnsupported,
    GenerationResult,
    HealthStatus,
    ProviderCapabilities,
    ProviderError,
    ProviderName,
    RenderProvider,
    RenderSettings,
)

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = """\
System Role: You are a Professional Architectural Visualizer and Building Consultant.

Objective: Your task is to perform "Image-to-Image" rendering. You must take the user's uploaded 3D wireframe or \
basic massing model and transform it into a photorealistic architectural render.

Constraints:

Geometry Lock: Do not move columns, walls, or rooflines. Maintain the exact perspective of the input image.

Material Accuracy: Apply high-quality textures (e.g., Fair-faced concrete, Low-E glass, Timber cladding) \
based on the Malaysian tropical climate.

Lighting: Use Global Illumination. Default to "Golden Hour" lighting unless specified otherwise.

Safety: If the user's design shows structural instability, subtly highlight it or ensure the render shows the \
corrected, safe version."""

GENERATION_CONFIG = {
    "temperature": 1.0,
    "topP": 0.95,
    "topK": 40,
    "maxOutputTokens": 8192,
    "responseModalities": ["IMAGE"],
}

PLACEHOLDER_KEYS = {"your_google_api_key_here"}

TEXT_PREVIEW_CHARS = 100


@dataclass(frozen=True)
class GeminiPart:
    text: Optional[str] = None
    image_b64: Optional[str] = None
    image_mime: Optional[str] = None


@dataclass(frozen=True)
class GeminiResponse:
    parts: tuple[GeminiPart, ...]

    @classmethod
    def from_payload(cls, payload: Any) -> "GeminiResponse":
        candidates = payload.get("candidates") if isinstance(payload, dict) else None
        if not isinstance(candidates, list) or not candidates:
            raise ProviderError("Gemini returned no candidates.", provider="Gemini")
        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        raw_parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(raw_parts, list):
            raise ProviderError("Gemini returned no content parts.", provider="Gemini")

        parts: list[GeminiPart] = []
        for raw in raw_parts:
            if not isinstance(raw, dict):
                continue
            # REST replies use snake_case or camelCase depending on API version
            inline = raw.get("inline_data") or raw.get("inlineData")
            if isinstance(inline, dict) and inline.get("data"):
                parts.append(
                    GeminiPart(
                        image_b64=str(inline["data"]),
                        image_mime=str(inline.get("mime_type") or inline.get("mimeType") or "image/png"),
                    )
                )
            elif isinstance(raw.get("text"), str):
                parts.append(GeminiPart(text=raw["text"]))
        return cls(parts=tuple(parts))

    def first_image(self) -> Optional[GeminiPart]:
        return next((p for p in self.parts if p.image_b64), None)

    def first_text(self) -> Optional[str]:
        return next((p.text for p in self.parts if p.text), None)


class GeminiRenderProvider(RenderProvider):
    name = ProviderName.GEMINI
    display_name = "Gemini"
    capabilities = ProviderCapabilities(
        supports_image_output=True,
        notes="Needs an image-output model (e.g. gemini-2.5-flash-image); text-only models refuse.",
    )

    @staticmethod
    def build_payload(*, image: SourceImage, prompt: str) -> dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                        {"inline_data": {"mime_type": image.mime_type, "data": image.b64}},
                    ],
                }
            ],
            "generationConfig": dict(GENERATION_CONFIG),
        }

    async def run(
        self,
        *,
        image: SourceImage,
        prompt: str,
        config: AIConfig,
        settings: RenderSettings,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> GenerationResult:
        if not config.api_key:
            raise AuthError(
                "Gemini API key is required. Go to Settings and add your Google API key.",
                provider=self.display_name,
            )

        async with client_session(session) as s:
            reply = await send(
                s,
                "POST",
                f"{config.root_url}/{config.model}:generateContent",
                config=config,
                provider=self.display_name,
                json_body=self.build_payload(image=image, prompt=prompt),
                headers={"Content-Type": "application/json"},
                params={"key": config.api_key},
            )

        if not reply.ok:
            raise classify_status(reply, provider=self.display_name)

        response = GeminiResponse.from_payload(reply.json(provider=self.display_name))
        image_part = response.first_image()
        if image_part is not None:
            try:
                data = base64.b64decode(image_part.image_b64 or "")
            except (binascii.Error, ValueError) as e:
                raise ProviderError(f"Gemini image data is not valid base64: {e}", provider=self.display_name) from e
            return GenerationResult(
                data=data,
                mime_type=image_part.image_mime or "image/png",
                provider=self.name.value,
                model=config.model,
            )

        text = response.first_text()
        if text:
            logger.info("Gemini answered with text instead of an image (%d chars)", len(text))
            raise CapabilityUnsupported(
                "Gemini generated text instead of an image. Ensure you are using a model that supports "
                f"image generation. Response: {text[:TEXT_PREVIEW_CHARS]}...",
                provider=self.display_name,
            )
        raise ProviderError("Gemini response did not contain an image.", provider=self.display_name)

    async def check_health(
        self,
        *,
        config: AIConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> HealthStatus:
        if config.api_key and config.api_key not in PLACEHOLDER_KEYS:
            return HealthStatus(available=True, provider=self.display_name, message="Gemini API configured")
        return HealthStatus(available=False, provider=self.display_name, message="Gemini API key not configured")
