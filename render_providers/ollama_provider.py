from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from render_providers.config import AIConfig
from render_providers.images import SourceImage
from render_providers.transport import client_session, send
from render_providers.types import (
    CapabilityUnsupported,
    GenerationResult,
    HealthStatus,
    ProviderCapabilities,
    ProviderError,
    ProviderName,
    RenderError,
    RenderProvider,
    RenderSettings,
)

logger = logging.getLogger(__name__)

VISION_MODEL_MARKERS = ("llava", "vision")

UNSUPPORTED_MESSAGE = (
    "Ollama currently supports vision analysis but not image generation. "
    "Please use LM Studio with image generation models or Hugging Face."
)


@dataclass(frozen=True)
class OllamaGenerateResponse:
    response: str

    @classmethod
    def from_payload(cls, payload: Any) -> "OllamaGenerateResponse":
        if not isinstance(payload, dict) or not isinstance(payload.get("response"), str):
            raise ProviderError(f"Ollama response missing 'response' text: {payload!r:.200}", provider="Ollama")
        return cls(response=payload["response"])


@dataclass(frozen=True)
class OllamaTagsResponse:
    model_names: tuple[str, ...]

    @classmethod
    def from_payload(cls, payload: Any) -> "OllamaTagsResponse":
        models = payload.get("models") if isinstance(payload, dict) else None
        if not isinstance(models, list):
            raise ProviderError(f"Ollama tags response missing 'models': {payload!r:.200}", provider="Ollama")
        names = tuple(str(m.get("name", "")) for m in models if isinstance(m, dict))
        return cls(model_names=names)

    @property
    def has_vision_model(self) -> bool:
        return any(marker in name for name in self.model_names for marker in VISION_MODEL_MARKERS)


class OllamaRenderProvider(RenderProvider):
    """
    Ollama serves vision models (LLaVA and friends) that describe images but
    never produce one. The request is still made; whatever comes back, the
    call ends in CapabilityUnsupported.
    """

    name = ProviderName.OLLAMA
    display_name = "Ollama"
    capabilities = ProviderCapabilities(
        supports_image_output=False,
        probes_network=True,
        notes="Vision models return text descriptions, not images.",
    )

    @staticmethod
    def build_payload(*, image: SourceImage, prompt: str, config: AIConfig) -> dict[str, Any]:
        return {
            "model": config.model,
            "prompt": prompt,
            "images": [image.b64],
            "stream": False,
            "options": {
                "temperature": 0.7,
                "top_p": 0.9,
            },
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
        url = f"{config.root_url}/api/generate"
        try:
            async with client_session(session) as s:
                reply = await send(
                    s,
                    "POST",
                    url,
                    config=config,
                    provider=self.display_name,
                    json_body=self.build_payload(image=image, prompt=prompt, config=config),
                )
            if not reply.ok:
                raise ProviderError(
                    f"Ollama API Error: {reply.text()}", provider=self.display_name, status=reply.status
                )
            description = OllamaGenerateResponse.from_payload(reply.json(provider=self.display_name))
        except RenderError as e:
            logger.warning("Ollama request failed before the capability check: %s", e.message)
            raise CapabilityUnsupported(UNSUPPORTED_MESSAGE, provider=self.display_name) from e

        logger.info("Ollama answered with %d chars of text instead of an image", len(description.response))
        raise CapabilityUnsupported(UNSUPPORTED_MESSAGE, provider=self.display_name)

    async def check_health(
        self,
        *,
        config: AIConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> HealthStatus:
        async with client_session(session) as s:
            reply = await send(s, "GET", f"{config.root_url}/api/tags", config=config, provider=self.display_name)
        if not reply.ok:
            return HealthStatus(available=False, provider=self.display_name, message="Cannot connect to Ollama")

        tags = OllamaTagsResponse.from_payload(reply.json(provider=self.display_name))
        if tags.has_vision_model:
            message = f"Connected to Ollama ({len(tags.model_names)} models available)"
        else:
            message = "Ollama running but no vision models found. Install llava:13b or similar."
        return HealthStatus(available=True, provider=self.display_name, message=message)
