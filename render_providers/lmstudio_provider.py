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

UNSUPPORTED_MESSAGE = (
    "LM Studio vision models can analyze images but not generate new renders. "
    "Consider using Hugging Face with Stable Diffusion models."
)


@dataclass(frozen=True)
class ChatCompletionResponse:
    content: str

    @classmethod
    def from_payload(cls, payload: Any) -> "ChatCompletionResponse":
        choices = payload.get("choices") if isinstance(payload, dict) else None
        if not isinstance(choices, list) or not choices:
            raise ProviderError("No response from LM Studio", provider="LM Studio")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content:
            raise ProviderError("No response from LM Studio", provider="LM Studio")
        return cls(content=content)


class LMStudioRenderProvider(RenderProvider):
    """
    OpenAI-compatible chat endpoint of a local LM Studio server. Like Ollama,
    the loaded vision model can only describe the sketch.
    """

    name = ProviderName.LMSTUDIO
    display_name = "LM Studio"
    capabilities = ProviderCapabilities(
        supports_image_output=False,
        probes_network=True,
        notes="Chat completions return text; no image output.",
    )

    @staticmethod
    def build_payload(*, image: SourceImage, prompt: str, config: AIConfig) -> dict[str, Any]:
        return {
            "model": config.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image.to_data_uri()}},
                    ],
                }
            ],
            "max_tokens": 1000,
            "temperature": 0.7,
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
        url = f"{config.root_url}/v1/chat/completions"
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
                    f"LM Studio API Error: {reply.text()}", provider=self.display_name, status=reply.status
                )
            completion = ChatCompletionResponse.from_payload(reply.json(provider=self.display_name))
        except RenderError as e:
            logger.warning("LM Studio request failed before the capability check: %s", e.message)
            raise CapabilityUnsupported(UNSUPPORTED_MESSAGE, provider=self.display_name) from e

        preview = completion.content[:100]
        raise CapabilityUnsupported(
            f"{UNSUPPORTED_MESSAGE} The model replied with a description: {preview}...",
            provider=self.display_name,
        )

    async def check_health(
        self,
        *,
        config: AIConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> HealthStatus:
        async with client_session(session) as s:
            reply = await send(s, "GET", f"{config.root_url}/v1/models", config=config, provider=self.display_name)
        if reply.ok:
            return HealthStatus(available=True, provider=self.display_name, message="Connected to LM Studio")
        return HealthStatus(available=False, provider=self.display_name, message="Cannot connect to LM Studio")
