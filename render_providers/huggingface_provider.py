from __future__ import annotations

import logging
from typing import Any, Optional

import aiohttp

from render_providers.config import AIConfig
from render_providers.images import SourceImage, sniff_bytes_mime
from render_providers.transport import classify_status, client_session, error_detail, send
from render_providers.types import (
    AuthError,
    GenerationResult,
    HealthStatus,
    ProviderCapabilities,
    ProviderError,
    ProviderName,
    RenderProvider,
    RenderSettings,
)

logger = logging.getLogger(__name__)

# Model-name substrings that mark an image-to-image pipeline.
IMG2IMG_MARKERS = ("img2img", "instruct-pix2pix")

NUM_INFERENCE_STEPS = 30
GUIDANCE_SCALE = 7.5

IMG2IMG_NEGATIVE_PROMPT = "low quality, blurry, distorted, text, watermark, sketch lines"
TXT2IMG_NEGATIVE_PROMPT = "low quality, blurry, distorted, text, watermark, sketch lines, line drawing"

PLACEHOLDER_KEYS = {"your_huggingface_token_here"}


def is_img2img_model(model: str) -> bool:
    return any(marker in str(model or "") for marker in IMG2IMG_MARKERS)


class HuggingFaceRenderProvider(RenderProvider):
    """
    Hugging Face Inference API.

    Image-to-image models get the sketch plus `strength`; every other model is
    treated as text-to-image and only sees the prompt. The body of a
    successful reply is the image itself.
    """

    name = ProviderName.HUGGINGFACE
    display_name = "Hugging Face"
    capabilities = ProviderCapabilities(
        supports_image_output=True,
        notes="img2img only for models whose name contains img2img or instruct-pix2pix.",
    )

    @staticmethod
    def build_payload(*, image: SourceImage, prompt: str, config: AIConfig, settings: RenderSettings) -> dict[str, Any]:
        if is_img2img_model(config.model):
            return {
                "inputs": {
                    "image": image.b64,
                    "prompt": prompt,
                },
                "parameters": {
                    "negative_prompt": settings.negative_prompt or IMG2IMG_NEGATIVE_PROMPT,
                    "num_inference_steps": NUM_INFERENCE_STEPS,
                    "guidance_scale": GUIDANCE_SCALE,
                    "strength": settings.creativity_strength,
                },
            }

        parameters: dict[str, Any] = {
            "negative_prompt": settings.negative_prompt or TXT2IMG_NEGATIVE_PROMPT,
            "num_inference_steps": NUM_INFERENCE_STEPS,
            "guidance_scale": GUIDANCE_SCALE,
        }
        if settings.has_seed:
            parameters["seed"] = settings.seed
        return {"inputs": prompt, "parameters": parameters}

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
                "Hugging Face API key is required. Go to Settings and add your API key.",
                provider=self.display_name,
            )

        mode = "img2img" if is_img2img_model(config.model) else "txt2img"
        logger.debug("Hugging Face %s request for model %s", mode, config.model)

        async with client_session(session) as s:
            reply = await send(
                s,
                "POST",
                f"{config.root_url}/{config.model}",
                config=config,
                provider=self.display_name,
                json_body=self.build_payload(image=image, prompt=prompt, config=config, settings=settings),
                headers={
                    "Authorization": f"Bearer {config.api_key}",
                    "Content-Type": "application/json",
                },
            )

        if not reply.ok:
            raise classify_status(reply, provider=self.display_name)

        if reply.mime_type == "application/json" or not reply.body:
            # 200 with a JSON body means the pipeline produced no image
            raise ProviderError(
                f"Hugging Face Error: expected image data, got {error_detail(reply)[:200]!r}",
                provider=self.display_name,
                status=reply.status,
            )

        mime = reply.mime_type if reply.mime_type.startswith("image/") else sniff_bytes_mime(reply.body)
        return GenerationResult(data=reply.body, mime_type=mime, provider=self.name.value, model=config.model)

    async def check_health(
        self,
        *,
        config: AIConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> HealthStatus:
        if config.api_key and config.api_key not in PLACEHOLDER_KEYS:
            return HealthStatus(available=True, provider=self.display_name, message="Hugging Face API configured")
        return HealthStatus(available=False, provider=self.display_name, message="Hugging Face API key not configured")
