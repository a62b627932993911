"""
Entry points used by the front-end: `generate_render` and `check_health`.

Configuration is resolved here, once per call, and passed down explicitly;
adapters never read settings themselves. Errors raised by adapters pass
through untouched so the caller can show `err.message` as-is.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Union

import aiohttp

from render_providers.config import SettingsStore, resolve_config
from render_providers.images import SourceImage
from render_providers.presets import EnvironmentPreset
from render_providers.prompts import build_render_prompt
from render_providers.registry import build_provider, display_name
from render_providers.types import GenerationResult, HealthStatus, RenderSettings

logger = logging.getLogger(__name__)


async def generate_render(
    image: Union[str, SourceImage],
    preset: EnvironmentPreset,
    settings: Optional[RenderSettings] = None,
    *,
    store: Optional[SettingsStore] = None,
    env: Optional[Mapping[str, str]] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> GenerationResult:
    """
    Render `image` (a data URI or SourceImage) in the mood of `preset`.

    Raises:
        RenderError subclasses, exactly as the selected adapter raised them.
    """
    config = resolve_config(store=store, env=env)
    source = image if isinstance(image, SourceImage) else SourceImage.from_data_uri(image)
    prompt = build_render_prompt(preset)
    provider = build_provider(config.provider)

    logger.info(
        "Rendering with %s (endpoint=%s, model=%s, preset=%s)",
        provider.display_name,
        config.base_url,
        config.model,
        preset.id,
    )
    result = await provider.run(
        image=source,
        prompt=prompt,
        config=config,
        settings=settings or RenderSettings(),
        session=session,
    )
    logger.info("%s returned %s (%d bytes)", provider.display_name, result.mime_type, len(result.data))
    return result


async def check_health(
    *,
    store: Optional[SettingsStore] = None,
    env: Optional[Mapping[str, str]] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> HealthStatus:
    """
    Availability of the configured provider. Never raises.
    """
    label = "Unknown"
    try:
        config = resolve_config(store=store, env=env)
        label = display_name(config.provider)
        provider = build_provider(config.provider)
        status = await provider.check_health(config=config, session=session)
    except Exception as e:
        logger.warning("Health check for %s failed: %r", label, e)
        return HealthStatus(available=False, provider=label, message=getattr(e, "message", None) or str(e))

    logger.debug("Health check: %s available=%s (%s)", status.provider, status.available, status.message)
    return status
