from __future__ import annotations

from typing import Any, Callable

from render_providers.gemini_provider import GeminiRenderProvider
from render_providers.huggingface_provider import HuggingFaceRenderProvider
from render_providers.lmstudio_provider import LMStudioRenderProvider
from render_providers.ollama_provider import OllamaRenderProvider
from render_providers.types import ProviderName, RenderProvider, UnsupportedProvider

# Adding a provider: implement RenderProvider, then add one entry here.
PROVIDERS: dict[ProviderName, Callable[[], RenderProvider]] = {
    ProviderName.OLLAMA: OllamaRenderProvider,
    ProviderName.LMSTUDIO: LMStudioRenderProvider,
    ProviderName.HUGGINGFACE: HuggingFaceRenderProvider,
    ProviderName.GEMINI: GeminiRenderProvider,
}


def build_provider(name: Any) -> RenderProvider:
    provider = name if isinstance(name, ProviderName) else ProviderName.parse(name)
    return PROVIDERS[provider]()


def display_name(name: Any) -> str:
    try:
        return build_provider(name).display_name
    except UnsupportedProvider:
        return "Unknown"
