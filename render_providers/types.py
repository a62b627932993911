from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol

if TYPE_CHECKING:
    import aiohttp

    from render_providers.config import AIConfig
    from render_providers.images import SourceImage


RANDOM_SEED = -1


class RenderError(RuntimeError):
    """
    Base for every classified failure of the adaptation layer.
    `message` is shown verbatim to the user.
    """

    def __init__(self, message: str, *, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider


class AuthError(RenderError):
    pass


class RateLimited(RenderError):
    pass


class TransientUnavailable(RenderError):
    pass


class CapabilityUnsupported(RenderError):
    pass


class NetworkError(RenderError):
    pass


class ProviderError(RenderError):
    def __init__(self, message: str, *, provider: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message, provider=provider)
        self.status = status


class UnsupportedProvider(RenderError):
    pass


class ProviderName(str, Enum):
    OLLAMA = "ollama"
    LMSTUDIO = "lmstudio"
    HUGGINGFACE = "huggingface"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value: Any) -> "ProviderName":
        s = str(value or "").strip().lower()
        for member in cls:
            if s == member.value:
                return member
        raise UnsupportedProvider(
            f"Unsupported AI provider: {value!r}. Use 'ollama', 'lmstudio', 'huggingface', or 'gemini'."
        )


@dataclass(frozen=True)
class ProviderCapabilities:
    supports_image_output: bool
    # True when check_health hits the network rather than inspecting config only
    probes_network: bool = False

    # Notes for humans/debugging
    notes: str = ""


@dataclass(frozen=True)
class RenderSettings:
    creativity_strength: float = 0.75
    negative_prompt: str = ""
    seed: int = RANDOM_SEED

    def __post_init__(self) -> None:
        if not 0.0 <= float(self.creativity_strength) <= 1.0:
            raise ValueError(f"creativity_strength must be within [0, 1]; got {self.creativity_strength!r}")

    @property
    def has_seed(self) -> bool:
        return self.seed != RANDOM_SEED


@dataclass(frozen=True)
class GenerationResult:
    data: bytes = field(repr=False)
    mime_type: str = "image/png"
    provider: str = ""
    model: str = ""

    def to_data_uri(self) -> str:
        b64 = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{b64}"


@dataclass(frozen=True)
class HealthStatus:
    available: bool
    provider: str
    message: str


class RenderProvider(Protocol):
    name: ProviderName
    display_name: str
    capabilities: ProviderCapabilities

    async def run(
        self,
        *,
        image: "SourceImage",
        prompt: str,
        config: "AIConfig",
        settings: RenderSettings,
        session: "Optional[aiohttp.ClientSession]" = None,
    ) -> GenerationResult:
        """
        Transform `image` into a render described by `prompt`.
        Raises a RenderError subclass on any failure.
        """
        raise NotImplementedError

    async def check_health(
        self,
        *,
        config: "AIConfig",
        session: "Optional[aiohttp.ClientSession]" = None,
    ) -> HealthStatus:
        raise NotImplementedError
