"""
aiohttp plumbing shared by the provider adapters.

Every outbound call goes through `send()`, which turns transport failures into
`NetworkError` and hands back the complete reply; status handling is left to
the adapter (see `classify_status` for the shared rules).
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

import aiohttp

from render_providers.config import AIConfig
from render_providers.types import (
    AuthError,
    NetworkError,
    ProviderError,
    RateLimited,
    RenderError,
    TransientUnavailable,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpReply:
    status: int
    body: bytes = field(repr=False)
    content_type: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def mime_type(self) -> str:
        return self.content_type.split(";", 1)[0].strip().lower()

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self, *, provider: str) -> Any:
        try:
            return json.loads(self.body.decode("utf-8"))
        except ValueError as e:
            raise ProviderError(
                f"{provider} returned a response that is not valid JSON: {self.text()[:200]!r}",
                provider=provider,
                status=self.status,
            ) from e


@asynccontextmanager
async def client_session(session: Optional[aiohttp.ClientSession] = None) -> AsyncIterator[aiohttp.ClientSession]:
    """
    Use the caller's session when given, otherwise open one for this call only.
    """
    if session is not None:
        yield session
        return
    async with aiohttp.ClientSession() as owned:
        yield owned


async def send(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    *,
    config: AIConfig,
    provider: str,
    json_body: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
    params: Optional[dict[str, str]] = None,
) -> HttpReply:
    call = session.post if method.upper() == "POST" else session.get
    kwargs: dict[str, Any] = {"timeout": aiohttp.ClientTimeout(total=config.timeout_s)}
    if json_body is not None:
        kwargs["json"] = json_body
    if headers:
        kwargs["headers"] = headers
    if params:
        kwargs["params"] = params

    logger.debug("%s %s %s", provider, method.upper(), url)
    try:
        async with call(url, **kwargs) as resp:
            body = await resp.read()
            reply = HttpReply(status=resp.status, body=body, content_type=resp.headers.get("Content-Type", ""))
    except asyncio.TimeoutError as e:
        raise NetworkError(
            f"{provider} did not respond within {config.timeout_s}s. Try again or raise RENDER_TIMEOUT_S.",
            provider=provider,
        ) from e
    except aiohttp.ClientError as e:
        raise NetworkError(
            f"Network error talking to {provider}. Check your connection or the configured URL. ({e})",
            provider=provider,
        ) from e

    logger.debug("%s replied %s (%d bytes, %s)", provider, reply.status, len(reply.body), reply.content_type)
    return reply


@dataclass(frozen=True)
class HuggingFaceErrorBody:
    """
    Error reply from the inference router: `{"error": "..."}`,
    `{"error": {"message": "..."}}` or `{"message": "..."}`. Gemini's
    `{"error": {"code", "message"}}` fits the same shape.
    """

    error: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "HuggingFaceErrorBody":
        if not isinstance(payload, dict):
            return cls()
        err = payload.get("error")
        if isinstance(err, dict):
            err = err.get("message")
        message = payload.get("message")
        return cls(
            error=str(err) if err else None,
            message=str(message) if message else None,
        )

    @property
    def detail(self) -> Optional[str]:
        return self.error or self.message


def error_detail(reply: HttpReply) -> str:
    """
    Best-effort error text from the reply body, falling back to the raw body.
    """
    raw = reply.text()
    try:
        payload = json.loads(raw)
    except ValueError:
        return raw
    return HuggingFaceErrorBody.from_payload(payload).detail or raw


def classify_status(reply: HttpReply, *, provider: str, detail: Optional[str] = None) -> RenderError:
    """
    Map a non-2xx reply onto the error taxonomy: 401/429/503 are special,
    everything else is a ProviderError carrying the provider's own text.
    """
    detail = error_detail(reply) if detail is None else detail
    if reply.status == 401:
        return AuthError(f"Invalid API key. Please check your {provider} API key in Settings.", provider=provider)
    if reply.status == 503:
        return TransientUnavailable("Model is loading. Please wait a moment and try again.", provider=provider)
    if reply.status == 429:
        return RateLimited("Rate limit exceeded. Please wait a moment and try again.", provider=provider)
    return ProviderError(f"{provider} Error: {detail}", provider=provider, status=reply.status)
