"""
Ollama and LM Studio can only describe a sketch, never render one. Every
generation attempt must end in CapabilityUnsupported, whatever the server does.
"""

from __future__ import annotations

import asyncio

import aiohttp
import pytest

from conftest import fake_session
from render_providers.config import config_for_provider
from render_providers.images import SourceImage
from render_providers.lmstudio_provider import LMStudioRenderProvider
from render_providers.ollama_provider import OllamaRenderProvider
from render_providers.types import CapabilityUnsupported, NetworkError, RenderSettings

IMAGE = SourceImage.from_data_uri("data:image/jpeg;base64,QUJD")

OLLAMA_TEXT = {"model": "llava:13b", "response": "A two storey house with a flat roof.", "done": True}
LMSTUDIO_TEXT = {"choices": [{"message": {"role": "assistant", "content": "A two storey house with a flat roof."}}]}


async def _ollama(session, settings=None):
    return await OllamaRenderProvider().run(
        image=IMAGE,
        prompt="render it",
        config=config_for_provider("ollama"),
        settings=settings or RenderSettings(),
        session=session,
    )


async def _lmstudio(session, settings=None):
    return await LMStudioRenderProvider().run(
        image=IMAGE,
        prompt="render it",
        config=config_for_provider("lmstudio"),
        settings=settings or RenderSettings(),
        session=session,
    )


@pytest.mark.asyncio
async def test_ollama_request_shape():
    session = fake_session(body=OLLAMA_TEXT)
    with pytest.raises(CapabilityUnsupported):
        await _ollama(session)

    url = session.post.call_args.args[0]
    body = session.post.call_args.kwargs["json"]
    assert url == "http://localhost:11434/api/generate"
    assert body["model"] == "llava:13b"
    assert body["images"] == ["QUJD"]
    assert body["stream"] is False


@pytest.mark.asyncio
async def test_lmstudio_request_shape_and_description_preview():
    session = fake_session(body=LMSTUDIO_TEXT)
    with pytest.raises(CapabilityUnsupported) as exc:
        await _lmstudio(session)

    url = session.post.call_args.args[0]
    content = session.post.call_args.kwargs["json"]["messages"][0]["content"]
    assert url == "http://localhost:1234/v1/chat/completions"
    assert content[0] == {"type": "text", "text": "render it"}
    assert content[1] == {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,QUJD"}}
    assert "Hugging Face" in exc.value.message
    assert "two storey house" in exc.value.message


@pytest.mark.asyncio
@pytest.mark.parametrize("runner, ok_body", [(_ollama, OLLAMA_TEXT), (_lmstudio, LMSTUDIO_TEXT)])
@pytest.mark.parametrize(
    "session_kwargs",
    [
        {},
        {"status": 500, "body": "model not found"},
        {"status": 200, "body": {"unexpected": True}},
        {"raises": aiohttp.ClientConnectionError("refused")},
        {"raises": asyncio.TimeoutError()},
    ],
)
async def test_always_capability_unsupported(runner, ok_body, session_kwargs):
    kwargs = dict(session_kwargs)
    kwargs.setdefault("body", ok_body)
    session = fake_session(**kwargs)

    for settings in (RenderSettings(), RenderSettings(creativity_strength=0.0, seed=7, negative_prompt="x")):
        with pytest.raises(CapabilityUnsupported):
            await runner(session, settings)


@pytest.mark.asyncio
async def test_transport_cause_is_chained():
    session = fake_session(raises=aiohttp.ClientConnectionError("refused"))
    with pytest.raises(CapabilityUnsupported) as exc:
        await _ollama(session)
    assert isinstance(exc.value.__cause__, NetworkError)


@pytest.mark.asyncio
async def test_ollama_health_with_vision_model():
    session = fake_session(body={"models": [{"name": "llama3:8b"}, {"name": "llava:13b"}]})
    status = await OllamaRenderProvider().check_health(config=config_for_provider("ollama"), session=session)

    assert session.get.call_args.args[0] == "http://localhost:11434/api/tags"
    assert status.available is True
    assert status.message == "Connected to Ollama (2 models available)"


@pytest.mark.asyncio
async def test_ollama_health_advises_when_no_vision_model():
    session = fake_session(body={"models": [{"name": "llama3:8b"}]})
    status = await OllamaRenderProvider().check_health(config=config_for_provider("ollama"), session=session)

    assert status.available is True
    assert "no vision models found" in status.message


@pytest.mark.asyncio
async def test_ollama_health_bad_status():
    session = fake_session(status=404, body="not found")
    status = await OllamaRenderProvider().check_health(config=config_for_provider("ollama"), session=session)
    assert status.available is False


@pytest.mark.asyncio
async def test_lmstudio_health():
    up = fake_session(body={"data": [{"id": "llava-v1.6-34b"}]})
    down = fake_session(status=502, body="bad gateway")
    provider = LMStudioRenderProvider()

    ok = await provider.check_health(config=config_for_provider("lmstudio"), session=up)
    bad = await provider.check_health(config=config_for_provider("lmstudio"), session=down)

    assert up.get.call_args.args[0] == "http://localhost:1234/v1/models"
    assert ok.available is True
    assert ok.provider == "LM Studio"
    assert bad.available is False


def test_capabilities_declare_no_image_output():
    for provider in (OllamaRenderProvider(), LMStudioRenderProvider()):
        assert provider.capabilities.supports_image_output is False
        assert provider.capabilities.probes_network is True
