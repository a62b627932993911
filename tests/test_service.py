from __future__ import annotations

from unittest.mock import patch

import aiohttp
import pytest

from conftest import PNG_BYTES, SKETCH_DATA_URI, fake_session, store_for
from render_providers import config as config_module
from render_providers.presets import get_preset
from render_providers.service import check_health, generate_render
from render_providers.types import (
    AuthError,
    CapabilityUnsupported,
    RenderSettings,
    TransientUnavailable,
    UnsupportedProvider,
)


@pytest.mark.asyncio
async def test_end_to_end_sunny_day_text_to_image():
    store = store_for(
        provider="huggingface",
        baseUrl="https://router.huggingface.co/hf-inference/models",
        model="stabilityai/stable-diffusion-xl-base-1.0",
        apiKey="hf_test",
    )
    session = fake_session(body=PNG_BYTES, content_type="image/png")
    settings = RenderSettings(creativity_strength=0.75, negative_prompt="", seed=-1)

    result = await generate_render(SKETCH_DATA_URI, get_preset("sunny_day"), settings, store=store, session=session)

    body = session.post.call_args.kwargs["json"]
    assert isinstance(body["inputs"], str)
    assert "sunny day" in body["inputs"]
    assert "strength" not in body["parameters"]
    assert "seed" not in body["parameters"]
    assert result.to_data_uri().startswith("data:image/png;base64,")


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", ["ollama", "lmstudio"])
async def test_local_providers_never_render(provider):
    store = store_for(provider=provider, baseUrl="http://localhost:9999", model="llava")
    ok_bodies = {
        "ollama": {"response": "a house"},
        "lmstudio": {"choices": [{"message": {"content": "a house"}}]},
    }
    session = fake_session(body=ok_bodies[provider])

    for preset_id in ("sunny_day", "industrial_loft"):
        with pytest.raises(CapabilityUnsupported):
            await generate_render(SKETCH_DATA_URI, get_preset(preset_id), store=store, session=session)


@pytest.mark.asyncio
async def test_huggingface_without_key_fails_before_network(empty_store):
    session = fake_session()
    with pytest.raises(AuthError):
        await generate_render(
            SKETCH_DATA_URI,
            get_preset("rainy"),
            store=empty_store,
            env={"AI_PROVIDER": "huggingface"},
            session=session,
        )
    assert not session.post.called


@pytest.mark.asyncio
async def test_adapter_errors_pass_through_unchanged():
    store = store_for(provider="huggingface", baseUrl="https://hf.test/models", model="m", apiKey="k")
    session = fake_session(status=503, body={"error": "Model m is currently loading"})

    with pytest.raises(TransientUnavailable) as exc:
        await generate_render(SKETCH_DATA_URI, get_preset("overcast"), store=store, session=session)
    assert exc.value.provider == "Hugging Face"


@pytest.mark.asyncio
async def test_unknown_provider_tag(empty_store):
    with pytest.raises(UnsupportedProvider):
        await generate_render(SKETCH_DATA_URI, get_preset("nature"), store=empty_store, env={"AI_PROVIDER": "dalle"})


@pytest.mark.asyncio
async def test_config_is_resolved_on_every_call():
    store = store_for(provider="gemini", baseUrl="https://g.test/models", model="img-model", apiKey="k")
    session = fake_session(body={"candidates": [{"content": {"parts": [{"text": "no"}]}}]})

    with patch("render_providers.service.resolve_config", wraps=config_module.resolve_config) as resolve:
        for _ in range(2):
            with pytest.raises(CapabilityUnsupported):
                await generate_render(SKETCH_DATA_URI, get_preset("sunny_day"), store=store, session=session)
    assert resolve.call_count == 2


@pytest.mark.asyncio
async def test_health_for_key_based_provider():
    status = await check_health(store=store_for(provider="gemini", baseUrl="x", model="y", apiKey="k"))
    assert status.available is True
    assert status.provider == "Gemini"


@pytest.mark.asyncio
async def test_health_never_raises_on_bad_config(empty_store):
    status = await check_health(store=empty_store, env={"AI_PROVIDER": "dalle"})
    assert status.available is False
    assert status.provider == "Unknown"
    assert "dalle" in status.message


@pytest.mark.asyncio
async def test_health_never_raises_on_malformed_blob(empty_store):
    empty_store.set("archiviz-ai-settings", "{broken")
    status = await check_health(store=empty_store, env={})
    assert status.available is False
    assert status.message


@pytest.mark.asyncio
async def test_health_never_raises_on_network_failure():
    store = store_for(provider="ollama", baseUrl="http://localhost:11434", model="llava:13b")
    session = fake_session(raises=aiohttp.ClientConnectionError("Connection refused"))

    status = await check_health(store=store, session=session)

    assert status.available is False
    assert status.provider == "Ollama"
    assert "Connection refused" in status.message
