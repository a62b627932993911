from __future__ import annotations

import json
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from render_providers.config import SETTINGS_KEY, MemorySettingsStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
# 1x1-ish payload; only the prefix matters to the adapters
SKETCH_DATA_URI = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAAB"


def fake_session(
    *,
    status: int = 200,
    body: Any = b"",
    content_type: str = "application/json",
    raises: Optional[BaseException] = None,
) -> MagicMock:
    """
    Stand-in for aiohttp.ClientSession: `post`/`get` return an async context
    manager yielding a response with the given status/body.
    """
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode("utf-8")
    elif isinstance(body, str):
        body = body.encode("utf-8")

    resp = MagicMock()
    resp.status = status
    resp.headers = {"Content-Type": content_type}
    resp.read = AsyncMock(return_value=body)

    session = MagicMock()
    for method in (session.post, session.get):
        if raises is not None:
            method.side_effect = raises
        else:
            method.return_value.__aenter__.return_value = resp
    return session


def store_for(**record: Any) -> MemorySettingsStore:
    return MemorySettingsStore({SETTINGS_KEY: json.dumps(record)})


@pytest.fixture
def empty_store() -> MemorySettingsStore:
    return MemorySettingsStore()
