"""
Provider configuration for the render adaptation layer.

`resolve_config()` is called at the start of every generate/health call and is
never cached, so a saved settings change applies to the next action.

Resolution order:
    1. The persisted settings record (JSON under `SETTINGS_KEY`), used verbatim.
    2. Environment defaults: `secrets.yaml` overlaid by `os.environ`.
    3. Hard-coded per-provider defaults.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

import yaml

from render_providers.types import ProviderName

logger = logging.getLogger(__name__)

SETTINGS_KEY = "archiviz-ai-settings"

DEFAULT_PROVIDER = ProviderName.HUGGINGFACE
DEFAULT_TIMEOUT_S = 120.0

PROVIDER_DEFAULTS: dict[ProviderName, dict[str, str]] = {
    ProviderName.OLLAMA: {
        "base_url": "http://localhost:11434",
        "model": "llava:13b",
    },
    ProviderName.LMSTUDIO: {
        "base_url": "http://localhost:1234",
        "model": "llava-v1.6-34b",
    },
    ProviderName.HUGGINGFACE: {
        "base_url": "https://router.huggingface.co/hf-inference/models",
        "model": "black-forest-labs/FLUX.1-schnell",
    },
    ProviderName.GEMINI: {
        "base_url": "https://generativelanguage.googleapis.com/v1beta/models",
        "model": "gemini-2.5-flash-image",
    },
}

# Environment variable names per provider: (base_url, model, api_key)
_ENV_NAMES: dict[ProviderName, tuple[str, str, Optional[str]]] = {
    ProviderName.OLLAMA: ("OLLAMA_BASE_URL", "OLLAMA_MODEL", None),
    ProviderName.LMSTUDIO: ("LMSTUDIO_BASE_URL", "LMSTUDIO_MODEL", None),
    ProviderName.HUGGINGFACE: ("HF_BASE_URL", "HF_MODEL", "HF_API_KEY"),
    ProviderName.GEMINI: ("GEMINI_BASE_URL", "GEMINI_MODEL", "GOOGLE_API_KEY"),
}


@dataclass(frozen=True)
class AIConfig:
    provider: ProviderName
    base_url: str
    model: str
    api_key: Optional[str] = None
    # None disables the client-side timeout
    timeout_s: Optional[float] = DEFAULT_TIMEOUT_S

    @property
    def root_url(self) -> str:
        return str(self.base_url or "").rstrip("/")

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "provider": self.provider.value,
            "baseUrl": self.base_url,
            "model": self.model,
            "apiKey": self.api_key or "",
        }
        if self.timeout_s != DEFAULT_TIMEOUT_S:
            record["timeoutS"] = self.timeout_s or 0
        return record


# --- settings storage ----------------------------------------------------


class SettingsStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemorySettingsStore:
    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileSettingsStore:
    """
    Key/value strings persisted in one JSON file.
    Reads hit the disk every time; writes are atomic (tmp file + replace).
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            parsed = json.loads(self._path.read_text(encoding="utf-8"))
        except ValueError as e:
            # Corrupt file: behave as empty, the next save overwrites it.
            logger.warning("Ignoring unreadable settings file %s: %r", self._path, e)
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp, self._path)


def default_settings_path(env: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if env is None else env
    raw = env.get("ARCHIVIZ_SETTINGS_PATH")
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".archiviz" / "settings.json"


def default_store(env: Optional[Mapping[str, str]] = None) -> JsonFileSettingsStore:
    return JsonFileSettingsStore(default_settings_path(env))


# --- environment ---------------------------------------------------------


def load_secrets(path: Path) -> dict[str, str]:
    """
    Read a flat `NAME: value` YAML file. Missing file means no secrets.
    """
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        logger.warning("Ignoring secrets file %s: expected a mapping, got %s", path, type(data).__name__)
        return {}
    return {str(k): str(v) for k, v in data.items() if v is not None}


def load_environment(secrets_path: Optional[Path] = None) -> dict[str, str]:
    """
    Environment defaults: secrets file first, real environment variables win.
    """
    if secrets_path is None:
        secrets_path = Path(os.environ.get("ARCHIVIZ_SECRETS_PATH", "secrets.yaml"))
    merged = load_secrets(Path(secrets_path))
    merged.update(os.environ)
    return merged


def _env(env: Mapping[str, str], name: str) -> Optional[str]:
    # Values exported for the old Vite front-end carry a VITE_ prefix
    for key in (name, f"VITE_{name}"):
        value = env.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _parse_timeout(raw: Any) -> Optional[float]:
    if raw is None or raw == "":
        return DEFAULT_TIMEOUT_S
    timeout_s = float(raw)
    return timeout_s if timeout_s > 0 else None


# --- resolution ----------------------------------------------------------


def config_from_record(record: Mapping[str, Any]) -> AIConfig:
    """
    Build an AIConfig from a persisted settings record. Fields are taken
    verbatim; only the provider tag is checked.
    """
    return AIConfig(
        provider=ProviderName.parse(record.get("provider")),
        base_url=record.get("baseUrl"),
        model=record.get("model"),
        api_key=record.get("apiKey") or None,
        timeout_s=_parse_timeout(record.get("timeoutS")),
    )


def config_from_environment(env: Mapping[str, str]) -> AIConfig:
    return config_for_provider(_env(env, "AI_PROVIDER") or DEFAULT_PROVIDER.value, env=env)


def resolve_config(
    store: Optional[SettingsStore] = None,
    env: Optional[Mapping[str, str]] = None,
) -> AIConfig:
    if env is None:
        env = load_environment()
    if store is None:
        store = default_store(env)

    saved = store.get(SETTINGS_KEY)
    if saved:
        record = json.loads(saved)
        if not isinstance(record, dict):
            raise ValueError(f"Settings record {SETTINGS_KEY!r} is not a JSON object: {saved[:200]!r}")
        return config_from_record(record)
    return config_from_environment(env)


def config_for_provider(
    provider: Any,
    *,
    base_url: Optional[str] = None,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> AIConfig:
    """
    Settings for `provider` with blanks filled from environment and built-in defaults.
    """
    env = {} if env is None else env
    name = ProviderName.parse(provider)
    base_url_var, model_var, key_var = _ENV_NAMES[name]
    defaults = PROVIDER_DEFAULTS[name]
    return AIConfig(
        provider=name,
        base_url=base_url or _env(env, base_url_var) or defaults["base_url"],
        model=model or _env(env, model_var) or defaults["model"],
        api_key=api_key or (_env(env, key_var) if key_var else None),
        timeout_s=_parse_timeout(_env(env, "RENDER_TIMEOUT_S")),
    )


def save_settings(config: AIConfig, store: Optional[SettingsStore] = None) -> None:
    if store is None:
        store = default_store()
    store.set(SETTINGS_KEY, json.dumps(config.to_record()))
    logger.info("Saved %s settings (model=%s, base_url=%s)", config.provider.value, config.model, config.base_url)
