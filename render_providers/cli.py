#!/usr/bin/env python3
"""
Command-line front-end for the render providers.

Usage:
    archiviz-render presets [--category exterior|interior]
    archiviz-render configure --provider huggingface --api-key hf_xxx
    archiviz-render health
    archiviz-render render sketch.png --preset sunny_day --out render.png

Environment:
    ARCHIVIZ_SETTINGS_PATH  Settings file (default: ~/.archiviz/settings.json)
    ARCHIVIZ_SECRETS_PATH   YAML file with environment defaults (default: ./secrets.yaml)
    AI_PROVIDER, HF_API_KEY, GOOGLE_API_KEY, ...  see render_providers/config.py
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml

from render_providers.config import config_for_provider, default_store, load_environment, save_settings
from render_providers.images import SourceImage
from render_providers.presets import ENVIRONMENTS, get_preset, presets_for_category
from render_providers.service import check_health, generate_render
from render_providers.types import RANDOM_SEED, ProviderName, RenderError, RenderSettings

# json.JSONDecodeError and a bad timeout value are both ValueError
CONFIG_ERRORS = (ValueError, yaml.YAMLError)


def cmd_presets(args: argparse.Namespace) -> int:
    presets = presets_for_category(args.category) if args.category else list(ENVIRONMENTS)
    for preset in presets:
        print(f"{preset.id:<22} {preset.category.value:<9} {preset.name}: {preset.description}")
    return 0


def cmd_configure(args: argparse.Namespace) -> int:
    try:
        env = load_environment()
        config = config_for_provider(
            args.provider,
            base_url=args.base_url,
            model=args.model,
            api_key=args.api_key,
            env=env,
        )
    except CONFIG_ERRORS as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return 1
    store = default_store(env)
    save_settings(config, store)
    print(f"Saved {config.provider.value} settings to {store.path}")
    return 0


def cmd_health(args: argparse.Namespace) -> int:
    status = asyncio.run(check_health())
    state = "available" if status.available else "unavailable"
    print(f"{status.provider}: {state} - {status.message}")
    return 0 if status.available else 1


def cmd_render(args: argparse.Namespace) -> int:
    try:
        preset = get_preset(args.preset)
    except KeyError as e:
        print(f"ERROR: {e.args[0]}", file=sys.stderr)
        return 2

    sketch = Path(args.sketch)
    if not sketch.exists():
        print(f"ERROR: Sketch not found: {sketch}", file=sys.stderr)
        return 2

    settings = RenderSettings(
        creativity_strength=args.strength,
        negative_prompt=args.negative_prompt,
        seed=args.seed,
    )
    try:
        result = asyncio.run(generate_render(SourceImage.from_path(sketch), preset, settings))
    except RenderError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1
    except CONFIG_ERRORS as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return 1

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(result.data)
    print(f"Wrote {result.mime_type} render ({len(result.data)} bytes) to {out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Turn architectural sketches into photorealistic renders")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("presets", help="List environment presets")
    p.add_argument("--category", choices=["exterior", "interior"])
    p.set_defaults(func=cmd_presets)

    p = sub.add_parser("configure", help="Save provider settings")
    p.add_argument("--provider", required=True, choices=[n.value for n in ProviderName])
    p.add_argument("--base-url")
    p.add_argument("--model")
    p.add_argument("--api-key")
    p.set_defaults(func=cmd_configure)

    p = sub.add_parser("health", help="Check whether the configured provider is usable")
    p.set_defaults(func=cmd_health)

    p = sub.add_parser("render", help="Render a sketch")
    p.add_argument("sketch", help="Input sketch image (png, jpeg or webp)")
    p.add_argument("--preset", "-p", default="sunny_day", help="Environment preset id (default: sunny_day)")
    p.add_argument("--strength", type=float, default=0.75, help="Creativity strength 0..1 (default: 0.75)")
    p.add_argument("--negative-prompt", default="")
    p.add_argument("--seed", type=int, default=RANDOM_SEED, help="Seed, -1 for random (default: -1)")
    p.add_argument("--out", "-o", required=True, help="Where to write the rendered image")
    p.set_defaults(func=cmd_render)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if getattr(args, "strength", None) is not None and not 0.0 <= args.strength <= 1.0:
        parser.error("--strength must be between 0 and 1")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
