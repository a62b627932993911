from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class RenderCategory(str, Enum):
    EXTERIOR = "exterior"
    INTERIOR = "interior"

    @classmethod
    def parse(cls, value: Any) -> "RenderCategory":
        s = str(value or "").strip().lower()
        for member in cls:
            if s == member.value:
                return member
        raise ValueError(f"Unsupported render category: {value!r}")


@dataclass(frozen=True)
class EnvironmentPreset:
    id: str
    name: str
    description: str
    # Scene description injected into the render prompt
    prompt_modifier: str
    icon: str
    color_from: str
    color_to: str
    category: RenderCategory


ENVIRONMENTS: tuple[EnvironmentPreset, ...] = (
    EnvironmentPreset(
        id="sunny_day",
        name="Sunny Day",
        description="Clear blue skies, sharp shadows, high contrast.",
        prompt_modifier="sunny day, clear blue sky, bright natural lighting, sharp shadows, realistic summer atmosphere",
        icon="Sun",
        color_from="from-blue-400",
        color_to="to-yellow-300",
        category=RenderCategory.EXTERIOR,
    ),
    EnvironmentPreset(
        id="golden_hour",
        name="Golden Hour",
        description="Warm sunset lighting, long shadows, dramatic mood.",
        prompt_modifier=(
            "golden hour, sunset, warm orange and purple lighting, long dramatic shadows, "
            "cinematic lighting, evening atmosphere"
        ),
        icon="Sunset",
        color_from="from-orange-500",
        color_to="to-purple-600",
        category=RenderCategory.EXTERIOR,
    ),
    EnvironmentPreset(
        id="modern_night",
        name="Urban Night",
        description="Night time, artificial lighting, interior glow.",
        prompt_modifier=(
            "night time, dark sky with stars, interior lights glowing warm yellow, exterior accent lighting, "
            "wet pavement reflections, urban night atmosphere"
        ),
        icon="Moon",
        color_from="from-indigo-900",
        color_to="to-slate-800",
        category=RenderCategory.EXTERIOR,
    ),
    EnvironmentPreset(
        id="overcast",
        name="Overcast / Soft",
        description="Diffused light, soft shadows, neutral tones.",
        prompt_modifier=(
            "overcast sky, diffused soft lighting, no harsh shadows, neutral white balance, "
            "minimalist architectural photography style"
        ),
        icon="CloudFog",
        color_from="from-gray-400",
        color_to="to-slate-300",
        category=RenderCategory.EXTERIOR,
    ),
    EnvironmentPreset(
        id="rainy",
        name="Rainy Mood",
        description="Wet surfaces, reflections, moody atmosphere.",
        prompt_modifier=(
            "rainy weather, wet surfaces, puddles with reflections, mist, moody blue tones, "
            "cold atmosphere, rain drops"
        ),
        icon="CloudRain",
        color_from="from-slate-700",
        color_to="to-blue-900",
        category=RenderCategory.EXTERIOR,
    ),
    EnvironmentPreset(
        id="nature",
        name="Eco / Forest",
        description="Surrounded by lush vegetation and nature.",
        prompt_modifier=(
            "surrounded by lush green forest, nature integration, sunlight filtering through trees, "
            "organic atmosphere, landscaping focus"
        ),
        icon="Leaf",
        color_from="from-emerald-600",
        color_to="to-green-400",
        category=RenderCategory.EXTERIOR,
    ),
    EnvironmentPreset(
        id="scandinavian_living",
        name="Scandinavian Living",
        description="Bright living space, pale timber, soft daylight.",
        prompt_modifier=(
            "scandinavian living room interior, light oak flooring, white walls, linen textiles, "
            "soft daylight through large windows, calm minimalist atmosphere"
        ),
        icon="Sofa",
        color_from="from-stone-200",
        color_to="to-amber-100",
        category=RenderCategory.INTERIOR,
    ),
    EnvironmentPreset(
        id="luxury_lobby",
        name="Luxury Lobby",
        description="Marble, brass accents, warm ambient light.",
        prompt_modifier=(
            "luxury hotel lobby interior, polished marble floor, brushed brass details, "
            "warm ambient and cove lighting, double height space, elegant atmosphere"
        ),
        icon="Lamp",
        color_from="from-amber-600",
        color_to="to-stone-900",
        category=RenderCategory.INTERIOR,
    ),
    EnvironmentPreset(
        id="industrial_loft",
        name="Industrial Loft",
        description="Exposed concrete and steel, dramatic window light.",
        prompt_modifier=(
            "industrial loft interior, exposed concrete ceiling, black steel window frames, "
            "raw brick walls, dramatic side light, urban atmosphere"
        ),
        icon="Warehouse",
        color_from="from-zinc-600",
        color_to="to-neutral-800",
        category=RenderCategory.INTERIOR,
    ),
)


def get_preset(preset_id: str) -> EnvironmentPreset:
    for preset in ENVIRONMENTS:
        if preset.id == preset_id:
            return preset
    raise KeyError(f"Unknown environment preset: {preset_id!r}")


def presets_for_category(category: RenderCategory | str) -> list[EnvironmentPreset]:
    cat = RenderCategory.parse(category.value if isinstance(category, RenderCategory) else category)
    return [p for p in ENVIRONMENTS if p.category == cat]
