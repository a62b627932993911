from __future__ import annotations

from render_providers.presets import EnvironmentPreset

_INSTRUCTION = (
    "Act as a professional architectural visualization artist.\n"
    "Transform the attached architectural sketch/model (SketchUp style) into a High-Fidelity Photorealistic Render."
)

_TECHNICAL_REQUIREMENTS = (
    "Technical Requirements:\n"
    "- 8k resolution details\n"
    "- Raytraced lighting and reflections\n"
    "- Realistic materials (glass, concrete, wood, metal)\n"
    "- Correct perspective and scale\n"
    "- Maintain the exact geometry of the original building but replace sketch textures with realistic ones.\n"
    "- Professional architectural photography style\n"
    "- Do not add text or watermarks."
)


def build_render_prompt(preset: EnvironmentPreset) -> str:
    """
    Shared prompt for every provider; only the environment block varies.
    """
    return (
        f"{_INSTRUCTION}\n\n"
        f"Environment Requirements:\n{preset.prompt_modifier}\n\n"
        f"{_TECHNICAL_REQUIREMENTS}"
    )
