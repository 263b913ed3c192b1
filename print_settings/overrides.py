"""Compile user settings into an ordered list of CuraEngine overrides.

The list is consumed last-write-wins per key. Later blocks repeat keys
from the baseline: material presets replace the generic
temperatures and speed, and the quality block is always applied last.

Emission order:
  1. baseline defaults (always includes infill_sparse_density)
  2. layer_height + initial_layer_height
  3. infill_pattern
  4. support_enable (+ support_type, support_angle, support_infill_rate)
  5. material preset
  6. material_colour
  7. quality block
"""

import math
from dataclasses import dataclass

from .defaults import (
    BASELINE_SETTINGS, DEFAULT_INFILL_DENSITY, DEFAULT_INITIAL_LAYER_HEIGHT,
    DEFAULT_LAYER_HEIGHT, INITIAL_LAYER_FACTOR, QUALITY_SETTINGS, SUPPORT_SETTINGS,
)
from .materials import MATERIALS, MaterialTable
from .user_settings import UserSettings


@dataclass(frozen=True)
class ParameterOverride:
    key: str
    value: float | int | bool | str
    scope: str | None = None  # passed through to the engine untouched

    def to_dict(self) -> dict:
        return {"scope": self.scope, "key": self.key, "value": self.value}


def _block(settings: dict[str, object]) -> list[ParameterOverride]:
    return [ParameterOverride(k, v) for k, v in settings.items()]


def _layer_height_overrides(layer_height: float | None) -> list[ParameterOverride]:
    if layer_height is None:
        return []
    if math.isclose(layer_height, DEFAULT_LAYER_HEIGHT):
        # Sent even when it matches the default
        return [
            ParameterOverride("layer_height", DEFAULT_LAYER_HEIGHT),
            ParameterOverride("initial_layer_height", DEFAULT_INITIAL_LAYER_HEIGHT),
        ]
    return [
        ParameterOverride("layer_height", layer_height),
        ParameterOverride("initial_layer_height", round(layer_height * INITIAL_LAYER_FACTOR, 4)),
    ]


def _support_overrides(settings: UserSettings) -> list[ParameterOverride]:
    if settings.support_enable is None:
        return []
    result = [ParameterOverride("support_enable", settings.support_enable)]
    if settings.support_enable:
        support = dict(SUPPORT_SETTINGS)
        if settings.support_type:
            support["support_type"] = settings.support_type
        result.extend(_block(support))
    return result


def _material_overrides(settings: UserSettings, materials: MaterialTable) -> list[ParameterOverride]:
    preset = materials.get(settings.material_type)
    return [
        ParameterOverride("material_print_temperature", preset.print_temperature),
        ParameterOverride("material_bed_temperature", preset.bed_temperature),
        ParameterOverride("retraction_amount", preset.retraction_amount),
        ParameterOverride("speed_print", preset.print_speed),
    ]


def build_overrides(
    settings: UserSettings, materials: MaterialTable = MATERIALS,
) -> tuple[ParameterOverride, ...]:
    """Build the ordered override sequence for one slicing run. Never fails."""
    infill = settings.infill_density
    overrides = _block(BASELINE_SETTINGS)
    overrides.append(ParameterOverride(
        "infill_sparse_density", DEFAULT_INFILL_DENSITY if infill is None else infill,
    ))

    overrides.extend(_layer_height_overrides(settings.layer_height))

    if settings.infill_pattern:
        overrides.append(ParameterOverride("infill_pattern", settings.infill_pattern))

    overrides.extend(_support_overrides(settings))
    overrides.extend(_material_overrides(settings, materials))

    if settings.material_color:
        overrides.append(ParameterOverride("material_colour", settings.material_color))

    overrides.extend(_block(QUALITY_SETTINGS))
    return tuple(overrides)


def _resolved_key(override: ParameterOverride) -> str:
    return f"{override.scope}:{override.key}" if override.scope else override.key


def resolve_overrides(overrides) -> dict[str, object]:
    """Fold an override sequence into {key: value}; the last entry for a key wins.

    Scoped entries are keyed "scope:key". Keys keep the position of their
    first appearance.
    """
    result = {}
    for override in overrides:
        result[_resolved_key(override)] = override.value
    return result


def format_value(value) -> str:
    """Render a value the way CuraEngine expects it on the command line."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_overrides_summary(
    settings: UserSettings, overrides, materials: MaterialTable = MATERIALS,
) -> str:
    """Format the effective overrides as plain text for settings.txt."""
    preset = materials.get(settings.material_type)
    lines = [f"material: {preset.label}", ""]
    for key, value in resolve_overrides(overrides).items():
        lines.append(f"{key} = {format_value(value)}")
    return "\n".join(lines) + "\n"
