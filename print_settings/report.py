"""Normalize the engine's raw result metadata into a PrintReport.

The engine reports the same quantity under different field names
depending on version and invocation, and any field may be missing. Each
report field has an ordered list of candidate names; the first candidate
holding a usable value wins. Unusable values (negative, non-numeric,
non-finite) are skipped as if absent, and a field with no usable
candidate is unknown (None, rendered as "unknown").
"""

import math
from dataclasses import dataclass, fields

from .defaults import DEFAULT_INFILL_DENSITY, DEFAULT_MATERIAL, LAYER_HEIGHT_OPTIONS
from .materials import MATERIALS, MaterialTable
from .user_settings import UserSettings

UNKNOWN = "unknown"

FIELD_CANDIDATES: dict[str, tuple[str, ...]] = {
    "estimated_time_seconds": ("printTime", "print_time", "estimated_time"),
    "filament_used_mm": ("filamentUsage", "material1Usage", "filament_used"),
    "volume": ("volume",),
    "height": ("height",),
    "width": ("width",),
    "depth": ("depth",),
    "layer_count": ("layers", "layer_count"),
}


@dataclass(frozen=True)
class PrintReport:
    estimated_time_seconds: float | None = None
    filament_used_mm: float | None = None
    filament_used_grams: float | None = None
    volume: float | None = None   # mm³
    height: float | None = None   # mm
    width: float | None = None
    depth: float | None = None
    layer_count: int | None = None
    # Echo of the settings used for this run
    material_type: str = ""
    material_color: str | None = None
    layer_height: float | None = None
    infill_density: int | None = None

    def to_dict(self) -> dict:
        """JSON-friendly dict with unknown values rendered as "unknown"."""
        return {
            f.name: UNKNOWN if getattr(self, f.name) is None else getattr(self, f.name)
            for f in fields(self)
        }


def _to_number(value) -> float | None:
    """Return value as a finite non-negative float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def resolve_field(raw: dict, candidates, integer: bool = False) -> float | int | None:
    """Return the first usable value among candidate field names, or None."""
    for name in candidates:
        if name not in raw:
            continue
        number = _to_number(raw[name])
        if number is None:
            continue
        if integer:
            if number != int(number):
                continue
            return int(number)
        return number
    return None


def filament_grams(filament_mm: float | None, density: float) -> float | None:
    """Filament mass from length: (mm / 1000) * density, rounded to 0.01 g."""
    if filament_mm is None:
        return None
    return round(filament_mm / 1000 * density, 2)


def normalize_metadata(
    raw: dict | None, settings: UserSettings, materials: MaterialTable = MATERIALS,
) -> PrintReport:
    """Build a PrintReport from raw engine metadata. Never fails.

    raw=None (engine returned no metadata) yields a report where every
    measured field is unknown.
    """
    if not isinstance(raw, dict):
        raw = {}
    values = {
        name: resolve_field(raw, candidates, integer=(name == "layer_count"))
        for name, candidates in FIELD_CANDIDATES.items()
    }
    infill = settings.infill_density
    return PrintReport(
        filament_used_grams=filament_grams(
            values["filament_used_mm"], materials.density(settings.material_type),
        ),
        material_type=(settings.material_type or DEFAULT_MATERIAL).upper(),
        material_color=settings.material_color,
        layer_height=settings.layer_height,
        infill_density=DEFAULT_INFILL_DENSITY if infill is None else infill,
        **values,
    )


def format_duration(seconds) -> str:
    """Format seconds as '1h 2m', '2m 5s' or '45s'. Units are truncated, not rounded."""
    value = _to_number(seconds)
    if value is None:
        return UNKNOWN
    total = int(value)
    h, remainder = divmod(total, 3600)
    m, s = divmod(remainder, 60)
    if h:
        return f"{h}h {m}m"
    if m:
        return f"{m}m {s}s"
    return f"{s}s"


def _fmt(value, unit: str = "", digits: int = 2) -> str:
    if value is None:
        return UNKNOWN
    if isinstance(value, float):
        return f"{value:.{digits}f}{unit}"
    return f"{value}{unit}"


def format_report(report: PrintReport) -> str:
    """Format a PrintReport as plain text for the console and report.txt."""
    meters = None if report.filament_used_mm is None else report.filament_used_mm / 1000
    lines = [
        f"Estimated time: {format_duration(report.estimated_time_seconds)}",
        f"Filament: {_fmt(meters, ' m')} / {_fmt(report.filament_used_grams, ' g')}",
        f"Size (W x D x H): {_fmt(report.width)} x {_fmt(report.depth)} x {_fmt(report.height)} mm",
        f"Volume: {_fmt(report.volume, ' mm³')}",
        f"Layers: {_fmt(report.layer_count)}",
        f"Material: {report.material_type}",
        f"Color: {_fmt(report.material_color)}",
        f"Layer height: {_fmt(report.layer_height, ' mm')}",
        f"Infill: {_fmt(report.infill_density, '%')}",
    ]
    return "\n".join(lines) + "\n"


def quality_description(layer_height: float | None) -> str:
    """Label for a layer height, e.g. 'Normal (0.15mm)', or '0.25mm' off the list."""
    if layer_height is None:
        return UNKNOWN
    for value, label in LAYER_HEIGHT_OPTIONS.items():
        if math.isclose(value, layer_height):
            return label
    return f"{layer_height:g}mm"


def format_settings_summary(settings: UserSettings) -> str:
    """One-line summary of the chosen settings, shown before slicing."""
    infill = settings.infill_density
    infill_text = f"{DEFAULT_INFILL_DENSITY if infill is None else infill}%"
    if settings.infill_pattern:
        infill_text += f" {settings.infill_pattern}"
    parts = [
        f"Quality: {quality_description(settings.layer_height)}",
        f"Infill: {infill_text}",
        f"Support: {'Enabled' if settings.support_enable else 'Disabled'}",
        f"Material: {(settings.material_type or DEFAULT_MATERIAL).upper()}",
        f"Color: {_fmt(settings.material_color)}",
    ]
    return " / ".join(parts)
