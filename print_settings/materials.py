import json
from dataclasses import dataclass, fields
from pathlib import Path

from .defaults import DEFAULT_MATERIAL


@dataclass(frozen=True)
class MaterialPreset:
    name: str
    label: str
    print_temperature: float   # °C
    bed_temperature: float     # °C
    retraction_amount: float   # mm
    print_speed: float         # mm/s
    density: float             # g/cm³
    color: str = ""

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


BUILTIN_MATERIALS: dict[str, MaterialPreset] = {
    "pla": MaterialPreset(
        name="pla", label="PLA",
        print_temperature=210, bed_temperature=60,
        retraction_amount=6.5, print_speed=80,
        density=1.24, color="blue",
    ),
    "pla+": MaterialPreset(
        name="pla+", label="PLA+",
        print_temperature=220, bed_temperature=70,
        retraction_amount=6.5, print_speed=75,
        density=1.25, color="grey",
    ),
    "abs": MaterialPreset(
        name="abs", label="ABS",
        print_temperature=250, bed_temperature=100,
        retraction_amount=4.5, print_speed=70,
        density=1.05, color="yellow",
    ),
}

_REQUIRED_FIELDS = (
    "print_temperature", "bed_temperature",
    "retraction_amount", "print_speed", "density",
)


def _preset_from_json(name: str, data: dict) -> MaterialPreset:
    """Build a MaterialPreset from a custom materials.json entry."""
    missing = [f for f in _REQUIRED_FIELDS if f not in data]
    if missing:
        raise ValueError(f"materials file: '{name}' missing {', '.join(missing)}")
    return MaterialPreset(
        name=name,
        label=data.get("label", name.upper()),
        print_temperature=float(data["print_temperature"]),
        bed_temperature=float(data["bed_temperature"]),
        retraction_amount=float(data["retraction_amount"]),
        print_speed=float(data["print_speed"]),
        density=float(data["density"]),
        color=data.get("color", ""),
    )


class MaterialTable:
    """Material presets keyed by lower-cased material name.

    Lookups never fail: None or an unrecognized name resolves to the
    default preset.
    """

    def __init__(self, custom_path: Path | None = None, default: str = DEFAULT_MATERIAL):
        self._presets = dict(BUILTIN_MATERIALS)
        if custom_path and custom_path.exists():
            with open(custom_path) as f:
                custom = json.load(f)
            if not isinstance(custom, dict):
                raise ValueError("materials file must contain a JSON object")
            for name, data in custom.items():
                key = name.lower()
                self._presets[key] = _preset_from_json(key, data)
        self._default = default.lower()
        if self._default not in self._presets:
            raise ValueError(f"default material '{default}' is not in the table")

    @property
    def default(self) -> MaterialPreset:
        return self._presets[self._default]

    def is_known(self, material_type: str | None) -> bool:
        return bool(material_type) and material_type.lower() in self._presets

    def get(self, material_type: str | None) -> MaterialPreset:
        if not material_type:
            return self.default
        return self._presets.get(material_type.lower(), self.default)

    def density(self, material_type: str | None) -> float:
        return self.get(material_type).density

    def default_color(self, material_type: str | None) -> str | None:
        """Display color that goes with a recognized material, if any."""
        if not self.is_known(material_type):
            return None
        return self._presets[material_type.lower()].color or None

    def list_presets(self) -> dict[str, MaterialPreset]:
        return self._presets

    def names(self) -> list[str]:
        return list(self._presets.keys())


MATERIALS = MaterialTable()
