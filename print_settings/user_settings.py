"""User-facing print settings and their validation.

Form and JSON input arrives as loosely-typed values (often strings).
parse_user_settings() coerces each field and reports problems per field
instead of raising, so one bad field never discards the rest.
"""

import math
from dataclasses import dataclass, replace

from .defaults import INFILL_PATTERNS
from .materials import MATERIALS, MaterialTable


@dataclass(frozen=True)
class UserSettings:
    layer_height: float | None = None
    infill_density: int | None = None
    infill_pattern: str | None = None
    support_enable: bool | None = None   # None means "not chosen", not False
    support_type: str | None = None
    material_type: str | None = None
    material_color: str | None = None

    def to_dict(self) -> dict:
        """Serialize using the camelCase field names of the form, omitting unset fields."""
        return {
            camel: getattr(self, attr)
            for camel, attr in FIELD_NAMES.items()
            if getattr(self, attr) is not None
        }


# camelCase form name -> dataclass attribute
FIELD_NAMES: dict[str, str] = {
    "layerHeight": "layer_height",
    "infillDensity": "infill_density",
    "infillPattern": "infill_pattern",
    "supportEnable": "support_enable",
    "supportType": "support_type",
    "materialType": "material_type",
    "materialColor": "material_color",
}


@dataclass
class ValidationResult:
    ok: bool
    value: object = None  # coerced value to store
    error: str = ""       # non-empty if ok is False


_BOOL_TRUE = {"true", "yes", "1", "on"}
_BOOL_FALSE = {"false", "no", "0", "off"}


def _validate_layer_height(raw) -> ValidationResult:
    if isinstance(raw, bool):
        return ValidationResult(ok=False, error=f"Expected a number, got '{raw}'")
    try:
        val = float(raw)
    except (TypeError, ValueError, OverflowError):
        return ValidationResult(ok=False, error=f"Expected a number, got '{raw}'")
    if not math.isfinite(val) or val <= 0:
        return ValidationResult(ok=False, error=f"Layer height must be positive, got {raw}")
    return ValidationResult(ok=True, value=val)


def _validate_infill_density(raw) -> ValidationResult:
    if isinstance(raw, bool):
        return ValidationResult(ok=False, error=f"Expected an integer, got '{raw}'")
    # Allow "20.0" style input, but not 20.5
    try:
        f = float(raw)
    except (TypeError, ValueError, OverflowError):
        return ValidationResult(ok=False, error=f"Expected an integer, got '{raw}'")
    if not math.isfinite(f) or f != int(f):
        return ValidationResult(ok=False, error=f"Expected an integer, got '{raw}'")
    val = int(f)
    if val < 0 or val > 100:
        return ValidationResult(ok=False, error=f"Infill density {val}% is outside 0-100")
    return ValidationResult(ok=True, value=val)


def _validate_infill_pattern(raw) -> ValidationResult:
    lower = str(raw).lower().strip()
    if lower in INFILL_PATTERNS:
        return ValidationResult(ok=True, value=lower)
    valid = ", ".join(INFILL_PATTERNS)
    return ValidationResult(ok=False, error=f"Invalid option '{raw}'. Valid options: {valid}")


def _validate_bool(raw) -> ValidationResult:
    if isinstance(raw, bool):
        return ValidationResult(ok=True, value=raw)
    lower = str(raw).lower().strip()
    if lower in _BOOL_TRUE:
        return ValidationResult(ok=True, value=True)
    if lower in _BOOL_FALSE:
        return ValidationResult(ok=True, value=False)
    return ValidationResult(ok=False, error=f"Expected true/false, got '{raw}'")


def _validate_str(raw) -> ValidationResult:
    value = str(raw).strip()
    if not value:
        return ValidationResult(ok=False, error="Expected a non-empty value")
    return ValidationResult(ok=True, value=value)


_VALIDATORS = {
    "layer_height": _validate_layer_height,
    "infill_density": _validate_infill_density,
    "infill_pattern": _validate_infill_pattern,
    "support_enable": _validate_bool,
    "support_type": _validate_str,
    "material_type": _validate_str,
    "material_color": _validate_str,
}


def validate_field(attr: str, raw) -> ValidationResult:
    return _VALIDATORS[attr](raw)


def parse_user_settings(raw: dict) -> tuple[UserSettings, dict[str, str]]:
    """Build UserSettings from form/JSON input.

    Accepts camelCase (layerHeight) or snake_case (layer_height) keys.
    None values count as "not supplied". Returns (settings, errors) where
    errors maps the offending input key to a message; invalid fields are
    left unset.
    """
    values = {}
    errors = {}
    for key, raw_value in raw.items():
        attr = FIELD_NAMES.get(key, key)
        if attr not in _VALIDATORS:
            errors[key] = f"Unknown setting: '{key}'"
            continue
        if raw_value is None:
            continue
        result = validate_field(attr, raw_value)
        if result.ok:
            values[attr] = result.value
        else:
            errors[key] = result.error
    return UserSettings(**values), errors


def parse_key_values(args: list[str]) -> dict[str, str]:
    """Parse command-line style key=value arguments into a raw dict."""
    parsed = {}
    for arg in args:
        if "=" in arg:
            key, val = arg.split("=", 1)
            parsed[key.strip()] = val.strip()
    return parsed


def with_material(
    settings: UserSettings, material_type: str, materials: MaterialTable = MATERIALS,
) -> UserSettings:
    """Switch material, picking up the material's display color when it has one."""
    color = materials.default_color(material_type)
    if color is None:
        return replace(settings, material_type=material_type)
    return replace(settings, material_type=material_type, material_color=color)
