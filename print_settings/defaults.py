"""Checked-in defaults for the settings compiler.

Every constant the precedence rules depend on lives here so the emission
order in overrides.py can be audited against one table.

Settings blocks are ordered {engine_key: value} dicts. Keys are CuraEngine
setting identifiers and are sent verbatim.
"""

DEFAULT_LAYER_HEIGHT = 0.15
DEFAULT_INITIAL_LAYER_HEIGHT = 0.2
# initial layer = layer height * factor when the user picks a non-default height
INITIAL_LAYER_FACTOR = 1.5
DEFAULT_INFILL_DENSITY = 20
DEFAULT_MATERIAL = "pla"
DEFAULT_SUPPORT_TYPE = "buildplate"

BASELINE_SETTINGS: dict[str, object] = {
    "speed_print": 80,
    "material_bed_temperature": 70,
    "material_print_temperature": 210,
    "retraction_enable": True,
    "wall_line_count": 3,
    "top_layers": 4,
    "bottom_layers": 3,
    "adhesion_type": "skirt",
}

# Sent after support_enable=true; support_type is replaced by the user's choice
SUPPORT_SETTINGS: dict[str, object] = {
    "support_type": DEFAULT_SUPPORT_TYPE,
    "support_angle": 50,
    "support_infill_rate": 15,
}

# Always sent last
QUALITY_SETTINGS: dict[str, object] = {
    "retraction_enable": True,
    "wall_line_count": 3,
    "top_layers": 4,
    "bottom_layers": 3,
    "adhesion_type": "skirt",
}

LAYER_HEIGHT_OPTIONS: dict[float, str] = {
    0.06: "Extra Fine (0.06mm)",
    0.1: "Fine (0.1mm)",
    0.15: "Normal (0.15mm)",
    0.2: "Fast (0.2mm)",
    0.3: "Very Fast (0.3mm)",
}

INFILL_PATTERNS = (
    "grid", "lines", "triangles", "cubic",
    "concentric", "zigzag", "gyroid",
)

# Initial selection offered to a new user
USER_DEFAULTS: dict[str, object] = {
    "layerHeight": DEFAULT_LAYER_HEIGHT,
    "infillDensity": DEFAULT_INFILL_DENSITY,
    "infillPattern": "grid",
    "supportEnable": False,
    "materialType": DEFAULT_MATERIAL,
    "materialColor": "blue",
}
