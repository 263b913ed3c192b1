from dataclasses import dataclass, field
from pathlib import Path

from .materials import MATERIALS, MaterialTable


@dataclass
class Config:
    archive_dir: Path
    cura_bin: Path
    def_dir: Path
    printer_def: str
    materials: MaterialTable = field(default_factory=lambda: MATERIALS)
    api_port: int = 0
    api_host: str = "0.0.0.0"
    cors_origin: str = "*"


def load_config(config) -> Config:
    """Build a Config from a parsed configparser object."""
    paths = config["PATHS"]
    archive_dir = Path(paths["archive_directory"])
    cura_bin = Path(paths["cura_engine_path"])
    def_dir = Path(paths["definition_dir"])
    printer_def = paths["printer_definition"]

    materials_file = paths.get("materials_file", "").strip()
    materials = MaterialTable(Path(materials_file)) if materials_file else MATERIALS

    api_port = 0
    api_host = "0.0.0.0"
    cors_origin = "*"
    if config.has_section("API"):
        api = config["API"]
        api_port = int(api.get("port", "0").strip() or "0")
        api_host = api.get("host", api_host).strip() or api_host
        cors_origin = api.get("cors_origin", cors_origin).strip() or cors_origin

    return Config(
        archive_dir=archive_dir,
        cura_bin=cura_bin,
        def_dir=def_dir,
        printer_def=printer_def,
        materials=materials,
        api_port=api_port,
        api_host=api_host,
        cors_origin=cors_origin,
    )
