"""CuraEngine adapter.

Feeds compiled overrides to the CuraEngine binary and turns the gcode
header it logs into a raw metadata record for report.normalize_metadata().
"""

import re
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .overrides import build_overrides, format_overrides_summary, format_value, resolve_overrides
from .report import PrintReport, format_report, normalize_metadata
from .user_settings import UserSettings

MODEL_SUFFIXES = (".stl",)


@dataclass
class SliceResult:
    success: bool
    message: str
    job_folder: Path | None = None
    report: PrintReport | None = None


def build_cura_command(
    cura_bin: Path, def_dir: Path, printer_def: str,
    model_path: Path, gcode_path: Path, overrides,
) -> list[str]:
    """Build the CuraEngine command line (pure).

    Overrides are resolved last-write-wins first so each key is passed once.
    """
    extruders_dir = def_dir.parent / "extruders"
    cmd = [
        str(cura_bin),
        "slice",
        "-d", str(def_dir),
        "-d", str(extruders_dir),
        "-j", printer_def,
    ]

    for key, val in resolve_overrides(overrides).items():
        cmd.extend(["-s", f"{key}={format_value(val)}"])

    cmd.extend(
        [
            "-l", str(model_path),
            "-o", str(gcode_path),
        ]
    )
    return cmd


def parse_gcode_header(output: str) -> dict[str, str]:
    """Parse the real gcode header values from CuraEngine's log output.

    CuraEngine logs the final header after slicing. Format:
        [...] [info] Gcode header after slicing: ;FLAVOR:Marlin
        ;TIME:2659
        ;Filament used: 1.95583m
        ;Layer height: 0.2
        ...
    Returns {";TIME": "2659", ";Filament used": " 1.95583m", ...}.
    """
    header = {}
    m = re.search(r"Gcode header after slicing:\s*(;.+)", output)
    if not m:
        return header
    # First header line is on the same line as the log message
    first_line = m.group(1).strip()
    rest = output[m.end():]
    lines = [first_line] + [
        line.strip() for line in rest.splitlines()
        if line.strip().startswith(";") and ":" in line.strip()
    ]
    for line in lines:
        key, _, value = line.partition(":")
        if value:
            header[key] = value
    return header


def _header_float(header: dict[str, str], key: str) -> float | None:
    value = header.get(key)
    if value is None:
        return None
    try:
        return float(value.strip().rstrip("m"))
    except ValueError:
        return None


def header_to_metadata(header: dict[str, str]) -> dict:
    """Convert a parsed gcode header into a raw metadata record.

    Only values that parse are included; everything else is left for the
    normalizer to report as unknown.
    """
    metadata = {}
    time_seconds = _header_float(header, ";TIME")
    if time_seconds is not None:
        metadata["print_time"] = time_seconds
    filament_m = _header_float(header, ";Filament used")
    if filament_m is not None:
        metadata["filament_used"] = round(filament_m * 1000, 2)
    layers = _header_float(header, ";LAYER_COUNT")
    if layers is not None:
        metadata["layer_count"] = layers

    for axis, name in (("X", "width"), ("Y", "depth"), ("Z", "height")):
        lo = _header_float(header, f";MIN{axis}")
        hi = _header_float(header, f";MAX{axis}")
        if lo is not None and hi is not None and hi >= lo:
            metadata[name] = round(hi - lo, 3)
    return metadata


def find_header_end(lines: list[str]) -> int:
    """Find the line index where the initial comment header ends."""
    for i, line in enumerate(lines):
        stripped = line.strip()
        if stripped and not stripped.startswith(";"):
            return i
    return len(lines)


def format_override_comments(overrides) -> str:
    """Format the effective overrides as gcode comment lines."""
    lines = [
        f"; override: {key} = {format_value(value)}"
        for key, value in resolve_overrides(overrides).items()
    ]
    return "\n".join(lines) + "\n" if lines else ""


def inject_override_comments(gcode_path: Path, overrides) -> None:
    """Insert override comments after the CuraEngine comment header."""
    comments = format_override_comments(overrides)
    if not comments:
        return
    lines = gcode_path.read_text().splitlines(keepends=True)
    pos = find_header_end(lines)
    header = "".join(lines[:pos])
    body = "".join(lines[pos:])
    gcode_path.write_text(header + ";\n" + comments + ";\n" + body)


def slice_model(
    config: Config, model_path: Path, settings: UserSettings,
    archive_folder: Path | None = None,
) -> SliceResult:
    """Slice a model with CuraEngine and archive the gcode with its report.

    Never raises for engine failures; the result carries a plain message.
    """
    if model_path.suffix.lower() not in MODEL_SUFFIXES:
        return SliceResult(False, "Please select a valid STL file")
    if not model_path.exists():
        return SliceResult(False, f"File not found: {model_path}")

    overrides = build_overrides(settings, config.materials)
    gcode_path = model_path.with_suffix(".gcode")
    cmd = build_cura_command(
        config.cura_bin, config.def_dir, config.printer_def,
        model_path, gcode_path, overrides,
    )

    print(f"[Slicing] {model_path.name}")
    print(f"[Command] {' '.join(cmd)}")
    print(f"[Settings] {settings.to_dict()}")

    try:
        result = subprocess.run(cmd, cwd=str(config.def_dir), capture_output=True, text=True)

        if result.stderr:
            print(f"[stderr] {result.stderr}")
        print(f"[Exit code] {result.returncode}")

        if result.returncode != 0:
            error_dir = config.archive_dir / "errors"
            error_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(model_path), error_dir / model_path.name)
            output = result.stdout + result.stderr
            error_msg = output.strip()[:500] if output.strip() else f"Exit code {result.returncode}"
            print(f"[Failed] {error_msg}")
            return SliceResult(False, f"Slicing failed: {error_msg}", error_dir)

        header = parse_gcode_header(result.stdout + "\n" + result.stderr)
        metadata = header_to_metadata(header) if header else None
        if metadata is None:
            print("[Warning] No metadata received from slicing operation")
        report = normalize_metadata(metadata, settings, config.materials)

        if gcode_path.exists():
            inject_override_comments(gcode_path, overrides)

        job_folder = archive_folder or config.archive_dir / model_path.stem / time.strftime("%Y%m%d_%H%M%S")
        job_folder.mkdir(parents=True, exist_ok=True)
        shutil.move(str(model_path), job_folder.parent / model_path.name)
        if gcode_path.exists():
            shutil.move(str(gcode_path), job_folder / gcode_path.name)
        (job_folder / "settings.txt").write_text(
            format_overrides_summary(settings, overrides, config.materials)
        )
        (job_folder / "report.txt").write_text(format_report(report))

    except (OSError, subprocess.SubprocessError) as e:
        print(f"[Exception] {e}")
        return SliceResult(False, f"System error: {e}")

    print(f"[Success] Archived to {job_folder}")
    return SliceResult(True, "Slicing completed successfully", job_folder, report)
