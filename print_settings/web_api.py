"""HTTP API for the settings compiler and the report normalizer.

Lets a frontend turn its form values into engine overrides and turn the
engine's raw metadata into a display report. Uses aiohttp.
"""

import json
import time

from aiohttp import web

from .config import Config
from .defaults import INFILL_PATTERNS, LAYER_HEIGHT_OPTIONS, USER_DEFAULTS
from .overrides import build_overrides, resolve_overrides
from .report import format_duration, format_settings_summary, normalize_metadata
from .user_settings import parse_user_settings


def _build_options_response(config: Config) -> dict:
    """Build the selectable options: layer heights, infill patterns, materials, defaults."""
    return {
        "layer_heights": [
            {"value": value, "label": label} for value, label in LAYER_HEIGHT_OPTIONS.items()
        ],
        "infill_patterns": list(INFILL_PATTERNS),
        "materials": [
            {
                "value": name,
                "label": preset.label,
                "color": preset.color,
                "density": preset.density,
            }
            for name, preset in config.materials.list_presets().items()
        ],
        "defaults": USER_DEFAULTS,
    }


async def _read_json_object(request: web.Request) -> tuple[dict | None, str]:
    """Parse the request body as a JSON object, returning (body, error)."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, ValueError):
        return None, "invalid JSON body"
    if not isinstance(body, dict):
        return None, "JSON body must be an object"
    return body, ""


async def handle_health(request: web.Request) -> web.Response:
    """GET /api/health — simple health check."""
    return web.json_response({"status": "ok", "time": int(time.time())})


async def handle_options(request: web.Request) -> web.Response:
    """GET /api/options — selectable values for the settings form."""
    return web.Response(text=request.app["options_json"], content_type="application/json")


async def handle_overrides(request: web.Request) -> web.Response:
    """POST /api/overrides — compile user settings into engine overrides.

    Body: {"layerHeight": 0.2, "infillDensity": 20, ...}
    """
    config: Config = request.app["config"]
    body, error = await _read_json_object(request)
    if body is None:
        return web.json_response({"error": error}, status=400)

    settings, errors = parse_user_settings(body)
    overrides = build_overrides(settings, config.materials)
    return web.json_response({
        "overrides": [o.to_dict() for o in overrides],
        "resolved": resolve_overrides(overrides),
        "summary": format_settings_summary(settings),
        "errors": errors,
    })


async def handle_report(request: web.Request) -> web.Response:
    """POST /api/report — normalize raw engine metadata into a print report.

    Body: {"settings": {...}, "metadata": {...} | null}
    """
    config: Config = request.app["config"]
    body, error = await _read_json_object(request)
    if body is None:
        return web.json_response({"error": error}, status=400)

    raw_settings = body.get("settings") or {}
    if not isinstance(raw_settings, dict):
        return web.json_response({"error": "settings must be an object"}, status=400)

    settings, errors = parse_user_settings(raw_settings)
    report = normalize_metadata(body.get("metadata"), settings, config.materials)
    return web.json_response({
        "report": report.to_dict(),
        "formatted_time": format_duration(report.estimated_time_seconds),
        "errors": errors,
    })


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.Response:
    """Add CORS headers for the frontend."""
    if request.method == "OPTIONS":
        response = web.Response()
    else:
        response = await handler(request)

    allowed_origin = request.app.get("cors_origin", "*")
    response.headers["Access-Control-Allow-Origin"] = allowed_origin
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@web.middleware
async def logging_middleware(request: web.Request, handler) -> web.Response:
    """Log all incoming requests."""
    start = time.time()
    try:
        response = await handler(request)
        elapsed = (time.time() - start) * 1000
        print(f"[API] {request.method} {request.path} → {response.status} ({elapsed:.0f}ms)")
        return response
    except Exception as e:
        elapsed = (time.time() - start) * 1000
        print(f"[API] {request.method} {request.path} → ERROR: {e} ({elapsed:.0f}ms)")
        raise


def create_web_app(config: Config) -> web.Application:
    """Create and configure the aiohttp web application."""
    app = web.Application(middlewares=[logging_middleware, cors_middleware])
    app["config"] = config
    app["cors_origin"] = config.cors_origin
    # Static for the lifetime of the app
    app["options_json"] = json.dumps(_build_options_response(config))

    app.router.add_get("/api/health", handle_health)
    app.router.add_get("/api/options", handle_options)
    app.router.add_post("/api/overrides", handle_overrides)
    app.router.add_post("/api/report", handle_report)

    return app
