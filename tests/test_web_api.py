"""Tests for the HTTP API."""

from pathlib import Path

import pytest

from print_settings.config import Config
from print_settings.defaults import INFILL_PATTERNS
from print_settings.web_api import _build_options_response, create_web_app


def _make_config(**kwargs) -> Config:
    defaults = {
        "archive_dir": Path("."),
        "cura_bin": Path("."),
        "def_dir": Path("."),
        "printer_def": "",
    }
    defaults.update(kwargs)
    return Config(**defaults)


@pytest.fixture
def app():
    return create_web_app(_make_config())


class TestBuildOptionsResponse:
    def test_structure(self):
        resp = _build_options_response(_make_config())
        assert set(resp) == {"layer_heights", "infill_patterns", "materials", "defaults"}

    def test_layer_heights(self):
        resp = _build_options_response(_make_config())
        normal = [o for o in resp["layer_heights"] if o["value"] == 0.15]
        assert normal == [{"value": 0.15, "label": "Normal (0.15mm)"}]

    def test_infill_patterns(self):
        resp = _build_options_response(_make_config())
        assert resp["infill_patterns"] == list(INFILL_PATTERNS)

    def test_materials(self):
        resp = _build_options_response(_make_config())
        by_name = {m["value"]: m for m in resp["materials"]}
        assert by_name["abs"] == {"value": "abs", "label": "ABS", "color": "yellow", "density": 1.05}
        assert set(by_name) == {"pla", "pla+", "abs"}

    def test_defaults(self):
        resp = _build_options_response(_make_config())
        assert resp["defaults"]["layerHeight"] == 0.15
        assert resp["defaults"]["materialType"] == "pla"


class TestHealthAndOptions:
    @pytest.mark.asyncio
    async def test_health(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.get("/api/health")
        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "ok"

    @pytest.mark.asyncio
    async def test_options(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.get("/api/options")
        assert resp.status == 200
        data = await resp.json()
        assert "materials" in data

    @pytest.mark.asyncio
    async def test_cors_headers(self, aiohttp_client):
        app = create_web_app(_make_config(cors_origin="https://example.com"))
        client = await aiohttp_client(app)
        resp = await client.get("/api/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "https://example.com"

    @pytest.mark.asyncio
    async def test_preflight(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.options("/api/overrides")
        assert resp.status == 200
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]


class TestOverridesEndpoint:
    @pytest.mark.asyncio
    async def test_compiles_overrides(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/overrides", json={
            "layerHeight": 0.15, "supportEnable": True, "materialType": "abs",
        })
        assert resp.status == 200
        data = await resp.json()
        keys = [o["key"] for o in data["overrides"]]
        assert keys[0] == "speed_print"
        assert "support_angle" in keys
        assert data["overrides"][0] == {"scope": None, "key": "speed_print", "value": 80}
        assert data["resolved"]["layer_height"] == 0.15
        assert data["resolved"]["initial_layer_height"] == 0.2
        assert data["resolved"]["material_print_temperature"] == 250
        assert data["summary"].startswith("Quality: Normal (0.15mm) / Infill: 20%")
        assert data["errors"] == {}

    @pytest.mark.asyncio
    async def test_empty_body_still_has_infill(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/overrides", json={})
        data = await resp.json()
        assert data["resolved"]["infill_sparse_density"] == 20
        assert not [k for k in data["resolved"] if k.startswith("support_")]

    @pytest.mark.asyncio
    async def test_field_errors_reported(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/overrides", json={"infillDensity": 150, "infillPattern": "grid"})
        assert resp.status == 200
        data = await resp.json()
        assert "infillDensity" in data["errors"]
        assert data["resolved"]["infill_sparse_density"] == 20
        assert data["resolved"]["infill_pattern"] == "grid"

    @pytest.mark.asyncio
    async def test_invalid_json(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post(
            "/api/overrides", data="not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status == 400
        data = await resp.json()
        assert data["error"] == "invalid JSON body"

    @pytest.mark.asyncio
    async def test_non_object_body(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/overrides", json=[1, 2])
        assert resp.status == 400


class TestReportEndpoint:
    @pytest.mark.asyncio
    async def test_normalizes_metadata(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/report", json={
            "settings": {"materialType": "abs", "materialColor": "yellow", "infillDensity": 25},
            "metadata": {"print_time": 3725, "filament_used": 2000, "layer_count": 80},
        })
        assert resp.status == 200
        data = await resp.json()
        report = data["report"]
        assert report["estimated_time_seconds"] == 3725
        assert report["filament_used_grams"] == pytest.approx(2.10)
        assert report["layer_count"] == 80
        assert report["volume"] == "unknown"
        assert report["material_type"] == "ABS"
        assert report["infill_density"] == 25
        assert data["formatted_time"] == "1h 2m"

    @pytest.mark.asyncio
    async def test_null_metadata(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/report", json={"settings": {}, "metadata": None})
        data = await resp.json()
        assert data["report"]["estimated_time_seconds"] == "unknown"
        assert data["formatted_time"] == "unknown"

    @pytest.mark.asyncio
    async def test_settings_must_be_object(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post("/api/report", json={"settings": "abs"})
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_invalid_json(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post(
            "/api/report", data="{",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_oversized_metadata_value(self, app, aiohttp_client):
        client = await aiohttp_client(app)
        resp = await client.post(
            "/api/report",
            data='{"settings": {}, "metadata": {"printTime": 1' + "0" * 400 + ', "print_time": 60}}',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status == 200
        data = await resp.json()
        assert data["report"]["estimated_time_seconds"] == 60
        assert data["formatted_time"] == "1m 0s"
