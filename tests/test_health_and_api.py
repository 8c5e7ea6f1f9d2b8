from __future__ import annotations

import httpx
import pytest

from src.loadplugin.plugin import LoadPlugin


@pytest.mark.anyio
async def test_root_health_ok(async_client: httpx.AsyncClient):
    res = await async_client.get("/")
    assert res.status_code == 200
    body = res.json()
    # HealthResponse: {status, message, timestamp}
    assert body.get("status") == "ok"
    assert "timestamp" in body


@pytest.mark.anyio
async def test_plugin_diagnostics(async_client: httpx.AsyncClient):
    res = await async_client.get("/api/health/plugin")
    assert res.status_code == 200
    body = res.json()

    assert body["initialized"] is True
    assert body["core_count"] == 4
    assert body["config_source"] == "default"
    assert body["config_loaded"] is True
    assert body["config_error"] is None
    assert body["metric_families"] == ["sreagent_load_metrics", "sreagent_load_average"]
    assert body["metrics_path"] == "/metrics"
    assert "timestamp" in body


@pytest.mark.anyio
async def test_latest_measurement_404_before_first_measure(async_client: httpx.AsyncClient):
    res = await async_client.get("/api/measurements/latest")
    assert res.status_code == 404
    assert res.json()["detail"] == "no measurement taken yet"


@pytest.mark.anyio
async def test_latest_measurement_after_tick(async_client: httpx.AsyncClient, plugin: LoadPlugin):
    measure, _, _ = plugin.measure()
    res = await async_client.get("/api/measurements/latest")
    assert res.status_code == 200
    body = res.json()
    assert body["snapshot"]["load1m"] == 50.0
    assert body["verdict"] is None
    assert body["timestamp"] == 1700000000.5

    plugin.alert(measure)
    body = (await async_client.get("/api/measurements/latest")).json()
    assert body["verdict"] == {"message": "", "level": "none", "flag": False, "cause": None}


@pytest.mark.anyio
async def test_thresholds_endpoint(async_client: httpx.AsyncClient):
    res = await async_client.get("/api/thresholds")
    assert res.status_code == 200
    body = res.json()
    assert body["config"] == {"alert": {"load": {"low": 2.0, "design": 60.0, "engineered": 80.0}}}
    assert body["loaded"] is True
    assert body["source"] == "default"


@pytest.mark.anyio
async def test_metrics_endpoint_serves_exposition(async_client: httpx.AsyncClient, plugin: LoadPlugin):
    plugin.measure()
    res = await async_client.get("/metrics")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/plain")
    assert 'sreagent_load_metrics{use="load1m"} 50.0' in res.text
