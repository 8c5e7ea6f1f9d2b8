from __future__ import annotations

import dataclasses
import logging
import time

import pytest
from fastapi.testclient import TestClient

from conftest import FakeSampler, raw
from src.loadplugin import main
from src.loadplugin.config import PluginSettings
from src.loadplugin.plugin import LoadPlugin
from src.loadplugin.schemas.common import AlertLevel
from src.loadplugin.services.metrics_sink import MetricsSink
from src.loadplugin.state import get_state


def _wait_for_verdict(plugin: LoadPlugin, timeout: float = 5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        verdict = plugin.state.latest()["verdict"]
        if verdict is not None:
            return verdict
        time.sleep(0.02)
    return None


def test_startup_inits_plugin_and_runs_tick_loop(settings: PluginSettings):
    host_settings = dataclasses.replace(settings, tick_loop_enabled=True, tick_iterations=1)
    # 3.6 on 4 cores -> 90% of capacity, above engineered (80).
    plugin = LoadPlugin(sampler=FakeSampler([raw(3.6)], cores=4), sink=MetricsSink())
    app = main.create_app(host_settings, plugin)
    assert plugin.state.initialized is False

    with TestClient(app) as client:
        assert plugin.state.initialized is True
        verdict = _wait_for_verdict(plugin)
        assert verdict is not None
        assert verdict.level == AlertLevel.fatal
        assert str(verdict.cause) == "excessive load"

        res = client.get("/api/measurements/latest")
        assert res.status_code == 200

    tick_task = get_state(app).tick_task
    assert tick_task is not None
    assert tick_task.done()
    assert tick_task.result() == 1


def test_startup_without_tick_loop_only_inits(settings: PluginSettings):
    plugin = LoadPlugin(sampler=FakeSampler([raw(1.0)], cores=4), sink=MetricsSink())
    app = main.create_app(settings, plugin)

    with TestClient(app):
        assert plugin.state.initialized is True

    assert get_state(app).tick_task is None
    assert plugin.state.latest()["snapshot"] is None


def test_run_resolves_settings_after_logging_is_configured(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    for name in ("PLUGIN_CONFIG", "PLUGIN_CONFIG_FILE", "PLUGIN_METRICS_PATH", "PLUGIN_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PLUGIN_METRICS_HOST", "127.0.0.1")
    monkeypatch.setenv("PLUGIN_METRICS_PORT", "9123")

    served = {}

    def fake_uvicorn_run(app, host, port):
        served.update(app=app, host=host, port=port)

    monkeypatch.setattr(main.uvicorn, "run", fake_uvicorn_run)
    caplog.set_level(logging.INFO)

    main.run()

    assert served["host"] == "127.0.0.1"
    assert served["port"] == 9123
    assert get_state(served["app"]).settings.metrics_port == 9123
    assert any("Resolved plugin settings" in r.getMessage() for r in caplog.records)
