from __future__ import annotations

from collections.abc import AsyncIterator
from typing import List, Optional, Union

import httpx
import pytest

from src.loadplugin.config import DEFAULT_THRESHOLDS, PluginSettings
from src.loadplugin.errors import SamplingError
from src.loadplugin.plugin import LoadPlugin
from src.loadplugin.schemas.metrics import LoadStats, RawLoadSample
from src.loadplugin.services.config_store import ConfigStore
from src.loadplugin.services.metrics_sink import MetricsSink


class FakeSampler:
    """
    Scripted LoadSampler.

    Each sample() call pops the next scripted item; an exception item is raised
    instead of returned. The last item repeats once the script is exhausted.
    """

    def __init__(self, script: List[Union[RawLoadSample, Exception]], cores: int = 4):
        self.script = list(script)
        self.cores = cores
        self.sample_calls = 0
        self.core_count_calls = 0

    def sample(self) -> RawLoadSample:
        self.sample_calls += 1
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item

    def core_count(self) -> int:
        self.core_count_calls += 1
        return self.cores


def raw(load1: float, load5: Optional[float] = None, load15: Optional[float] = None) -> RawLoadSample:
    """Raw sample helper; 5/15-minute windows default to the 1-minute value."""
    return RawLoadSample(
        load1=load1,
        load5=load1 if load5 is None else load5,
        load15=load1 if load15 is None else load15,
        stats=LoadStats(procs_total=123, procs_running=3, procs_blocked=1, ctx_switches=4567),
    )


@pytest.fixture
def thresholds_text() -> str:
    """Reference threshold document: load.low=2, load.design=60, load.engineered=80."""
    return DEFAULT_THRESHOLDS


@pytest.fixture
def config_store(thresholds_text: str) -> ConfigStore:
    store = ConfigStore()
    store.load(thresholds_text)
    return store


@pytest.fixture
def fake_sampler() -> FakeSampler:
    """4 cores, load1=2.0 -> 50% of capacity."""
    return FakeSampler([raw(2.0, 1.0, 0.4)], cores=4)


@pytest.fixture
def sink() -> MetricsSink:
    """Sink with its own registry so tests never share gauge state."""
    return MetricsSink()


@pytest.fixture
def plugin(fake_sampler: FakeSampler, sink: MetricsSink, thresholds_text: str) -> LoadPlugin:
    """Initialized plugin with a fixed clock."""
    p = LoadPlugin(sampler=fake_sampler, sink=sink, clock=lambda: 1700000000.5)
    p.init(thresholds_text)
    return p


@pytest.fixture
def settings(thresholds_text: str) -> PluginSettings:
    """Host settings with the tick loop disabled so tests drive measure/alert explicitly."""
    return PluginSettings(
        tick_interval_sec=1,
        tick_iterations=1,
        tick_loop_enabled=False,
        metrics_host="127.0.0.1",
        metrics_port=8999,
        metrics_path="/metrics",
        config_text=thresholds_text,
        config_source="default",
        config_path=None,
    )


@pytest.fixture
def app(settings: PluginSettings, plugin: LoadPlugin):
    """FastAPI host app wired to the fake-sampler plugin."""
    from src.loadplugin.main import create_app

    return create_app(settings, plugin)


@pytest.fixture
async def async_client(app) -> AsyncIterator[httpx.AsyncClient]:
    """
    Async HTTP client bound to the FastAPI ASGI app.

    httpx ASGITransport does not run startup hooks, so the plugin fixture is
    initialized up front and no tick loop runs during API tests.
    """
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sampling_failure() -> SamplingError:
    return SamplingError("load average unavailable: boom")


@pytest.fixture
def anyio_backend():
    # The plugin is built on asyncio (asyncio.Event / wait_for / to_thread).
    return "asyncio"
