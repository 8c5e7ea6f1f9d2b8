from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from src.loadplugin.plugin import MeasurementPlugin

logger = logging.getLogger(__name__)


async def _run_in_thread(func, *args, **kwargs):
    """Run blocking plugin calls (OS sampling) in a worker thread."""
    return await asyncio.to_thread(func, *args, **kwargs)


def run_tick(plugin: MeasurementPlugin, iteration: int) -> None:
    """One tick: measure, then alert on what was measured, then log the record."""
    measure, measure_raw, timestamp = plugin.measure()
    alert_msg, alert_lvl, is_alert, cause = plugin.alert(measure)

    describe = getattr(getattr(plugin, "state", None), "describe", None)
    logger.info(
        "Tick iteration=%s timestamp=%.3f measure=%s measureraw=%s plugin_state=%s "
        "alertMsg=%r alertLvl=%s isAlert=%s cause=%s",
        iteration,
        timestamp,
        measure.decode("utf-8", errors="replace"),
        measure_raw.decode("utf-8", errors="replace"),
        describe() if callable(describe) else None,
        alert_msg,
        alert_lvl,
        is_alert,
        cause,
    )


# PUBLIC_INTERFACE
async def tick_loop(
    plugin: MeasurementPlugin,
    interval_sec: float,
    iterations: int,
    shutdown_event: asyncio.Event,
) -> int:
    """
    Host tick loop driving measure()/alert() at a fixed cadence.

    - iterations == 0 runs until shutdown_event is set
    - a failing tick is logged and the loop continues with the next one
    - the remaining interval is slept after each tick (no sleep after the last)

    Returns the number of ticks attempted.
    """
    interval = max(0.0, float(interval_sec))
    logger.info("Tick loop started (interval=%ss, iterations=%s)", interval, iterations or "unbounded")

    iteration = 0
    while not shutdown_event.is_set():
        iteration += 1
        tick_started = datetime.now(timezone.utc)
        try:
            await _run_in_thread(run_tick, plugin, iteration)
        except Exception:
            logger.exception("Tick %s failed", iteration)

        if iterations and iteration >= iterations:
            break

        elapsed = (datetime.now(timezone.utc) - tick_started).total_seconds()
        sleep_for = max(0.0, interval - elapsed)
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=sleep_for)
        except asyncio.TimeoutError:
            pass

    logger.info("Tick loop stopped after %s ticks", iteration)
    return iteration
