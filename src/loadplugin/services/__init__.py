"""Plugin logic layer.

- config_store.py (threshold document parsing + typed lookups)
- load_sampler.py (psutil-backed OS load sampling)
- deriver.py (raw load -> normalized USE snapshot)
- alert_evaluator.py (ordered threshold rules -> verdict)
- metrics_sink.py (prometheus gauge families)
- tick_loop.py (host measure/alert cadence)
"""

# Import side-effects are intentionally avoided here; modules are imported by the plugin/host as needed.
