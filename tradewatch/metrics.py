"""Prometheus metrics for the sync pipeline and alert engine."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# ---------- Counters ----------

trades_synced_total = Counter(
    "trades_synced_total",
    "Trade records written by the sync pipeline",
    ["source", "action"],
)

sync_record_errors_total = Counter(
    "sync_record_errors_total",
    "Records that failed processing during a sync run",
    ["source"],
)

sync_runs_total = Counter(
    "sync_runs_total",
    "Sync runs by final status",
    ["source", "status"],
)

alerts_triggered_total = Counter(
    "alerts_triggered_total",
    "Alert notifications recorded",
    ["alert_type"],
)

alert_evaluation_errors_total = Counter(
    "alert_evaluation_errors_total",
    "Alerts whose evaluation or trigger raised an error",
)

# ---------- Histograms ----------

sync_duration_seconds = Histogram(
    "sync_duration_seconds",
    "Wall-clock duration of a sync run",
    ["source"],
    buckets=(1, 5, 15, 30, 60, 120, 300, 600, 1800),
)
