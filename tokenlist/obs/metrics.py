from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from tokenlist.provider.client import ProviderMetrics

_LATENCY_BUCKETS_MS = (100, 250, 500, 1000, 2000, 5000, 10000)


def read_metrics(metrics_path: Path) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if metrics_path.exists():
        raw = metrics_path.read_text(encoding="utf-8").strip()
        if raw:
            payload = json.loads(raw)
    return payload


def _write_metrics(metrics_path: Path, payload: dict[str, Any]) -> None:
    metrics_path.parent.mkdir(parents=True, exist_ok=True)
    metrics_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def update_metrics(
    metrics_path: Path,
    *,
    increments: dict[str, int] | None = None,
    gauges: dict[str, Any] | None = None,
) -> None:
    payload = read_metrics(metrics_path)

    if increments:
        for key, value in increments.items():
            payload[key] = int(payload.get(key, 0)) + value

    if gauges:
        for key, value in gauges.items():
            payload[key] = value

    _write_metrics(metrics_path, payload)


def update_http_metrics(metrics_path: Path, metrics: ProviderMetrics) -> None:
    """Fold one run's HTTP counters into the cumulative metrics file."""
    payload = read_metrics(metrics_path)

    requests_by_status: dict[str, int] = dict(payload.get("requests_by_status") or {})
    errors_total = 0
    for (_endpoint, status), count in metrics.http_requests_total.items():
        requests_by_status[status] = requests_by_status.get(status, 0) + count
        if not (status.isdigit() and 200 <= int(status) < 300):
            errors_total += count

    latencies = [value for values in metrics.http_latency_ms.values() for value in values]
    buckets: dict[str, int] = {}
    for bound in _LATENCY_BUCKETS_MS:
        buckets[str(bound)] = sum(1 for value in latencies if value <= bound)
    buckets["+inf"] = len(latencies)

    payload.update(
        {
            "requests_total": int(payload.get("requests_total", 0)) + sum(metrics.http_requests_total.values()),
            "errors_total": int(payload.get("errors_total", 0)) + errors_total,
            "retries_total": int(payload.get("retries_total", 0)) + sum(metrics.http_retries_total.values()),
            "requests_by_status": requests_by_status,
            "last_run_latency_ms": {
                "count": len(latencies),
                "min": round(min(latencies), 2) if latencies else None,
                "max": round(max(latencies), 2) if latencies else None,
                "buckets": buckets,
            },
        }
    )

    _write_metrics(metrics_path, payload)
