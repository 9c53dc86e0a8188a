# performance_monitor.py
from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any


logger = logging.getLogger(__name__)


TARGETS = {
    "initial_analysis_ms": 10_000,
    "ai_analysis_ms": 30_000,
    "storage_query_ms": 500,
    "occupation_cache_hit_rate": 0.85,
    "error_rate": 0.01,
}
ERROR_RATE_WINDOW = 100
CACHE_WARMUP_REQUESTS = 50


@dataclass(frozen=True)
class Metric:
    operation: str
    duration_ms: float
    success: bool
    timed_out: bool = False
    cached: bool = False
    error: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class _HitCounter:
    hits: int = 0
    misses: int = 0

    def snapshot(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {"hits": self.hits, "misses": self.misses, "hit_rate": self.hits / total if total else 0.0}


class PerformanceMonitor:
    """Process-wide ring buffer of operation timings plus cache and affiliate counters."""

    def __init__(self, buffer_size: int = 1000) -> None:
        self._metrics: deque[Metric] = deque(maxlen=buffer_size)
        self._caches = {"occupation": _HitCounter(), "ai": _HitCounter()}
        self._affiliate = {"views": 0, "clicks": 0}
        self._lock = threading.Lock()

    def record(
        self,
        operation: str,
        duration_ms: float,
        *,
        success: bool = True,
        timed_out: bool = False,
        cached: bool = False,
        error: str | None = None,
    ) -> Metric:
        metric = Metric(operation, duration_ms, success, timed_out, cached, error)
        with self._lock:
            self._metrics.append(metric)
            recent = list(self._metrics)[-ERROR_RATE_WINDOW:]
        logger.info(
            "operation=%s duration_ms=%.1f success=%s cached=%s%s",
            operation,
            duration_ms,
            success,
            cached,
            f" error={error}" if error else "",
        )
        self._check_targets(metric, recent)
        return metric

    def record_cache_access(self, cache: str, *, hit: bool) -> None:
        with self._lock:
            counter = self._caches.setdefault(cache, _HitCounter())
            if hit:
                counter.hits += 1
            else:
                counter.misses += 1
            snapshot = counter.snapshot()
        total = snapshot["hits"] + snapshot["misses"]
        if cache == "occupation" and total > CACHE_WARMUP_REQUESTS and snapshot["hit_rate"] < TARGETS["occupation_cache_hit_rate"]:
            logger.warning(
                "Occupation cache hit rate %.1f%% is below target %.0f%%",
                snapshot["hit_rate"] * 100,
                TARGETS["occupation_cache_hit_rate"] * 100,
            )

    def record_affiliate(self, event: str) -> None:
        key = "views" if event == "view" else "clicks"
        with self._lock:
            self._affiliate[key] += 1

    def cache_metrics(self, cache: str) -> dict[str, Any]:
        with self._lock:
            return self._caches.setdefault(cache, _HitCounter()).snapshot()

    def affiliate_ctr(self) -> float:
        with self._lock:
            views = self._affiliate["views"]
            return self._affiliate["clicks"] / views if views else 0.0

    def operation_metrics(self, operation: str) -> dict[str, Any]:
        with self._lock:
            relevant = [metric for metric in self._metrics if metric.operation == operation]
        if not relevant:
            return {"count": 0, "avg_ms": 0.0, "p95_ms": 0.0, "timeouts": 0, "errors": 0, "error_rate": 0.0}
        durations = sorted(metric.duration_ms for metric in relevant)
        p95_index = min(math.floor(len(durations) * 0.95), len(durations) - 1)
        errors = sum(1 for metric in relevant if not metric.success)
        return {
            "count": len(relevant),
            "avg_ms": sum(durations) / len(durations),
            "p95_ms": durations[p95_index],
            "timeouts": sum(1 for metric in relevant if metric.timed_out),
            "errors": errors,
            "error_rate": errors / len(relevant),
        }

    def summary(self) -> dict[str, Any]:
        return {
            "occupation_cache": self.cache_metrics("occupation"),
            "ai_cache": self.cache_metrics("ai"),
            "affiliate_ctr": self.affiliate_ctr(),
            "initial_analysis": self.operation_metrics("initial_analysis"),
            "ai_analysis": self.operation_metrics("ai_transferable_skills"),
            "storage_query": self.operation_metrics("storage_query"),
            "targets": dict(TARGETS),
        }

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()
            self._caches = {"occupation": _HitCounter(), "ai": _HitCounter()}
            self._affiliate = {"views": 0, "clicks": 0}

    def _check_targets(self, metric: Metric, recent: list[Metric]) -> None:
        if metric.operation == "initial_analysis" and metric.duration_ms > TARGETS["initial_analysis_ms"]:
            logger.warning("Initial analysis took %.0fms, target is %sms", metric.duration_ms, TARGETS["initial_analysis_ms"])
        if metric.operation.startswith("ai_") and metric.duration_ms > TARGETS["ai_analysis_ms"]:
            logger.warning("AI call %s took %.0fms, target is %sms", metric.operation, metric.duration_ms, TARGETS["ai_analysis_ms"])
        if metric.operation == "storage_query" and metric.duration_ms > TARGETS["storage_query_ms"]:
            logger.warning("Storage query took %.0fms, target is %sms", metric.duration_ms, TARGETS["storage_query_ms"])
        if len(recent) >= ERROR_RATE_WINDOW:
            error_rate = sum(1 for item in recent if not item.success) / len(recent)
            if error_rate > TARGETS["error_rate"]:
                logger.error("Error rate %.2f%% over the last %s operations exceeds target", error_rate * 100, len(recent))
