from __future__ import annotations

from collections import Counter
from typing import Any


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    served = [e for e in events if e["type"] == "recommendation"]
    total = len(served)

    times = [s["response_time_ms"] for s in served if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    lengths = [s.get("results_returned", 0) for s in served]
    avg_results = round(sum(lengths) / total, 2) if total else 0.0
    empty = sum(1 for n in lengths if n == 0)
    cold_starts = sum(1 for s in served if s.get("cold_start"))

    category_counter: Counter[str] = Counter()
    reason_counter: Counter[str] = Counter()
    version_counter: Counter[str] = Counter()
    for s in served:
        category_counter.update(s.get("categories", []) or [])
        reason_counter.update(s.get("reason_tags", []) or [])
        if s.get("algorithm_version"):
            version_counter[s["algorithm_version"]] += 1

    return {
        "total_requests": total,
        "avg_response_time_ms": avg_time,
        "avg_results": avg_results,
        "empty_result_rate": _rate(empty, total),
        "cold_start_rate": _rate(cold_starts, total),
        "top_categories": [{"name": n, "count": c} for n, c in category_counter.most_common(10)],
        "reason_usage": dict(sorted(reason_counter.items())),
        "algorithm_versions": dict(version_counter),
    }
