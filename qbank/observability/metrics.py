import json
import os
import threading
from typing import List, Optional

from qbank.config import STORAGE_DIR


_METRICS_PATH = os.path.join(STORAGE_DIR, "metrics.json")

_lock = threading.Lock()


def _empty_metrics() -> dict:

    return {

        "total_requests": 0,
        "successful_requests": 0,
        "failed_requests": 0,

        "total_latency": 0.0,
        "avg_latency": 0.0,
        "latencies": [],

        # Ingestion counters, summed over every batch
        "ingestion_batches": 0,
        "candidates_processed": 0,
        "new_questions": 0,
        "recurrences": 0,
        "failed_candidates": 0,

    }


class MetricsTracker:

    def __init__(self, path: Optional[str] = _METRICS_PATH):

        self._path = path

        self._metrics = _empty_metrics()

        if path:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            self._load()


    def _load(self):

        if os.path.exists(self._path):

            try:

                with open(self._path, "r") as f:
                    data = json.load(f)

                # Files written before a counter existed lack its key
                merged = _empty_metrics()
                merged.update(data)

                self._metrics = merged

            except Exception:
                pass


    def _save(self):

        if not self._path:
            return

        with open(self._path, "w") as f:
            json.dump(self._metrics, f, indent=2)


    def record_success(self, latency: float):

        with _lock:

            self._metrics["total_requests"] += 1
            self._metrics["successful_requests"] += 1
            self._metrics["total_latency"] += latency

            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["total_requests"]
            )

            self._metrics["latencies"].append(latency)

            self._save()


    def record_failure(self):

        with _lock:

            self._metrics["total_requests"] += 1
            self._metrics["failed_requests"] += 1

            self._save()


    def record_ingestion(self, processed: int, new: int, recurrences: int, failed: int):

        with _lock:

            self._metrics["ingestion_batches"] += 1
            self._metrics["candidates_processed"] += processed
            self._metrics["new_questions"] += new
            self._metrics["recurrences"] += recurrences
            self._metrics["failed_candidates"] += failed

            self._save()


    def get_metrics(self):

        with _lock:
            return dict(self._metrics)


    def get_latency_percentile(self, percentile: float) -> float:

        latencies: List[float] = self._metrics.get("latencies", [])

        if not latencies:
            return 0.0

        sorted_latencies = sorted(latencies)

        index = int(len(sorted_latencies) * percentile / 100)

        index = min(index, len(sorted_latencies) - 1)

        return sorted_latencies[index]


metrics_tracker = MetricsTracker()
