from collections import deque
from datetime import datetime, timezone
from threading import Lock
from time import perf_counter
from typing import Any, Callable, Deque, Dict


class InMemoryObservability:
    """Process-local counters, latency timers and a ring of recent cache events."""

    def __init__(self, max_events: int = 200):
        self._lock = Lock()
        self._counters: Dict[str, int] = {}
        self._timers: Dict[str, Dict[str, float]] = {}
        self._events: Deque[Dict[str, Any]] = deque(maxlen=max_events)

    def incr(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + int(value)

    def observe_ms(self, name: str, value_ms: float) -> None:
        val = float(value_ms)
        with self._lock:
            stat = self._timers.setdefault(name, {"count": 0, "sum_ms": 0.0, "min_ms": val, "max_ms": val})
            stat["count"] += 1
            stat["sum_ms"] += val
            stat["min_ms"] = min(stat["min_ms"], val)
            stat["max_ms"] = max(stat["max_ms"], val)

    def record_event(self, kind: str, **fields: Any) -> None:
        event = {"kind": kind, "ts": datetime.now(timezone.utc).isoformat(), **fields}
        with self._lock:
            self._events.append(event)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            timers = {
                name: {
                    "count": int(stat["count"]),
                    "avg_ms": stat["sum_ms"] / stat["count"] if stat["count"] else 0.0,
                    "min_ms": stat["min_ms"],
                    "max_ms": stat["max_ms"],
                }
                for name, stat in self._timers.items()
            }
            return {
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "counters": dict(self._counters),
                "timers": timers,
                "recent_events": list(self._events),
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timers.clear()
            self._events.clear()


observability = InMemoryObservability()


def timed_loader(name: str, fn: Callable[[], Any]) -> Callable[[], Any]:
    """Wrap a cache loader so each miss is counted and timed under ``name``."""
    def run() -> Any:
        observability.incr(f"{name}_load_total")
        started = perf_counter()
        try:
            return fn()
        except Exception:
            observability.incr(f"{name}_load_error_total")
            raise
        finally:
            observability.observe_ms(f"{name}_load_ms", (perf_counter() - started) * 1000.0)
    return run
