import json
import logging
import time
from collections import Counter
from contextvars import ContextVar
from dataclasses import dataclass, field
from threading import Lock

LOGGER_NAME = "marketplace.orders"
CONTEXT_FIELDS = ("request_id", "order_id", "tx_ref")

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, carrying the order context of the record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            payload[name] = getattr(record, name, None)
        if payload["request_id"] is None:
            payload["request_id"] = _request_id.get()
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)


@dataclass
class _Timing:
    count: int = 0
    total_s: float = 0.0
    max_s: float = 0.0

    def add(self, value_s: float) -> None:
        self.count += 1
        self.total_s += value_s
        self.max_s = max(self.max_s, value_s)


@dataclass
class MetricsSnapshot:
    counters: dict[str, int] = field(default_factory=dict)
    timings: dict[str, dict[str, float]] = field(default_factory=dict)


class MetricsStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: Counter[str] = Counter()
        self._timings: dict[str, _Timing] = {}

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] += amount

    def observe(self, name: str, value_s: float) -> None:
        with self._lock:
            self._timings.setdefault(name, _Timing()).add(value_s)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                counters=dict(self._counters),
                timings={
                    name: {
                        "count": timing.count,
                        "avg_s": timing.total_s / timing.count,
                        "max_s": timing.max_s,
                    }
                    for name, timing in self._timings.items()
                },
            )


metrics_store = MetricsStore()


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str | None:
    return _request_id.get()


def log_event(
    message: str,
    *,
    order_id: str | None = None,
    tx_ref: str | None = None,
    level: int = logging.INFO,
    exc_info: bool = False,
) -> None:
    logging.getLogger(LOGGER_NAME).log(
        level,
        message,
        exc_info=exc_info,
        extra={"request_id": get_request_id(), "order_id": order_id, "tx_ref": tx_ref},
    )


class observe_timing:
    """Record the duration of the ``with`` block under ``metric_name``."""

    def __init__(self, metric_name: str) -> None:
        self.metric_name = metric_name
        self._started = 0.0

    def __enter__(self) -> "observe_timing":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        metrics_store.observe(self.metric_name, time.perf_counter() - self._started)
