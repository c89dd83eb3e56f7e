"""
Hash Cache Instrumentation

Wraps every cache operation in an OpenTelemetry span and notifies
in-process subscribers once the operation finishes.

Event names and payload fields:
- write_hash_value {prefix, key}
- read_hash_value {prefix, key, hit}
- read_hash {prefix, key, hit, super_operation} (fetch)
- read_hash {prefix} (group read)
- fetch_hit {prefix, key}
- generate {prefix, key}
- delete_hash_value {prefix, key}
- delete_hash {prefix}
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)

SPAN_PREFIX = "cache"


@dataclass(frozen=True)
class InstrumentationEvent:
    """One finished cache operation as seen by subscribers."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0


Subscriber = Callable[[InstrumentationEvent], None]


class Instrumenter:
    """Span creation and subscriber fan-out for cache events."""

    def __init__(self, tracer: Optional[trace.Tracer] = None):
        self.tracer = tracer or trace.get_tracer(__name__)
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Subscriber:
        """Register a callback for every finished event. Returns the callback."""
        self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @contextmanager
    def instrument(
        self, name: str, prefix: str, key: Optional[str] = None, **extra: Any
    ) -> Iterator[Dict[str, Any]]:
        """
        Instrument one operation.

        Yields the payload dict; the block may add ``hit`` and
        ``super_operation`` to it. Group operations pass no key and their
        payload carries no ``key`` field.
        """
        payload: Dict[str, Any] = {"prefix": prefix}
        if key is not None:
            payload["key"] = key
        payload.update(extra)

        start_time = time.perf_counter()
        with self.tracer.start_as_current_span(f"{SPAN_PREFIX}.{name}") as span:
            try:
                yield payload
            except Exception as e:
                payload["exception"] = type(e).__name__
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise
            finally:
                for attribute, value in payload.items():
                    if isinstance(value, (str, bool, int, float)):
                        span.set_attribute(f"{SPAN_PREFIX}.{attribute}", value)
                self._publish(
                    InstrumentationEvent(
                        name=name,
                        payload=dict(payload),
                        duration_ms=(time.perf_counter() - start_time) * 1000,
                    )
                )

    def _publish(self, event: InstrumentationEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    f"Cache instrumentation subscriber failed for {event.name}"
                )
