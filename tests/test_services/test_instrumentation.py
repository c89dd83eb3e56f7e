"""
Tests for cache instrumentation events and spans.
"""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from hash_cache.core.instrumentation import Instrumenter
from hash_cache.services.cache.hash_store import RedisHashStore


def by_name(events, name):
    return [event for event in events if event.name == name]


class TestStoreEvents:
    @pytest.mark.asyncio
    async def test_write_event(self, store, events):
        await store.write_hash_value("p", "k", "v")

        (event,) = by_name(events, "write_hash_value")
        assert event.payload == {"prefix": "p", "key": "k"}
        assert event.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_read_value_events_record_hit(self, store, events):
        await store.read_hash_value("p", "k")
        await store.write_hash_value("p", "k", "v")
        await store.read_hash_value("p", "k")

        hits = [event.payload["hit"] for event in by_name(events, "read_hash_value")]
        assert hits == [False, True]

    @pytest.mark.asyncio
    async def test_fetch_miss_events(self, store, events):
        await store.fetch_hash_value("p", "k", lambda: "v")

        names = [event.name for event in events]
        assert names == ["read_hash", "generate", "write_hash_value"]
        assert events[0].payload == {
            "prefix": "p",
            "key": "k",
            "hit": False,
            "super_operation": "fetch_hash_value",
        }
        assert events[1].payload == {"prefix": "p", "key": "k"}

    @pytest.mark.asyncio
    async def test_fetch_hit_events(self, store, events):
        await store.write_hash_value("p", "k", "v")
        events.clear()

        await store.fetch_hash_value("p", "k", lambda: "unused")

        assert [event.name for event in events] == ["read_hash", "fetch_hit"]
        assert events[0].payload["hit"] is True

    @pytest.mark.asyncio
    async def test_group_events_have_no_key(self, store, events):
        await store.read_hash("p")
        await store.delete_hash("p")

        assert by_name(events, "read_hash")[0].payload == {"prefix": "p"}
        assert by_name(events, "delete_hash")[0].payload == {"prefix": "p"}

    @pytest.mark.asyncio
    async def test_delete_value_event(self, store, events):
        await store.delete_hash_value("p", "k")

        assert by_name(events, "delete_hash_value")[0].payload == {"prefix": "p", "key": "k"}

    @pytest.mark.asyncio
    async def test_events_use_normalized_prefix(self, repository, instrumenter, events):
        from hash_cache.domain.cache.value_objects import CacheOptions

        store = RedisHashStore(repository, CacheOptions(namespace="app"), instrumenter)

        await store.write_hash_value("p", "k", "v")

        assert events[0].payload["prefix"] == "app:p"

    @pytest.mark.asyncio
    async def test_failing_block_is_still_reported(self, store, events):
        def broken():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.fetch_hash_value("p", "k", broken)

        assert by_name(events, "generate")[0].payload["exception"] == "RuntimeError"


class TestInstrumenter:
    def test_subscriber_errors_are_contained(self):
        instrumenter = Instrumenter()
        received = []

        def broken(event):
            raise RuntimeError("subscriber bug")

        instrumenter.subscribe(broken)
        instrumenter.subscribe(received.append)

        with instrumenter.instrument("read_hash", "p"):
            pass

        assert len(received) == 1

    def test_unsubscribe(self):
        instrumenter = Instrumenter()
        received = []
        instrumenter.subscribe(received.append)
        instrumenter.unsubscribe(received.append)

        with instrumenter.instrument("read_hash", "p"):
            pass

        assert received == []

    def test_spans_carry_payload(self):
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        instrumenter = Instrumenter(tracer=provider.get_tracer(__name__))

        with instrumenter.instrument("read_hash_value", "p", "k") as payload:
            payload["hit"] = True

        (span,) = exporter.get_finished_spans()
        assert span.name == "cache.read_hash_value"
        assert span.attributes["cache.prefix"] == "p"
        assert span.attributes["cache.key"] == "k"
        assert span.attributes["cache.hit"] is True
