"""
Tests for the query cache service.
"""

import json
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager

import pytest
from structlog.testing import capture_logs

from query_cache.entities import MatchKind
from query_cache.exceptions import InvalidQueryError, StorageError, StorageWriteError
from query_cache.repositories import InMemoryDocumentStore, JsonFileDocumentStore
from query_cache.services import QueryCacheService

from .conftest import MAX_SIZE, START, TTL_SECONDS

PARKING_RESULTS = [{"content": "Free parking is available in our lot", "relevancy": 0.92}]
KIDS_RESULTS = [{"content": "Chicken nuggets, mac and cheese", "relevancy": 0.88}]


class FailingWriteStore(InMemoryDocumentStore):
    """Reads work, writes fail."""

    def __init__(self, raw=None):
        super().__init__(raw)
        self.fail_writes = True

    def save(self, document):
        if self.fail_writes:
            raise StorageWriteError("disk full")
        super().save(document)


class UnreachableStore(InMemoryDocumentStore):
    """The lock cannot be acquired, as with a Redis outage."""

    @contextmanager
    def lock(self):
        raise StorageError("connection refused")
        yield  # pragma: no cover

    def health_check(self):
        return False


class SlowStore(InMemoryDocumentStore):
    """Widens the gap between read and write so unguarded updates would collide."""

    def load(self):
        document = super().load()
        time.sleep(0.001)
        return document


def status_keys(cache):
    return [entry.key for entry in cache.status().entries]


class TestExactLookup:
    def test_store_then_lookup_is_exact_hit(self, cache):
        cache.store("parking availability", PARKING_RESULTS)

        result = cache.lookup("parking availability")

        assert result.hit is True
        assert result.kind is MatchKind.EXACT
        assert result.value == PARKING_RESULTS
        assert result.matched_key == "parking availability"
        assert result.similarity == 1.0

    def test_lookup_on_empty_cache_is_miss(self, cache):
        result = cache.lookup("parking availability")

        assert result.hit is False
        assert result.kind is None
        assert result.value is None

    def test_hit_updates_access_time_and_count(self, cache, clock):
        cache.store("kids menu", KIDS_RESULTS)
        clock.advance(60)
        cache.lookup("kids menu")
        cache.lookup("kids menu")

        entry = cache.status().entries[0]
        assert entry.hit_count == 2
        assert entry.last_accessed == clock.now
        assert entry.cached_at == START

    def test_last_accessed_never_moves_backwards(self, cache, clock):
        cache.store("kids menu", KIDS_RESULTS)
        clock.advance(-30)
        cache.lookup("kids menu")

        assert cache.status().entries[0].last_accessed == START

    def test_pure_miss_does_not_write(self, cache, store):
        cache.lookup("parking availability")

        assert store.raw is None


class TestFuzzyLookup:
    def test_normalization_makes_phrasings_match(self, cache):
        cache.store("parking availability", PARKING_RESULTS)

        result = cache.lookup("Is parking available?")

        assert result.hit is True
        assert result.kind is MatchKind.FUZZY
        assert result.value == PARKING_RESULTS
        assert result.matched_key == "parking availability"
        assert result.similarity == 1.0

    def test_kids_menu_above_threshold(self, cache):
        cache.store("kids menu", KIDS_RESULTS)

        result = cache.lookup("kid menu")

        assert result.kind is MatchKind.FUZZY
        assert result.similarity == pytest.approx(8 / 9)

    def test_unrelated_query_misses(self, cache):
        cache.store("parking availability", PARKING_RESULTS)

        assert cache.lookup("completely unrelated topic").hit is False

    def test_threshold_boundary_is_inclusive(self, store, clock):
        at_threshold = QueryCacheService(store=store, fuzzy_threshold=0.8, clock=clock)
        at_threshold.store("abcde", "v")
        assert at_threshold.lookup("abcdx").hit is True

        above_threshold = QueryCacheService(store=store, fuzzy_threshold=0.81, clock=clock)
        assert above_threshold.lookup("abcdx").hit is False

    def test_fuzzy_hit_counts_against_matched_entry(self, cache):
        cache.store("kids menu", KIDS_RESULTS)
        cache.lookup("kid menu")

        entry = cache.status().entries[0]
        assert entry.key == "kids menu"
        assert entry.hit_count == 1

    def test_exact_match_is_case_sensitive_but_fuzzy_is_not(self, cache):
        cache.store("Dress Code", ["smart casual"])

        result = cache.lookup("dress code")

        assert result.kind is MatchKind.FUZZY
        assert result.matched_key == "Dress Code"

    def test_ties_resolve_to_first_stored(self, cache):
        cache.store("kids menu", ["first"])
        cache.store("kid menus", ["second"])

        assert cache.lookup("kid menu").value == ["first"]


class TestExpiry:
    def test_hit_just_before_ttl(self, cache, clock):
        cache.store("kids menu", KIDS_RESULTS)
        clock.advance(TTL_SECONDS - 1)

        assert cache.lookup("kids menu").hit is True

    def test_miss_just_after_ttl(self, cache, clock):
        cache.store("kids menu", KIDS_RESULTS)
        clock.advance(TTL_SECONDS + 1)

        assert cache.lookup("kids menu").hit is False
        assert cache.lookup("kid menu").hit is False

    def test_expired_entry_is_reaped_on_lookup(self, cache, clock, store):
        cache.store("kids menu", KIDS_RESULTS)
        clock.advance(TTL_SECONDS + 1)
        cache.lookup("kids menu")

        assert json.loads(store.raw)["entries"] == {}

    def test_expired_entry_never_wins_fuzzy_scan(self, cache, clock):
        cache.store("kids menu", ["stale"])
        clock.advance(TTL_SECONDS - 10)
        cache.store("kids menu options", ["fresh"])
        clock.advance(20)

        result = cache.lookup("kid menu")

        assert result.hit is True
        assert result.value == ["fresh"]

    def test_expired_entries_do_not_count_toward_capacity(self, cache, clock):
        cache.store("opening hours", ["9-5"])
        clock.advance(TTL_SECONDS / 2)
        cache.store("wine list", ["red", "white"])
        cache.store("private dining", ["up to 20"])
        # Recently accessed but about to expire: must not push out a live entry
        clock.advance(TTL_SECONDS / 2 - 100)
        cache.lookup("opening hours")
        clock.advance(101)

        cache.store("happy hour", ["4-6pm"])

        assert sorted(status_keys(cache)) == ["happy hour", "private dining", "wine list"]

    def test_status_hides_expired_entries(self, cache, clock):
        cache.store("kids menu", KIDS_RESULTS)
        clock.advance(TTL_SECONDS + 1)

        assert cache.status().entry_count == 0


class TestEviction:
    def test_bounded_size_keeps_most_recent(self, cache, clock):
        queries = ["opening hours", "wine list", "private dining", "happy hour", "dress code"]
        for query in queries:
            cache.store(query, [query])
            clock.advance(1)

        report = cache.status()
        assert report.entry_count == MAX_SIZE
        assert sorted(status_keys(cache)) == sorted(queries[-MAX_SIZE:])

    def test_bounded_size_with_identical_timestamps(self, cache):
        queries = ["opening hours", "wine list", "private dining", "happy hour"]
        for query in queries:
            cache.store(query, [query])

        assert sorted(status_keys(cache)) == sorted(queries[1:])

    def test_access_protects_entry_from_eviction(self, cache, clock):
        cache.store("opening hours", [1])
        clock.advance(1)
        cache.store("wine list", [2])
        clock.advance(1)
        cache.store("private dining", [3])
        clock.advance(1)
        cache.lookup("opening hours")
        clock.advance(1)

        cache.store("happy hour", [4])

        assert sorted(status_keys(cache)) == ["happy hour", "opening hours", "private dining"]

    def test_overwrite_does_not_evict(self, cache, clock):
        for query in ["opening hours", "wine list", "private dining"]:
            cache.store(query, [query])
            clock.advance(1)

        cache.store("wine list", ["updated"])

        assert cache.status().entry_count == MAX_SIZE
        assert cache.lookup("wine list").value == ["updated"]

    def test_overwrite_resets_hit_count(self, cache):
        cache.store("kids menu", ["old"])
        cache.lookup("kids menu")
        cache.store("kids menu", ["new"])

        entry = cache.status().entries[0]
        assert entry.hit_count == 0


class TestInvalidate:
    def test_invalidate_all(self, cache):
        cache.store("kids menu", KIDS_RESULTS)
        cache.store("parking availability", PARKING_RESULTS)

        assert cache.invalidate() == 2
        assert cache.status().entry_count == 0
        assert cache.lookup("kids menu").hit is False

    def test_invalidate_single_key(self, cache):
        cache.store("kids menu", KIDS_RESULTS)
        cache.store("parking availability", PARKING_RESULTS)

        assert cache.invalidate("kids menu") == 1
        assert status_keys(cache) == ["parking availability"]

    def test_invalidate_missing_key_is_noop(self, cache):
        cache.store("kids menu", KIDS_RESULTS)

        assert cache.invalidate("kid menu") == 0
        assert status_keys(cache) == ["kids menu"]

    def test_invalidate_empty_cache(self, cache):
        assert cache.invalidate() == 0


class TestStatus:
    def test_sorted_by_hit_count(self, cache):
        cache.store("kids menu", KIDS_RESULTS)
        cache.store("parking availability", PARKING_RESULTS)
        cache.store("dress code", ["smart casual"])
        cache.lookup("parking availability")
        cache.lookup("parking availability")
        cache.lookup("dress code")

        report = cache.status()

        assert [e.key for e in report.entries] == ["parking availability", "dress code", "kids menu"]
        assert [e.hit_count for e in report.entries] == [2, 1, 0]

    def test_reports_configuration(self, cache):
        report = cache.status()

        assert report.entry_count == 0
        assert report.max_size == MAX_SIZE
        assert report.ttl_seconds == TTL_SECONDS
        assert report.fuzzy_threshold == 0.8
        assert report.backend == {"backend": "memory"}

    def test_reports_document_timestamps(self, cache, clock):
        cache.store("kids menu", KIDS_RESULTS)
        clock.advance(5)
        cache.store("dress code", ["smart casual"])

        report = cache.status()
        assert report.created_at == START
        assert report.last_updated == clock.now

    def test_performance_counters(self, cache):
        cache.store("kids menu", KIDS_RESULTS)
        cache.lookup("kids menu")
        cache.lookup("kid menu")
        cache.lookup("wine list")

        perf = cache.status().performance
        assert perf["exact_hits"] == 1
        assert perf["fuzzy_hits"] == 1
        assert perf["misses"] == 1
        assert perf["hit_rate"] == pytest.approx(2 / 3)


class TestPersistence:
    def test_round_trip_through_new_instance(self, cache, store, clock):
        cache.store("kids menu", KIDS_RESULTS)
        cache.store("parking availability", PARKING_RESULTS)

        reloaded = QueryCacheService(
            store=InMemoryDocumentStore(store.raw),
            ttl=TTL_SECONDS,
            max_size=MAX_SIZE,
            clock=clock,
        )

        assert reloaded.lookup("kids menu").value == KIDS_RESULTS
        assert reloaded.lookup("Is parking available?").value == PARKING_RESULTS

    def test_document_layout(self, cache, store):
        cache.store("kids menu", KIDS_RESULTS)

        document = json.loads(store.raw)
        entry = document["entries"]["kids menu"]
        assert entry["value"] == KIDS_RESULTS
        assert entry["hit_count"] == 0
        assert set(entry) == {"value", "cached_at", "expires_at", "last_accessed", "hit_count"}
        assert document["metadata"]["max_size"] == MAX_SIZE
        assert document["metadata"]["current_size"] == 1


class TestFailureSemantics:
    def test_corrupt_document_is_a_miss(self, clock):
        cache = QueryCacheService(store=InMemoryDocumentStore("{not json"), clock=clock)

        assert cache.lookup("kids menu").hit is False

    def test_corrupt_document_is_logged(self, clock):
        cache = QueryCacheService(store=InMemoryDocumentStore("{not json"), clock=clock)

        with capture_logs() as logs:
            cache.lookup("kids menu")

        events = [entry["event"] for entry in logs]
        assert "cache_load_failed" in events
        assert "cache_unavailable" in events

    def test_schema_mismatch_is_a_miss(self, clock):
        cache = QueryCacheService(store=InMemoryDocumentStore('{"entries": 5}'), clock=clock)

        assert cache.lookup("kids menu").hit is False
        assert cache.status().entry_count == 0

    def test_store_replaces_corrupt_document(self, clock):
        store = InMemoryDocumentStore("{not json")
        cache = QueryCacheService(store=store, clock=clock)

        cache.store("kids menu", KIDS_RESULTS)

        assert cache.lookup("kids menu").value == KIDS_RESULTS

    def test_write_failure_drops_store(self, clock):
        store = FailingWriteStore()
        cache = QueryCacheService(store=store, clock=clock)

        cache.store("kids menu", KIDS_RESULTS)

        assert store.raw is None
        assert cache.lookup("kids menu").hit is False

    def test_write_failure_still_returns_hit(self, clock):
        store = FailingWriteStore()
        store.fail_writes = False
        cache = QueryCacheService(store=store, clock=clock)
        cache.store("kids menu", KIDS_RESULTS)
        store.fail_writes = True

        result = cache.lookup("kids menu")

        assert result.hit is True
        assert result.value == KIDS_RESULTS

    def test_non_serializable_value_is_dropped(self, cache, store):
        cache.store("kids menu", {object()})

        assert store.raw is None

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), -float("inf")])
    def test_non_finite_value_is_dropped(self, cache, store, bad):
        cache.store("dress code", ["smart casual"])
        before = store.raw

        cache.store("kids menu", [{"content": "nuggets", "relevancy": bad}])

        assert store.raw == before
        assert cache.lookup("kids menu").hit is False
        assert cache.lookup("dress code").value == ["smart casual"]

    def test_unreachable_store_degrades_to_empty(self, clock):
        cache = QueryCacheService(store=UnreachableStore(), clock=clock)

        cache.store("kids menu", KIDS_RESULTS)
        assert cache.lookup("kids menu").hit is False
        assert cache.invalidate() == 0
        assert cache.status().entry_count == 0
        assert cache.is_healthy() is False


class TestValidation:
    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    def test_lookup_rejects_invalid_query(self, cache, query):
        with pytest.raises(InvalidQueryError):
            cache.lookup(query)

    @pytest.mark.parametrize("query", ["", "\n"])
    def test_store_rejects_invalid_query(self, cache, query):
        with pytest.raises(InvalidQueryError):
            cache.store(query, KIDS_RESULTS)

    def test_invalidate_rejects_blank_key(self, cache):
        with pytest.raises(InvalidQueryError):
            cache.invalidate("")

    def test_invalid_query_is_a_value_error(self, cache):
        with pytest.raises(ValueError):
            cache.lookup("")

    @pytest.mark.parametrize(
        "kwargs",
        [{"ttl": 0}, {"max_size": 0}, {"fuzzy_threshold": 1.5}],
    )
    def test_rejects_bad_configuration(self, store, kwargs):
        with pytest.raises(ValueError):
            QueryCacheService(store=store, **kwargs)


class TestGetOrFetch:
    def test_fetches_and_caches_on_miss(self, cache):
        calls = []

        def fetch(query):
            calls.append(query)
            return PARKING_RESULTS

        first = cache.get_or_fetch("parking availability", fetch)
        second = cache.get_or_fetch("Is parking available?", fetch)

        assert first.hit is False
        assert first.value == PARKING_RESULTS
        assert second.hit is True
        assert second.kind is MatchKind.FUZZY
        assert calls == ["parking availability"]

    def test_fetch_errors_propagate(self, cache):
        def fetch(query):
            raise RuntimeError("vector search down")

        with pytest.raises(RuntimeError, match="vector search down"):
            cache.get_or_fetch("kids menu", fetch)

        assert cache.status().entry_count == 0


class TestFactories:
    def test_create_uses_explicit_values(self, store):
        cache = QueryCacheService.create(store=store, ttl=60, max_size=5, fuzzy_threshold=0.9)

        assert cache.ttl_seconds == 60
        assert cache.max_size == 5
        assert cache.fuzzy_threshold == 0.9

    def test_defaults(self, store):
        cache = QueryCacheService(store=store)

        assert cache.ttl_seconds == 7 * 24 * 60 * 60
        assert cache.max_size == 10
        assert cache.fuzzy_threshold == 0.8


class TestConcurrency:
    def test_concurrent_hits_are_all_counted(self, clock):
        cache = QueryCacheService(store=SlowStore(), ttl=TTL_SECONDS, max_size=MAX_SIZE, clock=clock)
        cache.store("kids menu", KIDS_RESULTS)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: cache.lookup("kids menu"), range(40)))

        assert all(result.hit for result in results)
        assert cache.status().entries[0].hit_count == 40

    def test_concurrent_stores_respect_capacity(self, clock):
        store = SlowStore()
        cache = QueryCacheService(store=store, ttl=TTL_SECONDS, max_size=MAX_SIZE, clock=clock)
        queries = [f"question number {i}" for i in range(20)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda q: cache.store(q, [q]), queries))

        document = json.loads(store.raw)
        assert len(document["entries"]) == MAX_SIZE
        assert document["metadata"]["current_size"] == MAX_SIZE

    def test_file_store_serializes_threads(self, tmp_path, clock):
        cache = QueryCacheService(
            store=JsonFileDocumentStore(tmp_path / "cache.json"),
            ttl=TTL_SECONDS,
            max_size=MAX_SIZE,
            clock=clock,
        )
        cache.store("dress code", ["smart casual"])

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: cache.lookup("dress code"), range(24)))

        assert cache.status().entries[0].hit_count == 24
