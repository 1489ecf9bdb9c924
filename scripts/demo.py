#!/usr/bin/env python3
"""
Demo script for the query cache.

This script demonstrates exact and fuzzy lookups, LRU eviction and
threshold tuning with restaurant FAQ phrasings as a caller would say them.
"""

import tempfile
from pathlib import Path

from query_cache import JsonFileDocumentStore, QueryCacheService
from query_cache.evaluator import CacheEvaluator, QueryPair
from query_cache.matching import levenshtein_distance, normalize_query, similarity


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def fake_vector_search(query: str) -> list[dict[str, object]]:
    """Stand-in for the slow vector retrieval call."""
    return [{"content": f"FAQ answer about {query}", "relevancy": 0.91}]


def demo_basic_cache(cache_file: Path) -> None:
    """Demonstrate exact and fuzzy lookups."""
    print_section("Basic Cache Operations")

    cache = QueryCacheService.create(store=JsonFileDocumentStore.create(cache_file))

    faq_queries = [
        "kids menu",
        "parking availability",
        "dress code",
        "gluten free options",
    ]

    print("\n📝 Caching retrieval results...")
    for query in faq_queries:
        cache.store(query, fake_vector_search(query))
        print(f"  ✓ Stored: {query}")

    print("\n🔍 Looking up caller phrasings:")
    test_queries = [
        "kids menu",
        "kid menu options",
        "Is parking available?",
        "what is the dress code",
        "vegetarian options",
        "completely random query",
    ]

    for query in test_queries:
        result = cache.lookup(query)
        print(f"\n  Query: {query}")
        if result.hit:
            print(f"  ✓ {result.kind.value.upper()} HIT → '{result.matched_key}'")
            print(f"  Similarity: {result.similarity:.3f}")
        else:
            print("  ✗ Cache miss")


def demo_similarity_scores() -> None:
    """Show normalization and similarity for sample pairs."""
    print_section("Similarity Scores")

    pairs = [
        ("kids menu", "kid menu options"),
        ("kids menu", "children menu"),
        ("parking availability", "Is parking available?"),
        ("dress code", "what is the dress code"),
        ("gluten free options", "gluten-free menu"),
        ("high chair", "highchair availability"),
        ("completely different", "kids menu"),
    ]

    for a, b in pairs:
        norm_a, norm_b = normalize_query(a), normalize_query(b)
        print(f"\n  '{a}' ↔ '{b}'")
        print(f"    Normalized: '{norm_a}' ↔ '{norm_b}'")
        print(f"    Distance: {levenshtein_distance(norm_a, norm_b)}")
        print(f"    Similarity: {similarity(norm_a, norm_b):.3f}")


def demo_eviction(cache_file: Path) -> None:
    """Demonstrate LRU eviction at capacity."""
    print_section("LRU Eviction")

    cache = QueryCacheService.create(store=JsonFileDocumentStore.create(cache_file), max_size=3)
    cache.invalidate()

    for query in ["opening hours", "wine list", "private dining", "happy hour"]:
        cache.store(query, fake_vector_search(query))

    report = cache.status()
    print(f"\n  Entries: {report.entry_count}/{report.max_size}")
    for entry in report.entries:
        print(f"  • {entry.key} (hits: {entry.hit_count})")


def demo_threshold_tuning() -> None:
    """Demonstrate threshold tuning."""
    print_section("Threshold Tuning")

    test_queries = [
        # Should match (same question)
        QueryPair("kid menu options", "kids menu", should_match=True),
        QueryPair("Is parking available?", "parking availability", should_match=True),
        QueryPair("what is the dress code", "dress code", should_match=True),
        QueryPair("do you have high chairs", "high chair", should_match=True),
        # Should not match (different question)
        QueryPair("vegetarian options", "gluten free options", should_match=False),
        QueryPair("wine list", "kids menu", should_match=False),
    ]

    evaluator = CacheEvaluator()
    evaluator.sweep_thresholds(test_queries, min_threshold=0.6, max_threshold=0.95, steps=8)
    evaluator.print_summary()


def main() -> None:
    """Run all demos."""
    print("\n🚀 Query Cache Demo")
    print("=" * 70)

    with tempfile.TemporaryDirectory() as tmp:
        cache_file = Path(tmp) / "rag-query-cache.json"
        demo_basic_cache(cache_file)
        demo_similarity_scores()
        demo_eviction(cache_file)
        demo_threshold_tuning()

    print("\n" + "=" * 70)
    print("✅ Demo completed successfully!")
    print("=" * 70)


if __name__ == "__main__":
    main()
