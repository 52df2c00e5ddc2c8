"""End-to-end tests for the Fresh/Smart recommendation pipeline.

External providers and the store are in-memory fakes; every scenario runs
the real catalog search adapter, similarity ranking, analyzer and scorer.
"""
import asyncio
from datetime import timedelta

import pytest

from fakes import (
    FakeCatalogClient,
    FakeEmbeddingService,
    FakeTextService,
    InMemoryBookIndexRepository,
    InMemoryInteractionRepository,
    InMemoryPromptEmbeddingRepository,
    make_volume,
)
from pagewise.core.security import hash_prompt
from pagewise.domain.entities import BookIndexEntry, utcnow
from pagewise.services.catalog_search import CatalogSearchService
from pagewise.services.recommendation import RecommendationService, normalize_mode

PROMPT = "i want a cozy fantasy novel"


def volume(isbn: str, description: str, genre: str = "Fantasy", author: str = "Anon") -> dict:
    return make_volume(isbn, description=description, categories=[genre], authors=[author])


def build_service(
    items,
    vectors=None,
    *,
    text=None,
    interactions=None,
    book_index=None,
    prompt_embeddings=None,
    catalog_limit: int = 3,
    personalized_limit: int = 3,
    embed_fail: bool = False,
):
    text = text or FakeTextService(keywords="cozy fantasy", themes="cozy, fantasy")
    catalog = CatalogSearchService(FakeCatalogClient(items), text, result_limit=catalog_limit)
    embeddings = FakeEmbeddingService(vectors, fail_all=embed_fail)
    service = RecommendationService(
        catalog_search=catalog,
        embedding_service=embeddings,
        text_service=text,
        interaction_repository=interactions,
        book_index_repository=book_index,
        prompt_embedding_repository=prompt_embeddings,
        personalized_limit=personalized_limit,
    )
    return service, embeddings


def test_normalize_mode_is_case_insensitive():
    assert normalize_mode("Smart") == "smart"
    assert normalize_mode(" FRESH ") == "fresh"
    with pytest.raises(ValueError):
        normalize_mode("turbo")


def test_blank_prompt_is_rejected():
    service, _ = build_service([])
    with pytest.raises(ValueError):
        asyncio.run(service.recommend("   ", "fresh"))


def test_fresh_mode_returns_catalog_order_and_touches_nothing():
    items = [volume("1", "d1"), volume("2", "d2"), volume("3", "d3")]
    text = FakeTextService()
    interactions = InMemoryInteractionRepository()
    audit = InMemoryPromptEmbeddingRepository()
    service, embeddings = build_service(
        items, text=text, interactions=interactions, prompt_embeddings=audit
    )

    result = asyncio.run(service.recommend(PROMPT, "fresh", user_id="user-123"))

    assert [b.isbn_13 for b in result.books] == ["1", "2", "3"]
    assert result.prompt_vector_available is False
    assert result.themes_used is None
    assert embeddings.calls == []
    assert text.calls == []
    assert audit.records == []


def test_smart_mode_ranks_by_prompt_similarity():
    items = [volume("1", "far"), volume("2", "close"), volume("3", "middle")]
    vectors = {
        PROMPT: [1.0, 0.0],
        "far": [0.0, 1.0],
        "close": [1.0, 0.1],
        "middle": [1.0, 1.0],
    }
    service, _ = build_service(items, vectors)

    result = asyncio.run(service.recommend(PROMPT, "smart"))

    assert [b.isbn_13 for b in result.books] == ["2", "3", "1"]
    assert result.prompt_vector_available is True
    assert result.themes_used == "cozy, fantasy"


def test_smart_mode_books_without_embedding_sort_last():
    items = [
        volume("1", "unknown text"),
        make_volume("2"),  # no description at all
        volume("3", "known"),
    ]
    vectors = {PROMPT: [1.0, 0.0], "known": [0.0, 1.0]}
    service, embeddings = build_service(items, vectors)

    result = asyncio.run(service.recommend(PROMPT, "smart"))

    # "known" scores 0.0, the others get the floor and keep catalog order
    assert [b.isbn_13 for b in result.books] == ["3", "1", "2"]
    assert "unknown text" in embeddings.calls


def test_smart_mode_equal_similarity_keeps_catalog_order():
    items = [volume(str(i), f"d{i}") for i in range(3)]
    vectors = {PROMPT: [1.0, 0.0], "d0": [1.0, 0.0], "d1": [1.0, 0.0], "d2": [1.0, 0.0]}
    service, _ = build_service(items, vectors)

    result = asyncio.run(service.recommend(PROMPT, "smart"))

    assert [b.isbn_13 for b in result.books] == ["0", "1", "2"]


def test_smart_mode_prompt_embedding_failure_falls_back_to_catalog_order():
    items = [volume("1", "d1"), volume("2", "d2")]
    service, _ = build_service(items, embed_fail=True)

    result = asyncio.run(service.recommend(PROMPT, "smart", user_id="user-123"))

    assert [b.isbn_13 for b in result.books] == ["1", "2"]
    assert result.prompt_vector_available is False
    assert result.themes_used is None


def test_empty_catalog_gives_empty_result():
    service, embeddings = build_service([], {PROMPT: [1.0]})
    result = asyncio.run(service.recommend(PROMPT, "smart"))
    assert result.books == []
    assert embeddings.calls == []


def test_theme_failure_still_returns_ranked_books():
    items = [volume("1", "d1")]
    service, _ = build_service(
        items, {PROMPT: [1.0, 0.0], "d1": [1.0, 0.0]}, text=FakeTextService(fail=True)
    )
    result = asyncio.run(service.recommend(PROMPT, "smart"))
    assert [b.isbn_13 for b in result.books] == ["1"]
    assert result.themes_used is None
    assert result.prompt_vector_available is True


def test_smart_mode_with_user_stores_hashed_prompt_only():
    audit = InMemoryPromptEmbeddingRepository()
    service, _ = build_service(
        [volume("1", "d1")],
        {PROMPT: [0.6, 0.8], "d1": [1.0, 0.0]},
        interactions=InMemoryInteractionRepository(),
        prompt_embeddings=audit,
    )

    asyncio.run(service.recommend(PROMPT, "smart", user_id="user-123"))

    assert len(audit.records) == 1
    record = audit.records[0]
    assert record.prompt_hash == hash_prompt(PROMPT)
    assert record.embedding_vector == [0.6, 0.8]
    assert PROMPT not in repr(record)


def test_audit_write_failure_does_not_fail_the_request():
    service, _ = build_service(
        [volume("1", "d1")],
        {PROMPT: [1.0, 0.0], "d1": [1.0, 0.0]},
        prompt_embeddings=InMemoryPromptEmbeddingRepository(fail=True),
    )
    result = asyncio.run(service.recommend(PROMPT, "smart", user_id="user-123"))
    assert [b.isbn_13 for b in result.books] == ["1"]


def test_cold_start_user_keeps_base_ranking_untruncated():
    items = [volume(str(i), f"d{i}") for i in range(5)]
    vectors = {PROMPT: [1.0, 0.0], **{f"d{i}": [1.0, float(i)] for i in range(5)}}
    service, _ = build_service(
        items,
        vectors,
        interactions=InMemoryInteractionRepository(),
        book_index=InMemoryBookIndexRepository(),
        catalog_limit=5,
        personalized_limit=2,
    )

    result = asyncio.run(service.recommend(PROMPT, "smart", user_id="user-123"))

    assert [b.isbn_13 for b in result.books] == ["0", "1", "2", "3", "4"]


def test_warm_user_is_reranked_by_preferences_and_truncated(make_interaction):
    items = [
        volume("1", "d1", genre="Horror", author="Grim"),
        volume("2", "d2", genre="Romance", author="Nobody"),
        volume("3", "d3", genre="Fantasy", author="Le Guin"),
        volume("4", "d4", genre="Fantasy", author="Other"),
    ]
    # prompt similarity alone would put "1" first
    vectors = {
        PROMPT: [1.0, 0.0],
        "d1": [1.0, 0.0],
        "d2": [1.0, 0.2],
        "d3": [1.0, 0.5],
        "d4": [1.0, 0.9],
    }
    history = InMemoryInteractionRepository(
        [
            make_interaction(
                "900", "saved", 1.0, book_genre="Fantasy", book_author="Le Guin", created_at=utcnow()
            ),
            make_interaction(
                "901", "dismissed", -0.5, book_genre="Horror", created_at=utcnow() - timedelta(days=40)
            ),
        ]
    )
    service, _ = build_service(
        items,
        vectors,
        interactions=history,
        book_index=InMemoryBookIndexRepository(),
        catalog_limit=4,
        personalized_limit=3,
    )

    result = asyncio.run(service.recommend(PROMPT, "smart", user_id="user-123"))

    # 3: genre +2, author +3; 4: genre +2; 2: 0; 1: disliked genre -2
    assert [b.isbn_13 for b in result.books] == ["3", "4", "2"]
    assert result.prompt_vector_available is True


def test_warm_user_tags_come_from_stored_index(make_interaction):
    items = [volume("1", "d1", genre="X"), volume("2", "d2", genre="X")]
    vectors = {PROMPT: [1.0, 0.0], "d1": [1.0, 0.0], "d2": [1.0, 0.0]}
    index = InMemoryBookIndexRepository(
        [
            BookIndexEntry(isbn_13="900", title="Liked", tags=["cozy"]),
            BookIndexEntry(isbn_13="2", title="Candidate", tags=["cozy"]),
        ]
    )
    history = InMemoryInteractionRepository([make_interaction("900", "saved", 1.0)])
    service, _ = build_service(items, vectors, interactions=history, book_index=index)

    result = asyncio.run(service.recommend(PROMPT, "smart", user_id="user-123"))

    assert [b.isbn_13 for b in result.books] == ["2", "1"]


def test_history_read_failure_degrades_to_base_ranking():
    items = [volume("1", "d1"), volume("2", "d2")]
    vectors = {PROMPT: [1.0, 0.0], "d1": [0.0, 1.0], "d2": [1.0, 0.0]}
    service, _ = build_service(
        items, vectors, interactions=InMemoryInteractionRepository(fail_reads=True)
    )

    result = asyncio.run(service.recommend(PROMPT, "smart", user_id="user-123"))

    assert [b.isbn_13 for b in result.books] == ["2", "1"]


def test_book_index_failure_still_personalizes_from_snapshots(make_interaction):
    items = [volume("1", "d1", genre="Horror"), volume("2", "d2", genre="Fantasy")]
    vectors = {PROMPT: [1.0, 0.0], "d1": [1.0, 0.0], "d2": [1.0, 0.0]}
    history = InMemoryInteractionRepository(
        [make_interaction("900", "saved", 1.0, book_genre="Fantasy")]
    )
    service, _ = build_service(
        items,
        vectors,
        interactions=history,
        book_index=InMemoryBookIndexRepository(fail_reads=True),
    )

    result = asyncio.run(service.recommend(PROMPT, "smart", user_id="user-123"))

    assert [b.isbn_13 for b in result.books] == ["2", "1"]
