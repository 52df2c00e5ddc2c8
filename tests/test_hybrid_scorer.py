"""Tests for hybrid scoring of candidates against a preference profile."""
import pytest

from pagewise.domain.entities import BookIndexEntry, UserPreferenceProfile
from pagewise.services.hybrid_scorer import rank_by_profile, score_book


def entry(isbn: str, **fields) -> BookIndexEntry:
    return BookIndexEntry(isbn_13=isbn, title=f"Book {isbn}", **fields)


def test_empty_profile_scores_zero():
    candidate = entry("1", genre="Fantasy", primary_author="A", categories=["Fantasy"])
    assert score_book(candidate, UserPreferenceProfile()) == 0.0


def test_each_preference_family_has_its_fixed_weight():
    profile = UserPreferenceProfile(
        liked_genres={"Fantasy": 5.0},
        liked_authors={"A": 0.1},
        liked_categories={"Fiction": 1.0, "Magic": 1.0},
        liked_tags={"cozy": 3.0},
    )
    candidate = entry(
        "1",
        genre="Fantasy",
        primary_author="A",
        categories=["Fiction", "Magic", "Other"],
        tags=["cozy"],
    )
    # weights count presence, not magnitude: 2 + 3 + 1.5 * 2 + 1
    assert score_book(candidate, profile) == pytest.approx(9.0)


def test_dislikes_subtract():
    profile = UserPreferenceProfile(
        disliked_genres={"Horror": 1.0},
        disliked_authors={"B": 1.0},
        disliked_categories={"Gore": 1.0},
        disliked_tags={"grim": 1.0},
    )
    candidate = entry("1", genre="Horror", primary_author="B", categories=["Gore"], tags=["grim"])
    assert score_book(candidate, profile) == pytest.approx(-8.0)


def test_taste_similarity_adds_four_times_cosine():
    profile = UserPreferenceProfile(taste_embedding=(1.0, 0.0))
    assert score_book(entry("1", content_embedding=[1.0, 0.0]), profile) == pytest.approx(4.0)
    assert score_book(entry("2", content_embedding=[0.0, 1.0]), profile) == pytest.approx(0.0)


def test_taste_term_skipped_on_dimension_mismatch_or_missing_embedding():
    profile = UserPreferenceProfile(taste_embedding=(1.0, 0.0))
    assert score_book(entry("1", content_embedding=[1.0, 0.0, 0.0]), profile) == 0.0
    assert score_book(entry("2"), profile) == 0.0


def test_liked_genre_outranks_unmatched_candidates():
    profile = UserPreferenceProfile(liked_genres={"Mystery": 1.0})
    candidates = [entry("1", genre="Romance"), entry("2", genre="Mystery"), entry("3")]
    ranked = rank_by_profile(candidates, profile)
    assert [e.isbn_13 for e, _ in ranked] == ["2", "1", "3"]


def test_rank_by_profile_keeps_input_order_on_ties():
    profile = UserPreferenceProfile(liked_genres={"Mystery": 1.0})
    candidates = [entry(str(i)) for i in range(5)]
    ranked = rank_by_profile(candidates, profile)
    assert [e.isbn_13 for e, _ in ranked] == ["0", "1", "2", "3", "4"]
    assert all(score == 0.0 for _, score in ranked)
