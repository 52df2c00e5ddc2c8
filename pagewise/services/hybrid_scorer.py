"""Hybrid scorer: one candidate + one preference profile -> one number.

Fixed weights:

  genre     +2 liked   -2 disliked
  author    +3 liked   -2 disliked
  category  +1.5 liked -2 disliked   (per matching category)
  tag       +1 liked   -2 disliked   (per matching tag)
  taste     +4 x cosine(taste embedding, candidate embedding)

A label "matches" when its accumulated weight is truthy; the weight itself
never scales the bonus.  Scores are only comparable within one scoring pass.
"""

from typing import Sequence

from pagewise.domain.entities import BookIndexEntry, UserPreferenceProfile
from pagewise.services.similarity import cosine_similarity

GENRE_LIKED = 2.0
GENRE_DISLIKED = -2.0
AUTHOR_LIKED = 3.0
AUTHOR_DISLIKED = -2.0
CATEGORY_LIKED = 1.5
CATEGORY_DISLIKED = -2.0
TAG_LIKED = 1.0
TAG_DISLIKED = -2.0
TASTE_SIMILARITY_WEIGHT = 4.0


def score_book(entry: BookIndexEntry, profile: UserPreferenceProfile) -> float:
    score = 0.0

    if entry.genre:
        if profile.liked_genres.get(entry.genre):
            score += GENRE_LIKED
        if profile.disliked_genres.get(entry.genre):
            score += GENRE_DISLIKED

    if entry.primary_author:
        if profile.liked_authors.get(entry.primary_author):
            score += AUTHOR_LIKED
        if profile.disliked_authors.get(entry.primary_author):
            score += AUTHOR_DISLIKED

    for category in entry.categories or []:
        if profile.liked_categories.get(category):
            score += CATEGORY_LIKED
        if profile.disliked_categories.get(category):
            score += CATEGORY_DISLIKED

    for tag in entry.tags or []:
        if profile.liked_tags.get(tag):
            score += TAG_LIKED
        if profile.disliked_tags.get(tag):
            score += TAG_DISLIKED

    taste = profile.taste_embedding
    embedding = entry.content_embedding
    if taste is not None and embedding and len(embedding) == len(taste):
        score += TASTE_SIMILARITY_WEIGHT * cosine_similarity(taste, embedding)

    return score


def rank_by_profile(
    entries: Sequence[BookIndexEntry], profile: UserPreferenceProfile
) -> list[tuple[BookIndexEntry, float]]:
    """Score and sort *entries* descending; ties keep their incoming order."""
    scored = [(entry, score_book(entry, profile)) for entry in entries]
    return sorted(scored, key=lambda pair: -pair[1])
