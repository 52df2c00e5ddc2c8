"""Preference analyzer: interaction history -> UserPreferenceProfile.

Every trackable interaction with a non-zero signal contributes
``|signal| x recency`` (recency 2 within the last 30 days, else 1) to the
liked or disliked map of its genre, author, each category and, when the book
index knows the book, each tag.  Positively-signaled books with a stored
content embedding are averaged into the taste embedding.

The profile is recomputed per request and never written back.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import numpy as np

from pagewise.domain.entities import BookIndexEntry, Interaction, UserPreferenceProfile, utcnow

logger = logging.getLogger(__name__)

# Interaction types the analyzer considers; everything else is skipped outright
TRACKABLE_INTERACTION_TYPES = frozenset(
    {
        "saved",
        "liked",
        "dismissed",
        "clicked",
        "viewed",
        "add_to_list",
        "show_more_like",
        "hide_similar",
        "removed",
        "rating_given",
        "details_viewed",
    }
)

RECENCY_WINDOW = timedelta(days=30)
RECENT_MULTIPLIER = 2.0
DEFAULT_MULTIPLIER = 1.0


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def recency_multiplier(created_at: datetime, now: datetime) -> float:
    """2 for interactions younger than 30 days, 1 otherwise."""
    if _aware(now) - _aware(created_at) < RECENCY_WINDOW:
        return RECENT_MULTIPLIER
    return DEFAULT_MULTIPLIER


def is_qualifying(interaction: Interaction) -> bool:
    """Trackable type, non-zero signal and not soft-deleted."""
    return (
        interaction.interaction_type in TRACKABLE_INTERACTION_TYPES
        and bool(interaction.signal_strength)
        and interaction.deleted_at is None
    )


def has_qualifying_interactions(interactions: Iterable[Interaction]) -> bool:
    return any(is_qualifying(ix) for ix in interactions)


class _Accumulator:
    """Liked/disliked weight sums for one label family."""

    def __init__(self) -> None:
        self.liked: dict[str, float] = defaultdict(float)
        self.disliked: dict[str, float] = defaultdict(float)

    def add(self, label: Optional[str], signal: float, weight: float) -> None:
        if not label:
            return
        if signal > 0:
            self.liked[label] += weight
        else:
            self.disliked[label] += weight

    def freeze(self) -> tuple[Mapping[str, float], Mapping[str, float]]:
        return MappingProxyType(dict(self.liked)), MappingProxyType(dict(self.disliked))


def analyze_preferences(
    interactions: Iterable[Interaction],
    book_index: Optional[Mapping[str, BookIndexEntry]] = None,
    now: Optional[datetime] = None,
) -> UserPreferenceProfile:
    """Aggregate one user's interaction history into a preference profile.

    ``book_index`` maps ISBN-13 to stored entries and is only used for tags
    and content embeddings; the genre/author/category snapshots on each
    interaction are used as-is.
    """
    now = now or utcnow()
    book_index = book_index or {}

    genres = _Accumulator()
    authors = _Accumulator()
    categories = _Accumulator()
    tags = _Accumulator()
    liked_embeddings: list[list[float]] = []

    considered = 0
    for ix in interactions:
        if not is_qualifying(ix):
            continue
        considered += 1

        signal = float(ix.signal_strength)
        weight = abs(signal) * recency_multiplier(ix.created_at, now)

        genres.add(ix.book_genre, signal, weight)
        authors.add(ix.book_author, signal, weight)
        for category in ix.book_categories or []:
            categories.add(category, signal, weight)

        entry = book_index.get(ix.book_isbn)
        if entry is None:
            continue
        for tag in entry.tags or []:
            tags.add(tag, signal, weight)
        if signal > 0 and entry.content_embedding:
            liked_embeddings.append(entry.content_embedding)

    taste_embedding = _mean_embedding(liked_embeddings)

    liked_genres, disliked_genres = genres.freeze()
    liked_authors, disliked_authors = authors.freeze()
    liked_categories, disliked_categories = categories.freeze()
    liked_tags, disliked_tags = tags.freeze()

    logger.debug(
        "Analyzed %d qualifying interactions (%d liked embeddings)",
        considered,
        len(liked_embeddings),
    )
    return UserPreferenceProfile(
        liked_genres=liked_genres,
        disliked_genres=disliked_genres,
        liked_authors=liked_authors,
        disliked_authors=disliked_authors,
        liked_categories=liked_categories,
        disliked_categories=disliked_categories,
        liked_tags=liked_tags,
        disliked_tags=disliked_tags,
        taste_embedding=taste_embedding,
    )


def _mean_embedding(embeddings: list[list[float]]) -> Optional[tuple[float, ...]]:
    """Coordinate-wise mean; embeddings off the first one's dimension are skipped."""
    if not embeddings:
        return None
    target_dim = len(embeddings[0])
    same_dim = [e for e in embeddings if len(e) == target_dim]
    if len(same_dim) < len(embeddings):
        logger.warning(
            "Skipped %d liked embeddings with mismatched dimension",
            len(embeddings) - len(same_dim),
        )
    return tuple(float(x) for x in np.mean(np.array(same_dim, dtype=float), axis=0))
