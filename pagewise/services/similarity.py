"""Cosine similarity and stable similarity ranking."""

from typing import Optional, Sequence, TypeVar

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _pairwise_cosine

T = TypeVar("T")

# Floor of the cosine range: "no similarity signal available".  Used for
# candidates without an embedding or with a mismatched dimension, so they sort
# after every scored candidate without being dropped.
NO_SIMILARITY = -1.0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors, in [-1, 1].

    A zero-magnitude input yields ``0.0`` rather than raising.
    """
    va = np.asarray(a, dtype=float).reshape(1, -1)
    vb = np.asarray(b, dtype=float).reshape(1, -1)
    return float(_pairwise_cosine(va, vb)[0][0])


def similarity_scores(
    query: Sequence[float], vectors: Sequence[Optional[Sequence[float]]]
) -> list[float]:
    """Score each vector against *query*, keeping input positions.

    Absent vectors and vectors whose length differs from the query get
    :data:`NO_SIMILARITY`; the primitive is never called on them.
    """
    scores = [NO_SIMILARITY] * len(vectors)
    dim = len(query)
    valid = [i for i, v in enumerate(vectors) if v is not None and len(v) == dim and dim > 0]
    if not valid:
        return scores

    emb_matrix = np.array([vectors[i] for i in valid], dtype=float)
    sims = _pairwise_cosine(np.asarray(query, dtype=float).reshape(1, -1), emb_matrix)[0]
    for i, sim in zip(valid, sims):
        scores[i] = float(sim)
    return scores


def rank_by_similarity(items: Sequence[T], scores: Sequence[float]) -> list[T]:
    """Sort *items* by score descending; equal scores keep their input order."""
    order = sorted(range(len(items)), key=lambda i: -scores[i])
    return [items[i] for i in order]
