"""Recommendation pipeline for Pagewise.

One request walks this state machine:

  KEYWORD_EXTRACT -> CATALOG_FETCH -> EMPTY -> DONE
                                   -> PROMPT_EMBED -> BOOK_EMBED -> BASE_RANK
                                      -> [smart + history: PREFERENCE_SCORE -> TRUNCATE]
                                      -> DONE

Fresh mode stops after CATALOG_FETCH: no embeddings, no AI calls, no store
reads or writes.  Smart mode adds embeddings, theme extraction, an audit row
(prompt hash + vector) and, for users with qualifying history, hybrid
re-ranking.  Every provider failure degrades to the best result available so
far; nothing past input validation is raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from uuid import uuid4

from pagewise.core.security import hash_prompt
from pagewise.domain.entities import (
    DISCOVERY_MODES,
    FRESH_MODE,
    Book,
    BookIndexEntry,
    PromptEmbedding,
    RecommendationResult,
)
from pagewise.domain.outcomes import Failure, Outcome, value_or
from pagewise.domain.repositories import (
    IBookIndexRepository,
    ICatalogSearchService,
    IEmbeddingService,
    IInteractionRepository,
    IPromptEmbeddingRepository,
    IRecommendationService,
    ITextGenerationService,
)
from pagewise.infrastructure.llm.prompts import THEME_EXTRACTION_PROMPT
from pagewise.services.hybrid_scorer import rank_by_profile
from pagewise.services.preference_analyzer import analyze_preferences, has_qualifying_interactions
from pagewise.services.similarity import rank_by_similarity, similarity_scores

logger = logging.getLogger(__name__)


def normalize_mode(mode: str) -> str:
    """Lower-case and validate a discovery mode (``fresh`` / ``smart``)."""
    normalized = (mode or "").strip().lower()
    if normalized not in DISCOVERY_MODES:
        raise ValueError(f"mode must be one of: {', '.join(DISCOVERY_MODES)}")
    return normalized


class RecommendationService(IRecommendationService):
    """Fresh/Smart recommendation orchestrator.

    The store repositories are optional: without them Smart mode still ranks
    by prompt similarity but cannot personalize or write the audit row.
    """

    def __init__(
        self,
        catalog_search: ICatalogSearchService,
        embedding_service: IEmbeddingService,
        text_service: ITextGenerationService,
        interaction_repository: Optional[IInteractionRepository] = None,
        book_index_repository: Optional[IBookIndexRepository] = None,
        prompt_embedding_repository: Optional[IPromptEmbeddingRepository] = None,
        personalized_limit: int = 3,
    ):
        self.catalog_search = catalog_search
        self.embedding_service = embedding_service
        self.text_service = text_service
        self.interaction_repository = interaction_repository
        self.book_index_repository = book_index_repository
        self.prompt_embedding_repository = prompt_embedding_repository
        self.personalized_limit = personalized_limit

    async def recommend(
        self, prompt: str, mode: str, user_id: Optional[str] = None
    ) -> RecommendationResult:
        mode = normalize_mode(mode)
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValueError("prompt must not be empty")

        # -- KEYWORD_EXTRACT + CATALOG_FETCH --
        candidates = await self.catalog_search.search(prompt, mode)

        if mode == FRESH_MODE:
            logger.info("Fresh request: %d books (prompt %d chars)", len(candidates), len(prompt))
            return RecommendationResult(books=candidates)

        prompt_hash = hash_prompt(prompt)
        if not candidates:
            logger.info("Smart request %s: catalog returned nothing", prompt_hash[:12])
            return RecommendationResult(books=[])

        # -- PROMPT_EMBED --
        prompt_outcome = await self.embedding_service.embed(prompt)
        if isinstance(prompt_outcome, Failure):
            logger.warning(
                "Prompt embedding unavailable (%s); returning catalog order", prompt_outcome.reason
            )
            return RecommendationResult(books=candidates)
        prompt_vector = prompt_outcome.value

        # -- BOOK_EMBED + BASE_RANK --
        book_vectors = await self._embed_candidates(candidates)
        scores = similarity_scores(prompt_vector, book_vectors)
        order = rank_by_similarity(list(range(len(candidates))), scores)
        ranked = [candidates[i] for i in order]
        ranked_vectors = [book_vectors[i] for i in order]

        themes = await self._extract_themes(prompt)

        if user_id:
            await self._store_prompt_embedding(user_id, prompt_hash, prompt_vector)
            # -- PREFERENCE_SCORE + TRUNCATE --
            personalized = await self._personalize(user_id, ranked, ranked_vectors)
            if personalized is not None:
                ranked = personalized

        logger.info(
            "Smart request %s: %d books (themes=%s)", prompt_hash[:12], len(ranked), bool(themes)
        )
        return RecommendationResult(books=ranked, prompt_vector_available=True, themes_used=themes)

    # -- Pipeline steps --
    async def _embed_candidates(self, candidates: list[Book]) -> list[Optional[list[float]]]:
        """Embed every description concurrently; results stay aligned by index."""

        async def _skip() -> Outcome[list[float]]:
            return Failure(reason="no description")

        outcomes = await asyncio.gather(
            *(
                self.embedding_service.embed(book.description) if book.description else _skip()
                for book in candidates
            )
        )
        vectors: list[Optional[list[float]]] = []
        failed = 0
        for book, outcome in zip(candidates, outcomes):
            if isinstance(outcome, Failure):
                if book.description:
                    failed += 1
                vectors.append(None)
            else:
                vectors.append(outcome.value)
        if failed:
            logger.warning(
                "Book embeddings: %d succeeded, %d failed",
                sum(v is not None for v in vectors),
                failed,
            )
        return vectors

    async def _extract_themes(self, prompt: str) -> Optional[str]:
        outcome = await self.text_service.complete(
            THEME_EXTRACTION_PROMPT.render(prompt=prompt),
            max_tokens=THEME_EXTRACTION_PROMPT.max_tokens,
            temperature=THEME_EXTRACTION_PROMPT.temperature,
        )
        if not outcome.ok:
            logger.warning("Prompt %s unavailable (%s)", THEME_EXTRACTION_PROMPT.name, outcome.reason)
        return value_or(outcome, None) or None

    async def _store_prompt_embedding(
        self, user_id: str, prompt_hash: str, prompt_vector: list[float]
    ) -> None:
        if self.prompt_embedding_repository is None:
            return
        record = PromptEmbedding(
            id=uuid4(),
            user_id=user_id,
            prompt_hash=prompt_hash,
            embedding_vector=prompt_vector,
        )
        try:
            await self.prompt_embedding_repository.store(record)
        except Exception as exc:
            logger.warning("Failed to store prompt embedding for user %s: %s", user_id, exc)

    async def _personalize(
        self,
        user_id: str,
        ranked: list[Book],
        ranked_vectors: list[Optional[list[float]]],
    ) -> Optional[list[Book]]:
        """Hybrid re-rank for a user with history; None means "keep base ranking"."""
        if self.interaction_repository is None:
            return None
        try:
            interactions = await self.interaction_repository.get_user_interactions(user_id)
        except Exception as exc:
            logger.warning("Interaction history unavailable for user %s: %s", user_id, exc)
            return None

        if not has_qualifying_interactions(interactions):
            logger.info("Cold start for user %s; keeping base ranking", user_id)
            return None

        isbns = {ix.book_isbn for ix in interactions if ix.book_isbn}
        isbns.update(book.isbn_13 for book in ranked if book.isbn_13)
        book_index: dict[str, BookIndexEntry] = {}
        if self.book_index_repository is not None and isbns:
            try:
                book_index = await self.book_index_repository.get_many_by_isbn(sorted(isbns))
            except Exception as exc:
                logger.warning("Book index unavailable (%s); scoring without tags", exc)

        profile = analyze_preferences(interactions, book_index)
        if profile.is_empty:
            return None

        entries = []
        for book, vector in zip(ranked, ranked_vectors):
            stored = book_index.get(book.isbn_13) if book.isbn_13 else None
            entries.append(
                BookIndexEntry.from_book(
                    book,
                    content_embedding=vector or (stored.content_embedding if stored else None),
                    tags=stored.tags if stored else None,
                )
            )

        rescored = rank_by_profile(entries, profile)[: self.personalized_limit]
        logger.info(
            "Personalized %d candidates for user %s (top score %.2f)",
            len(entries),
            user_id,
            rescored[0][1] if rescored else 0.0,
        )
        return [entry.to_book() for entry, _ in rescored]
