"""Repository behaviour that does not need a live Postgres."""
import asyncio
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, PendingRollbackError

from pagewise.domain.entities import BookIndexEntry, PromptEmbedding
from pagewise.infrastructure.database.repository import (
    InteractionRepository,
    PromptEmbeddingRepository,
    insert_if_absent_statement,
)


class FailingCommitSession:
    """Mimics an AsyncSession whose transaction breaks on commit.

    After a failed commit every statement raises ``PendingRollbackError``
    until ``rollback()`` is called, as SQLAlchemy does.
    """

    def __init__(self):
        self.needs_rollback = False
        self.rollbacks = 0
        self.added = []

    def add(self, instance):
        self.added.append(instance)

    async def commit(self):
        self.needs_rollback = True
        raise IntegrityError("INSERT INTO smart_prompt_embeddings", {}, Exception("fk violation"))

    async def rollback(self):
        self.needs_rollback = False
        self.rollbacks += 1

    async def execute(self, statement):
        if self.needs_rollback:
            raise PendingRollbackError("transaction has been rolled back")
        return SimpleNamespace(scalars=lambda: SimpleNamespace(all=lambda: []))


def test_book_index_insert_keeps_existing_row_on_conflict():
    entry = BookIndexEntry(isbn_13="9780000000001", title="Kindred", tags=["time travel"])

    sql = str(insert_if_absent_statement(entry).compile(dialect=postgresql.dialect()))

    assert sql.startswith("INSERT INTO book_index")
    assert "ON CONFLICT (isbn_13) DO NOTHING" in sql


def test_failed_audit_write_does_not_break_the_next_read():
    session = FailingCommitSession()
    record = PromptEmbedding(
        id=uuid4(), user_id="ghost", prompt_hash="abc", embedding_vector=[0.1, 0.2]
    )

    with pytest.raises(IntegrityError):
        asyncio.run(PromptEmbeddingRepository(session).store(record))

    assert session.rollbacks == 1
    assert asyncio.run(InteractionRepository(session).get_user_interactions("ghost")) == []
