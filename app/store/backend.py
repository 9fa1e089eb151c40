"""Module-level document store singleton.

Same selection rule as the task queue and cache: PostgreSQL when
DATABASE_URL is configured, otherwise an in-process dict.
"""

from __future__ import annotations

from app.db.engine import async_session_factory
from app.store.document_store import DocumentStore, InMemoryDocumentStore
from app.store.pg_document_store import PgDocumentStore

if async_session_factory is not None:
    document_store: DocumentStore = PgDocumentStore(async_session_factory)
else:
    document_store = InMemoryDocumentStore()
