# -*- coding: utf-8 -*-
"""
Per-document context used to correlate log lines of a single pipeline run.
"""
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Context variable for the document being processed (safe across threads/tasks)
document_id_ctx: ContextVar[str | None] = ContextVar("document_id", default=None)


def get_document_id() -> str | None:
    """Get current document ID from context."""
    return document_id_ctx.get()


@contextmanager
def document_scope(document_id: str | None = None) -> Iterator[str]:
    """Bind a document ID for the duration of one invocation.

    Nested scopes keep the outer ID so a parse that runs the cleaner and the
    footnote processor logs everything under one identifier.
    """
    current = document_id_ctx.get()
    if current is not None and document_id is None:
        yield current
        return

    doc_id = document_id or uuid.uuid4().hex[:12]
    token = document_id_ctx.set(doc_id)
    try:
        yield doc_id
    finally:
        document_id_ctx.reset(token)
