"""
Document and collection models for the knowledge base.

Single responsibility: Define the structure of documents and
collections handed between the store, the embedder and the ranker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import uuid

import numpy as np


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate an opaque identifier."""
    return str(uuid.uuid4())


class DocumentType(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    PDF = "pdf"
    DOC = "doc"


@dataclass
class Collection:
    """A named knowledge base owned by a single user."""
    id: str
    name: str
    owner_id: str
    description: str = ""
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Document:
    """
    A document with an optional embedding.

    The embedding is tagged with the method that produced it
    (see Embedding.method). Vectors produced by different methods
    live in unrelated spaces and are never ranked against each other.
    """
    id: str
    title: str
    content: str
    collection_id: str
    type: DocumentType = DocumentType.TEXT
    embedding: np.ndarray | None = None
    embedding_method: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def has_embedding(self) -> bool:
        """True when a non-empty embedding is stored."""
        return self.embedding is not None and len(self.embedding) > 0

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization (embedding omitted)."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "type": DocumentType(self.type).value,
            "collection_id": self.collection_id,
            "embedding_method": self.embedding_method,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class Scope:
    """
    Which documents an operation may see.

    collection_id set: one collection.
    collection_id None, owner_id set: every collection of that owner.
    Both None: the whole store (maintenance jobs only).
    """
    collection_id: str | None = None
    owner_id: str | None = None
