"""Indexing module - background embedding maintenance."""

from kb_retrieval.indexing.reindexer import Reindexer

__all__ = ["Reindexer"]
