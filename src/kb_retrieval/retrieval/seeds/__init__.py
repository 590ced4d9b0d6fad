"""
Seed data for development and the CLI's in-memory mode.
"""

from kb_retrieval.retrieval.seeds.sample_knowledge import (
    SAMPLE_OWNER_ID,
    get_sample_collections,
    get_sample_documents,
    seed_document_store,
)

__all__ = [
    "SAMPLE_OWNER_ID",
    "get_sample_collections",
    "get_sample_documents",
    "seed_document_store",
]
