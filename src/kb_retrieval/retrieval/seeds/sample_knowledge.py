"""
Sample knowledge bases for a thesis-writing assistant.

Used when no database is configured so the CLI has something to search.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kb_retrieval.retrieval.document import Collection, Document, DocumentType

if TYPE_CHECKING:
    from kb_retrieval.core import DocumentStore

SAMPLE_OWNER_ID = "demo-user"


def get_sample_collections() -> list[Collection]:
    return [
        Collection(
            id="kb_research_methods",
            name="Research Methods",
            description="Notes on study design and analysis",
            owner_id=SAMPLE_OWNER_ID,
        ),
        Collection(
            id="kb_writing",
            name="Academic Writing",
            description="Structure and style guidance for papers",
            owner_id=SAMPLE_OWNER_ID,
        ),
    ]


def get_sample_documents() -> list[Document]:
    return [
        Document(
            id="doc_ml_basics",
            title="Machine learning basics",
            content="Supervised learning fits a model to labelled examples. "
                    "Hold out a test set to estimate generalization error.",
            collection_id="kb_research_methods",
        ),
        Document(
            id="doc_literary_analysis",
            title="Literary analysis methods",
            content="Close reading, historical context and reader-response "
                    "are common approaches to analysing a text.",
            collection_id="kb_research_methods",
        ),
        Document(
            id="doc_survey_design",
            title="Survey design checklist",
            content="Pilot every questionnaire, avoid leading questions and "
                    "report the response rate.",
            type=DocumentType.MARKDOWN,
            collection_id="kb_research_methods",
        ),
        Document(
            id="doc_abstract",
            title="Writing an abstract",
            content="State the problem, the method, the main result and why "
                    "it matters, in under 250 words.",
            collection_id="kb_writing",
        ),
        Document(
            id="doc_literature_review",
            title="Structuring a literature review",
            content="Group sources by theme rather than by author and end "
                    "each section with the gap your work addresses.",
            type=DocumentType.MARKDOWN,
            collection_id="kb_writing",
        ),
    ]


def seed_document_store(store: DocumentStore) -> int:
    """Insert the sample collections and documents. Returns documents added."""
    for collection in get_sample_collections():
        store.create_collection(collection)
    documents = get_sample_documents()
    for doc in documents:
        store.add_document(doc)
    return len(documents)
