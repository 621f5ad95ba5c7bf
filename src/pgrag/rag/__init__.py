"""
pgrag RAG Module
================

Retrieval-Augmented Generation over a pgvector record store.

Architecture:
- pgvector for vector storage (PgvectorStore)
- OpenAI embeddings (OpenAIEmbedder)
- Threshold-aware top-k retrieval (SimilaritySearch)
- Context building + chat completion (RAGEngine)
"""

from .embedder import Embedder, OpenAIEmbedder, EmbeddingError, EmbeddingResult
from .store import NearestNeighborStore, PgvectorStore, StoreError
from .search import SimilaritySearch, OVERFETCH_MARGIN
from .engine import RAGEngine, build_engine
from .ingestion import RAGIngestion
from .prompts import generate_rag_prompt
from .models import (
    Record,
    Candidate,
    ThresholdMode,
    CONTEXT_SEPARATOR,
    build_context,
)

__all__ = [
    "Embedder",
    "OpenAIEmbedder",
    "EmbeddingError",
    "EmbeddingResult",
    "NearestNeighborStore",
    "PgvectorStore",
    "StoreError",
    "SimilaritySearch",
    "OVERFETCH_MARGIN",
    "RAGEngine",
    "build_engine",
    "RAGIngestion",
    "generate_rag_prompt",
    "Record",
    "Candidate",
    "ThresholdMode",
    "CONTEXT_SEPARATOR",
    "build_context",
]
