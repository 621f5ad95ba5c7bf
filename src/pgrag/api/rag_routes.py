"""
pgrag RAG API Routes
====================

Endpoints for similarity search and question answering.
"""

import logging
import os
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from ..ai.llm_client import ChatError
from ..config import get_settings
from ..rag import RAGEngine, build_engine, EmbeddingError, StoreError
from ..rag.store import PgvectorStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rag", tags=["RAG"])

UPSTREAM_ERRORS = (EmbeddingError, StoreError, ChatError)


def get_engine() -> RAGEngine:
    """Engine provider (overridden in tests)."""
    try:
        return build_engine()
    except ValueError as e:
        raise HTTPException(status_code=503, detail=f"RAG not configured: {str(e)}")


def _default_k() -> int:
    return get_settings().search.default_k


# =============================================================================
# MODELS
# =============================================================================

class RAGSearchRequest(BaseModel):
    """Similarity search request."""
    query: str = Field(..., min_length=1, description="Search query")
    k: int = Field(default_factory=_default_k, gt=0, description="Number of results")
    score_threshold: Optional[float] = Field(None, description="Optional score threshold")


class RAGRecord(BaseModel):
    """A retrieved record."""
    id: int
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RAGSearchResponse(BaseModel):
    """Similarity search response."""
    query: str
    results: List[RAGRecord]


class RAGAskRequest(BaseModel):
    """Question answering request."""
    question: str = Field(..., min_length=1)
    k: int = Field(default_factory=_default_k, gt=0)
    score_threshold: Optional[float] = None


class RAGAskResponse(BaseModel):
    """Question answering response."""
    question: str
    answer: str
    model: str
    provider: str
    tokens: int
    cost_usd: float


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/search", response_model=RAGSearchResponse)
def search_records(request: RAGSearchRequest, engine: RAGEngine = Depends(get_engine)):
    """
    Similarity search over stored records.

    With a score_threshold the results come back in record id order.
    """
    try:
        records = engine.retrieve(request.query, k=request.k, score_threshold=request.score_threshold)
    except UPSTREAM_ERRORS as e:
        logger.error(f"RAG search failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        logger.error(f"RAG search not configured: {e}")
        raise HTTPException(status_code=503, detail=f"RAG not configured: {str(e)}")

    return RAGSearchResponse(
        query=request.query,
        results=[RAGRecord(id=r.id, content=r.content, metadata=r.metadata) for r in records],
    )


@router.post("/ask", response_model=RAGAskResponse)
def ask_question(request: RAGAskRequest, engine: RAGEngine = Depends(get_engine)):
    """Answer a question using retrieved records as context."""
    try:
        response = engine.ask(request.question, k=request.k, score_threshold=request.score_threshold)
    except UPSTREAM_ERRORS as e:
        logger.error(f"RAG ask failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        logger.error(f"RAG ask not configured: {e}")
        raise HTTPException(status_code=503, detail=f"RAG not configured: {str(e)}")

    return RAGAskResponse(
        question=request.question,
        answer=response.completion_text,
        model=response.model,
        provider=response.provider.value,
        tokens=response.total_tokens,
        cost_usd=response.cost_usd,
    )


@router.get("/status")
def rag_status():
    """Report which RAG dependencies are configured."""
    db_configured = bool(os.getenv("DATABASE_URL"))
    openai_configured = bool(os.getenv("OPENAI_API_KEY") or os.getenv("GPT_API_KEY"))

    pgvector_available = False
    if db_configured:
        try:
            pgvector_available = PgvectorStore().pgvector_available()
        except (StoreError, ValueError) as e:
            logger.warning(f"pgvector availability check failed: {e}")

    return {
        "rag_available": db_configured and openai_configured and pgvector_available,
        "database_configured": db_configured,
        "embeddings_configured": openai_configured,
        "pgvector_available": pgvector_available,
    }
