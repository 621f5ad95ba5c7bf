"""
Shared fakes for the RAG collaborators.

The store, embedder and chat model are replaced with in-memory fakes that
record every call, so retrieval and answering run without a database or
API keys.
"""

from typing import Dict, Iterable, List, Optional

import pytest

from pgrag.ai.llm_client import ChatModel, LLMProvider, LLMResponse
from pgrag.config import reset_settings
from pgrag.rag.embedder import Embedder
from pgrag.rag.models import Candidate, Record
from pgrag.rag.store import NearestNeighborStore


def make_candidates(*pairs) -> List[Candidate]:
    """Build candidates from (id, distance) pairs, content 'Vector <id>'."""
    return [
        Candidate(record=Record(id=record_id, content=f"Vector {record_id}"), distance=distance)
        for record_id, distance in pairs
    ]


class FakeStore(NearestNeighborStore):
    """Returns canned candidates nearest-first; fetch_by_ids sorts by id."""

    def __init__(self, candidates: Optional[List[Candidate]] = None, error: Optional[Exception] = None):
        self.candidates = candidates or []
        self.error = error
        self.nearest_calls: List[Dict] = []
        self.fetch_calls: List[List[int]] = []

    def nearest(self, embedding, limit):
        self.nearest_calls.append({"embedding": list(embedding), "limit": limit})
        if self.error:
            raise self.error
        return self.candidates[:limit]

    def fetch_by_ids(self, ids: Iterable[int]) -> List[Record]:
        ids = list(ids)
        self.fetch_calls.append(ids)
        if self.error:
            raise self.error
        wanted = set(ids)
        return sorted((c.record for c in self.candidates if c.id in wanted), key=lambda r: r.id)


class FakeEmbedder(Embedder):
    """Returns the same vector for every query."""

    def __init__(self, vector: Optional[List[float]] = None, error: Optional[Exception] = None):
        self.vector = vector or [0.1, 0.2]
        self.error = error
        self.queries: List[str] = []

    def embed_query(self, query: str) -> List[float]:
        self.queries.append(query)
        if self.error:
            raise self.error
        return list(self.vector)


class FakeChatModel(ChatModel):
    """Records messages and answers with a fixed text."""

    def __init__(self, answer: str = "Mocked answer", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.calls: List[List[Dict[str, str]]] = []

    def chat(self, messages, max_tokens=None, temperature=None) -> LLMResponse:
        self.calls.append(messages)
        if self.error:
            raise self.error
        return LLMResponse(
            completion_text=self.answer,
            model="fake-model",
            provider=LLMProvider.OPENAI,
            tokens_input=10,
            tokens_output=5,
            cost_usd=0.0,
        )


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings from the environment for every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def embedder():
    return FakeEmbedder([0.1, 0.2])


@pytest.fixture
def chat_model():
    return FakeChatModel()
