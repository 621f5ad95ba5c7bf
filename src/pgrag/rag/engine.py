"""
RAG Engine
==========

Answers a question from stored records:

1. Retrieve records for the question (store SQL logging silenced)
2. Join record texts with "\\n---\\n", in retrieval order
3. Render the RAG prompt
4. Send it to the chat model as a single user message
5. Return the chat model's response as-is

Retrieval order is whatever SimilaritySearch returns, so with a score
threshold the context follows the store's id order, not similarity.
Errors from the embedder, the store and the chat model propagate.
"""

import logging
import time
from typing import Callable, List, Optional

from ..ai.llm_client import ChatModel, LLMResponse, get_chat_model
from ..logging_config import silence_logger
from .embedder import Embedder, OpenAIEmbedder
from .models import Record, build_context
from .prompts import generate_rag_prompt
from .search import SimilaritySearch
from .store import NearestNeighborStore, PgvectorStore

logger = logging.getLogger(__name__)

# Logger carrying the store's per-statement SQL output
STORE_LOGGER = "pgrag.rag.store"


class RAGEngine:
    """Retrieval-augmented question answering over a SimilaritySearch."""

    def __init__(
        self,
        search: SimilaritySearch,
        chat_model: ChatModel,
        prompt_builder: Callable[[str, str], str] = generate_rag_prompt,
        quiet_logger: str = STORE_LOGGER,
    ):
        self.search = search
        self.chat_model = chat_model
        self.prompt_builder = prompt_builder
        self.quiet_logger = quiet_logger

    def retrieve(
        self,
        question: str,
        k: int = 4,
        score_threshold: Optional[float] = None,
    ) -> List[Record]:
        """Run the similarity search with store logging silenced."""
        with silence_logger(self.quiet_logger):
            return self.search.search(question, k=k, score_threshold=score_threshold)

    def ask(
        self,
        question: str,
        k: int = 4,
        score_threshold: Optional[float] = None,
    ) -> LLMResponse:
        """
        Answer a question using retrieved records as context.

        Args:
            question: User question
            k: Maximum number of records to use as context
            score_threshold: Optional similarity cutoff for retrieval

        Returns:
            The chat model's LLMResponse, unchanged
        """
        start = time.monotonic()

        records = self.retrieve(question, k=k, score_threshold=score_threshold)
        context = build_context(records)
        prompt = self.prompt_builder(question=question, context=context)

        messages = [{"role": "user", "content": prompt}]
        response = self.chat_model.chat(messages=messages)

        logger.info(
            f"Answered question with {len(records)} context records",
            extra={
                "k": k,
                "score_threshold": score_threshold,
                "result_count": len(records),
                "duration": round(time.monotonic() - start, 3),
            },
        )
        return response


def build_engine(
    store: Optional[NearestNeighborStore] = None,
    embedder: Optional[Embedder] = None,
    chat_model: Optional[ChatModel] = None,
) -> RAGEngine:
    """Wire a RAGEngine from settings: pgvector store, OpenAI embeddings, configured chat model."""
    search = SimilaritySearch(
        store=store or PgvectorStore(),
        embedder=embedder or OpenAIEmbedder(),
    )
    return RAGEngine(search=search, chat_model=chat_model or get_chat_model())
