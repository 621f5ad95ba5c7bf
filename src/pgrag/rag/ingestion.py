"""
RAG Ingestion Pipeline
======================

Writes texts into the vector store.

Flow:
1. Validate texts
2. Generate embeddings (batched)
3. Insert / update rows in the store
"""

import logging
from typing import List, Optional, Dict, Any

from .embedder import Embedder, OpenAIEmbedder
from .store import PgvectorStore

logger = logging.getLogger(__name__)


class RAGIngestion:
    """
    Ingestion pipeline for the record store.

    Handles:
    - Embedding generation
    - Inserts, in-place updates and deletes
    """

    def __init__(
        self,
        store: Optional[PgvectorStore] = None,
        embedder: Optional[Embedder] = None,
        batch_size: int = 100,
    ):
        self.store = store or PgvectorStore()
        self.embedder = embedder or OpenAIEmbedder()
        self.batch_size = batch_size

        self._texts_added = 0
        self._texts_updated = 0
        self._texts_removed = 0

    def _embed(self, texts: List[str]) -> List[List[float]]:
        results = self.embedder.embed_batch(texts, batch_size=self.batch_size)
        return [r.embedding for r in results]

    def add_texts(
        self,
        texts: List[str],
        metadatas: Optional[List[Dict[str, Any]]] = None,
    ) -> List[int]:
        """
        Embed and store texts.

        Args:
            texts: Texts to store
            metadatas: Optional metadata dict per text

        Returns:
            Ids of the new records, in input order
        """
        if metadatas is not None and len(metadatas) != len(texts):
            raise ValueError(f"Length mismatch: {len(texts)} texts vs {len(metadatas)} metadatas")
        if not texts:
            return []

        embeddings = self._embed(texts)
        ids = self.store.add(texts, embeddings, metadatas)

        self._texts_added += len(ids)
        logger.info(f"Added {len(ids)} records")
        return ids

    def update_texts(self, ids: List[int], texts: List[str]) -> int:
        """
        Re-embed and replace the content of existing records.

        Returns:
            Number of records updated
        """
        if len(ids) != len(texts):
            raise ValueError(f"Length mismatch: {len(ids)} ids vs {len(texts)} texts")
        if not ids:
            return 0

        embeddings = self._embed(texts)
        updated = self.store.update(ids, texts, embeddings)

        if updated < len(ids):
            logger.warning(f"Updated {updated}/{len(ids)} records; some ids do not exist")

        self._texts_updated += updated
        return updated

    def remove_texts(self, ids: List[int]) -> int:
        """Delete records by id. Returns the number removed."""
        removed = self.store.remove(ids)
        self._texts_removed += removed
        logger.info(f"Removed {removed} records")
        return removed

    @property
    def stats(self) -> Dict[str, Any]:
        """Get ingestion statistics."""
        stats: Dict[str, Any] = {
            "texts_added": self._texts_added,
            "texts_updated": self._texts_updated,
            "texts_removed": self._texts_removed,
        }
        if isinstance(self.embedder, OpenAIEmbedder):
            stats["embedding_tokens"] = self.embedder.total_tokens
            stats["embedding_cost_usd"] = self.embedder.estimated_cost
        return stats
