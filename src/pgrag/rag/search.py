"""
RAG Similarity Search
=====================

Threshold-aware top-k retrieval over a nearest-neighbor store.

Without a threshold this is plain top-k: one store round trip, results in
nearest-first order.

With a threshold:
1. Over-fetch k + OVERFETCH_MARGIN nearest candidates
2. Keep candidates passing the threshold
3. Keep the first k survivors (nearest-first)
4. Re-fetch the survivors by id; the store's id ordering is returned

The threshold path does not return similarity order. Step 4 hands back
whatever order ``fetch_by_ids`` produces (primary key ascending for
pgvector). Nothing widens the window when the threshold rejects too much:
a short or empty result is a valid answer.
"""

import logging
from typing import List, Optional, Union

from ..config import get_settings
from .embedder import Embedder
from .models import Embedding, Record, ThresholdMode
from .store import NearestNeighborStore

logger = logging.getLogger(__name__)

# Extra candidates requested when a threshold is applied
OVERFETCH_MARGIN = 5


class SimilaritySearch:
    """
    Retrieves records for a query vector or query text.

    Store and embedder errors are not caught here.
    """

    def __init__(
        self,
        store: NearestNeighborStore,
        embedder: Optional[Embedder] = None,
        threshold_mode: Optional[Union[ThresholdMode, str]] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.threshold_mode = ThresholdMode(
            threshold_mode or get_settings().search.threshold_mode
        )
        # 1 - distance is only a similarity for cosine distance
        metric = getattr(store, "metric", "cosine")
        if self.threshold_mode == ThresholdMode.MIN_SIMILARITY and metric != "cosine":
            raise ValueError(f"min_similarity thresholds need cosine distance, store uses {metric!r}")

    def search_by_vector(
        self,
        embedding: Embedding,
        k: int = 4,
        score_threshold: Optional[float] = None,
    ) -> List[Record]:
        """
        Search by embedding vector.

        Args:
            embedding: Query vector (dimension checked by the store)
            k: Maximum number of records to return
            score_threshold: Optional cutoff; None means plain top-k

        Returns:
            At most k records. Nearest-first without a threshold,
            store id order with one.
        """
        if k <= 0:
            raise ValueError(f"k must be a positive integer, got {k}")

        if score_threshold is None:
            candidates = self.store.nearest(embedding, limit=k)
            return [c.record for c in candidates[:k]]

        candidates = self.store.nearest(embedding, limit=k + OVERFETCH_MARGIN)
        kept = [c for c in candidates if c.passes(score_threshold, self.threshold_mode)][:k]

        logger.debug(
            f"Threshold {score_threshold} ({self.threshold_mode.value}) kept "
            f"{len(kept)}/{len(candidates)} candidates"
        )

        if not kept:
            return []

        return self.store.fetch_by_ids([c.id for c in kept])

    def search(
        self,
        query: str,
        k: int = 4,
        score_threshold: Optional[float] = None,
    ) -> List[Record]:
        """
        Search by query text.

        Embeds the query once, then delegates to search_by_vector().
        """
        if self.embedder is None:
            raise ValueError("An embedder is required to search by text")

        embedding = self.embedder.embed_query(query)
        results = self.search_by_vector(embedding=embedding, k=k, score_threshold=score_threshold)

        logger.info(
            f"RAG search returned {len(results)} results for query: {query[:50]}...",
            extra={"k": k, "score_threshold": score_threshold, "result_count": len(results)},
        )
        return results
