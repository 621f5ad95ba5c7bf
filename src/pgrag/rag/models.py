"""
RAG Data Models
===============

Records and candidates exchanged between the store, the similarity
search and the RAG engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any

Embedding = List[float]

# Separator placed between record texts when building LLM context
CONTEXT_SEPARATOR = "\n---\n"


class ThresholdMode(str, Enum):
    """How a score threshold is compared against a candidate's distance."""
    MAX_DISTANCE = "max_distance"      # keep distance <= threshold
    MIN_SIMILARITY = "min_similarity"  # keep 1 - distance >= threshold


@dataclass
class Record:
    """A stored record, identified by its primary key."""
    id: int
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    def as_text(self) -> str:
        """Textual projection used as LLM context."""
        return self.content


@dataclass
class Candidate:
    """A record surfaced by a nearest-neighbor query, with its distance."""
    record: Record
    distance: float

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def similarity(self) -> float:
        """Similarity under cosine distance (1 - distance)."""
        return 1.0 - self.distance

    def passes(self, threshold: float, mode: ThresholdMode = ThresholdMode.MAX_DISTANCE) -> bool:
        """Check this candidate against a score threshold."""
        if mode == ThresholdMode.MIN_SIMILARITY:
            return self.similarity >= threshold
        return self.distance <= threshold


def build_context(records: List[Record]) -> str:
    """Join record texts, in order, into a single context string."""
    return CONTEXT_SEPARATOR.join(r.as_text() for r in records)
