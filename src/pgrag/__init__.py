"""
pgrag
=====

Threshold-aware similarity search over pgvector, with retrieval-augmented
question answering on top.
"""

__version__ = "0.1.0"
