"""
RAG Vector Store
================

Nearest-neighbor storage behind a two-call protocol:

1. ``nearest(embedding, limit)`` - candidates, nearest first
2. ``fetch_by_ids(ids)``         - records, ordered by primary key

``PgvectorStore`` implements it on PostgreSQL + pgvector with psycopg2.
Every statement is logged at DEBUG on this module's logger.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterable, List, Optional, Dict, Any

import psycopg2
from psycopg2.extras import Json, RealDictCursor, execute_values

from ..config import get_settings
from .models import Candidate, Embedding, Record

logger = logging.getLogger(__name__)


# pgvector distance operator and HNSW opclass per metric
DISTANCE_OPERATORS = {
    "cosine": ("<=>", "vector_cosine_ops"),
    "euclidean": ("<->", "vector_l2_ops"),
    "inner_product": ("<#>", "vector_ip_ops"),  # negative inner product
}


class StoreError(Exception):
    """Vector store operation failed (connectivity, malformed query, ...)."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.message = message
        self.operation = operation
        super().__init__(self.message)


class NearestNeighborStore(ABC):
    """
    Abstract nearest-neighbor store.

    Only query-time access is required by the similarity search.
    """

    @abstractmethod
    def nearest(self, embedding: Embedding, limit: int) -> List[Candidate]:
        """Return up to ``limit`` candidates, nearest first."""

    @abstractmethod
    def fetch_by_ids(self, ids: Iterable[int]) -> List[Record]:
        """Return the records with the given ids, ordered by id."""


class PgvectorStore(NearestNeighborStore):
    """
    PostgreSQL + pgvector store.

    Table layout:
        id BIGSERIAL PRIMARY KEY, content TEXT, metadata JSONB,
        embedding vector(N), created_at, updated_at
    """

    def __init__(
        self,
        db_url: Optional[str] = None,
        table_name: Optional[str] = None,
        metric: Optional[str] = None,
        dimensions: Optional[int] = None,
        connect_timeout: Optional[int] = None,
    ):
        settings = get_settings()
        self.db_url = db_url or settings.database.url
        self.table_name = table_name or settings.database.table_name
        self.metric = metric or settings.search.distance_metric
        self.dimensions = dimensions or settings.embedding.dimensions
        self.connect_timeout = connect_timeout or settings.database.connect_timeout

        if not self.db_url:
            raise ValueError("DATABASE_URL required for pgvector store")
        if self.metric not in DISTANCE_OPERATORS:
            raise ValueError(f"Unknown distance metric: {self.metric!r}")
        if not self.table_name.replace("_", "").isalnum():
            raise ValueError(f"Invalid table name: {self.table_name!r}")

        self.operator, self.opclass = DISTANCE_OPERATORS[self.metric]

    @contextmanager
    def _cursor(self, operation: str):
        """Open a connection and a dict cursor; commit on success, always close."""
        conn = None
        try:
            conn = psycopg2.connect(self.db_url, connect_timeout=self.connect_timeout)
            with conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    yield cur
        except psycopg2.Error as e:
            logger.error(f"pgvector {operation} failed: {e}")
            raise StoreError(f"{operation} failed: {e}", operation=operation) from e
        finally:
            if conn is not None:
                conn.close()

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> Record:
        return Record(
            id=row["id"],
            content=row["content"],
            metadata=row.get("metadata") or {},
            created_at=row.get("created_at"),
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def nearest(self, embedding: Embedding, limit: int) -> List[Candidate]:
        sql = f"""
            SELECT id, content, metadata, created_at,
                   embedding {self.operator} %s::vector AS distance
            FROM {self.table_name}
            WHERE embedding IS NOT NULL
            ORDER BY distance
            LIMIT %s
        """
        logger.debug("nearest: %s LIMIT %d", self.table_name, limit)

        with self._cursor("nearest") as cur:
            cur.execute(sql, (list(embedding), limit))
            rows = cur.fetchall()

        return [Candidate(record=self._to_record(row), distance=float(row["distance"])) for row in rows]

    def fetch_by_ids(self, ids: Iterable[int]) -> List[Record]:
        ids = list(ids)
        if not ids:
            return []

        sql = f"""
            SELECT id, content, metadata, created_at
            FROM {self.table_name}
            WHERE id = ANY(%s)
            ORDER BY id
        """
        logger.debug("fetch_by_ids: %s ids=%s", self.table_name, ids)

        with self._cursor("fetch_by_ids") as cur:
            cur.execute(sql, (ids,))
            rows = cur.fetchall()

        return [self._to_record(row) for row in rows]

    def count(self) -> int:
        """Number of stored records."""
        with self._cursor("count") as cur:
            cur.execute(f"SELECT COUNT(*) AS count FROM {self.table_name}")
            row = cur.fetchone()
        return row["count"]

    # =========================================================================
    # WRITES
    # =========================================================================

    def add(
        self,
        contents: List[str],
        embeddings: List[Embedding],
        metadatas: Optional[List[Dict[str, Any]]] = None,
    ) -> List[int]:
        """
        Insert records with their embeddings.

        Returns:
            Ids of the inserted records, in input order
        """
        metadatas = metadatas or [{} for _ in contents]
        if not (len(contents) == len(embeddings) == len(metadatas)):
            raise ValueError(
                f"Length mismatch: {len(contents)} contents, {len(embeddings)} embeddings, "
                f"{len(metadatas)} metadatas"
            )
        if not contents:
            return []

        rows = [
            (content, Json(meta or {}), list(emb))
            for content, emb, meta in zip(contents, embeddings, metadatas)
        ]
        logger.debug("add: %s rows=%d", self.table_name, len(rows))

        with self._cursor("add") as cur:
            inserted = execute_values(
                cur,
                f"INSERT INTO {self.table_name} (content, metadata, embedding) VALUES %s RETURNING id",
                rows,
                template="(%s, %s, %s::vector)",
                fetch=True,
            )

        return [row["id"] for row in inserted]

    def update(self, ids: List[int], contents: List[str], embeddings: List[Embedding]) -> int:
        """
        Replace content and embedding of existing records.

        Returns:
            Number of rows updated
        """
        if not (len(ids) == len(contents) == len(embeddings)):
            raise ValueError("ids, contents and embeddings must have the same length")

        updated = 0
        logger.debug("update: %s ids=%s", self.table_name, ids)

        with self._cursor("update") as cur:
            for record_id, content, emb in zip(ids, contents, embeddings):
                cur.execute(f"""
                    UPDATE {self.table_name}
                    SET content = %s, embedding = %s::vector, updated_at = NOW()
                    WHERE id = %s
                """, (content, list(emb), record_id))
                updated += cur.rowcount

        return updated

    def remove(self, ids: Iterable[int]) -> int:
        """
        Delete records by id.

        Returns:
            Number of rows deleted
        """
        ids = list(ids)
        if not ids:
            return 0

        logger.debug("remove: %s ids=%s", self.table_name, ids)

        with self._cursor("remove") as cur:
            cur.execute(f"DELETE FROM {self.table_name} WHERE id = ANY(%s)", (ids,))
            return cur.rowcount

    # =========================================================================
    # SCHEMA
    # =========================================================================

    def create_default_schema(self) -> None:
        """Create the pgvector extension, the records table and its HNSW index."""
        logger.info(f"Creating schema for {self.table_name} (vector({self.dimensions}), {self.metric})")

        with self._cursor("create_default_schema") as cur:
            cur.execute("CREATE EXTENSION IF NOT EXISTS vector")
            cur.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    id BIGSERIAL PRIMARY KEY,
                    content TEXT NOT NULL,
                    metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                    embedding vector({int(self.dimensions)}),
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """)
            cur.execute(f"""
                CREATE INDEX IF NOT EXISTS {self.table_name}_embedding_idx
                ON {self.table_name} USING hnsw (embedding {self.opclass})
            """)

    def destroy_default_schema(self) -> None:
        """Drop the records table."""
        logger.info(f"Dropping table {self.table_name}")

        with self._cursor("destroy_default_schema") as cur:
            cur.execute(f"DROP TABLE IF EXISTS {self.table_name}")

    def pgvector_available(self) -> bool:
        """Whether the pgvector extension is installed in the database."""
        with self._cursor("pgvector_available") as cur:
            cur.execute("SELECT 1 FROM pg_extension WHERE extname = 'vector'")
            return cur.fetchone() is not None
