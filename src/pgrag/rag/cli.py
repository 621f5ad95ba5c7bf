"""
RAG CLI
=======

Command-line interface for the record store and RAG answering.

Usage:
    pgrag init                          # Create pgvector schema
    pgrag add "text" ["text" ...]       # Embed and store texts
    pgrag add --file notes.txt          # One record per non-empty line
    pgrag remove 3 4                    # Delete records by id
    pgrag search "query" -k 4 --threshold 0.5
    pgrag ask "question" -k 4 --threshold 0.5
    pgrag stats                         # Show record count
    pgrag drop                          # Drop the records table
"""

import argparse
import logging
import sys
from typing import List, Optional

from ..config import get_settings
from ..logging_config import setup_logging
from .engine import build_engine
from .embedder import OpenAIEmbedder
from .ingestion import RAGIngestion
from .search import SimilaritySearch
from .store import PgvectorStore

logger = logging.getLogger(__name__)


def init_schema() -> bool:
    """Create the pgvector extension, table and index."""
    try:
        PgvectorStore().create_default_schema()
        logger.info("RAG schema initialized successfully")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize schema: {e}")
        return False


def drop_schema() -> bool:
    """Drop the records table."""
    try:
        PgvectorStore().destroy_default_schema()
        return True
    except Exception as e:
        logger.error(f"Failed to drop schema: {e}")
        return False


def add_texts(texts: List[str], file_path: Optional[str] = None) -> bool:
    """Embed and store texts."""
    if file_path:
        with open(file_path, "r", encoding="utf-8") as f:
            texts = texts + [line.strip() for line in f if line.strip()]

    if not texts:
        logger.error("Nothing to add")
        return False

    try:
        ingestion = RAGIngestion()
        ids = ingestion.add_texts(texts)
        print(f"Added {len(ids)} records: {', '.join(str(i) for i in ids)}")

        stats = ingestion.stats
        logger.info(
            f"Embedding tokens: {stats.get('embedding_tokens', 0)} "
            f"(~${stats.get('embedding_cost_usd', 0.0):.4f})"
        )
        return True
    except Exception as e:
        logger.error(f"Add failed: {e}")
        return False


def remove_texts(ids: List[int]) -> bool:
    """Delete records by id."""
    try:
        removed = PgvectorStore().remove(ids)
        print(f"Removed {removed} records")
        return True
    except Exception as e:
        logger.error(f"Remove failed: {e}")
        return False


def run_search(query: str, k: int, threshold: Optional[float]) -> bool:
    """Run a similarity search and print the records."""
    try:
        search = SimilaritySearch(store=PgvectorStore(), embedder=OpenAIEmbedder())
        results = search.search(query, k=k, score_threshold=threshold)

        print(f"\n{'='*60}")
        print(f"Query: {query}")
        print(f"k: {k}  threshold: {threshold}")
        print(f"Results: {len(results)}")
        print('='*60)

        for i, r in enumerate(results, 1):
            print(f"\n[{i}] id={r.id}")
            print(f"    Content: {r.content[:200]}")

        return True

    except Exception as e:
        logger.error(f"Search failed: {e}")
        return False


def run_ask(question: str, k: int, threshold: Optional[float]) -> bool:
    """Answer a question from the stored records."""
    try:
        engine = build_engine()
        response = engine.ask(question, k=k, score_threshold=threshold)

        print(response.completion_text)
        logger.info(
            f"{response.provider.value}/{response.model}: "
            f"{response.total_tokens} tokens, ${response.cost_usd:.6f}"
        )
        return True

    except Exception as e:
        logger.error(f"Ask failed: {e}")
        return False


def show_stats() -> bool:
    """Show record statistics."""
    try:
        store = PgvectorStore()
        count = store.count()

        print(f"\n{'='*60}")
        print("RAG STATISTICS")
        print('='*60)
        print(f"Table:   {store.table_name}")
        print(f"Metric:  {store.metric}")
        print(f"Records: {count}")
        return True

    except Exception as e:
        logger.error(f"Stats failed: {e}")
        return False


def build_parser() -> argparse.ArgumentParser:
    default_k = get_settings().search.default_k

    parser = argparse.ArgumentParser(prog="pgrag", description="pgvector RAG CLI")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Create pgvector schema")
    subparsers.add_parser("drop", help="Drop the records table")

    add_parser = subparsers.add_parser("add", help="Embed and store texts")
    add_parser.add_argument("texts", nargs="*", help="Texts to store")
    add_parser.add_argument("--file", help="File with one text per line")

    remove_parser = subparsers.add_parser("remove", help="Delete records by id")
    remove_parser.add_argument("ids", nargs="+", type=int, help="Record ids")

    for name, help_text, arg in (
        ("search", "Similarity search", "query"),
        ("ask", "Answer a question with RAG", "question"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(arg)
        sub.add_argument("-k", type=int, default=default_k, help="Number of results")
        sub.add_argument("--threshold", type=float, default=None, help="Score threshold")

    subparsers.add_parser("stats", help="Show statistics")

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "init":
        success = init_schema()
    elif args.command == "drop":
        success = drop_schema()
    elif args.command == "add":
        success = add_texts(args.texts, args.file)
    elif args.command == "remove":
        success = remove_texts(args.ids)
    elif args.command == "search":
        success = run_search(args.query, args.k, args.threshold)
    elif args.command == "ask":
        success = run_ask(args.question, args.k, args.threshold)
    elif args.command == "stats":
        success = show_stats()
    else:
        parser.print_help()
        return

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
