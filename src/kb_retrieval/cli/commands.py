"""
CLI commands - thin wrappers around KnowledgeBaseService.

Each command follows the same pattern:
1. Parse arguments
2. Build the service (PostgreSQL if configured, seeded in-memory otherwise)
3. Run the operation
4. Print JSON
5. Return exit code
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys


def _load_env() -> None:
    """Load environment variables from .env file."""
    from dotenv import load_dotenv

    load_dotenv()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--postgres",
        action="store_true",
        help="Use PostgreSQL (default when DATABASE_URL is set)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")


def _build_service(use_postgres: bool, embed_seeds: bool = True):
    from kb_retrieval.config import get_config
    from kb_retrieval.observability import init_phoenix
    from kb_retrieval.retrieval import get_document_store
    from kb_retrieval.retrieval.seeds import seed_document_store
    from kb_retrieval.service import KnowledgeBaseService

    init_phoenix()
    config = get_config()
    use_postgres = use_postgres or bool(os.environ.get("DATABASE_URL"))
    store = get_document_store(use_postgres=use_postgres, config=config.store)
    if use_postgres:
        store.connect()
        store.create_schema()
    else:
        seed_document_store(store)

    service = KnowledgeBaseService.from_config(store, config)
    if not use_postgres and embed_seeds:
        service.reindex()
    return service, store


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def run_search_cli() -> int:
    """CLI entry point for knowledge-base search."""
    from kb_retrieval.core import RetrievalError

    parser = argparse.ArgumentParser(description="Search the knowledge base")
    parser.add_argument("query", help="Free-text query")
    parser.add_argument("--collection", help="Collection id to search")
    parser.add_argument("--owner", required=True, help="Caller's owner id")
    parser.add_argument("--limit", type=int, default=None, help="Maximum results")
    parser.add_argument("--timeout", type=float, default=None, help="Embedding timeout (s)")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    service, store = _build_service(args.postgres)
    try:
        results = service.search(
            args.query,
            collection_id=args.collection,
            limit=args.limit,
            owner_id=args.owner,
            timeout=args.timeout,
        )
    except RetrievalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        service.close()
        store.close()

    _print_json({
        "query": args.query,
        "total": len(results),
        "results": [r.to_dict() for r in results],
    })
    return 0


def run_reindex_cli() -> int:
    """CLI entry point for re-embedding documents without embeddings."""
    from kb_retrieval.core import RetrievalError

    parser = argparse.ArgumentParser(description="Compute missing document embeddings")
    parser.add_argument("--collection", help="Collection id (default: all)")
    parser.add_argument("--owner", help="Owner id (default: all)")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    service, store = _build_service(args.postgres, embed_seeds=False)
    try:
        updated = service.reindex(collection_id=args.collection, owner_id=args.owner)
    except RetrievalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        service.close()
        store.close()

    _print_json({"collection_id": args.collection, "updated": updated})
    return 0


def run_status_cli() -> int:
    """CLI entry point for the embedding status check."""
    parser = argparse.ArgumentParser(description="Check the embedding provider")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    service, store = _build_service(args.postgres)
    try:
        status = service.check_status()
    finally:
        service.close()
        store.close()

    _print_json(status)
    return 0 if status["available"] else 1


def main() -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        kb-retrieval search "query" --owner demo-user --collection kb_writing
        kb-retrieval reindex --collection kb_writing
        kb-retrieval status
    """
    _load_env()

    parser = argparse.ArgumentParser(
        description="Knowledge-base retrieval",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  search      Vector search with lexical fallback
  reindex     Compute embeddings for documents missing them
  status      Check which embedding path is answering

Examples:
  kb-retrieval search "literature review" --owner demo-user --collection kb_writing
  kb-retrieval reindex --postgres
        """,
    )

    parser.add_argument(
        "command",
        choices=["search", "reindex", "status"],
        help="Operation to run",
    )

    args, remaining = parser.parse_known_args()

    commands = {
        "search": run_search_cli,
        "reindex": run_reindex_cli,
        "status": run_status_cli,
    }

    # Re-inject remaining args for the subcommand
    sys.argv = [sys.argv[0]] + remaining

    from kb_retrieval.observability import shutdown_phoenix

    try:
        return commands[args.command]()
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    finally:
        shutdown_phoenix()


if __name__ == "__main__":
    sys.exit(main())
