"""
CLI module - command-line access to search, reindex and status.
"""

from kb_retrieval.cli.commands import (
    main,
    run_search_cli,
    run_reindex_cli,
    run_status_cli,
)

__all__ = [
    "main",
    "run_search_cli",
    "run_reindex_cli",
    "run_status_cli",
]
