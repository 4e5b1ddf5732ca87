"""Module entrypoint for running ragtool CLI commands.

Usage: python -m ragtool <command> [options]
"""

from __future__ import annotations

import sys
from typing import Optional

from tools.cli.rag_chunk import main as chunk_main
from tools.cli.rag_search import main as search_main


def print_usage() -> None:
    """Print CLI usage information."""
    print("ragtool - local document retrieval toolchain")
    print("")
    print("Usage: ragtool <command> [options]")
    print("       python -m ragtool <command> [options]")
    print("")
    print("Commands:")
    print("  chunk             Split a docs directory into overlapping chunks")
    print("  search            Lexical (BM25 + cosine) search over a docs directory")
    print("  ingest            Embed chunks and upsert them into Qdrant")
    print("  vector-search     Similarity search against Qdrant")
    print("  projects          List ingested projects")
    print("")
    print("Options:")
    print("  -h, --help        Show this help message")
    print("  --version         Show version information")
    print("")
    print("Examples:")
    print("  ragtool chunk --dir ./docs --summary")
    print('  ragtool search --dir ./docs --question "retry policy" --k 3')
    print("  ragtool ingest --dir ./docs --include-code")
    print('  ragtool vector-search --question "deploy steps" --project-prefix api')


def print_version() -> None:
    """Print version information."""
    from ragtool import __version__
    print(f"ragtool {__version__}")


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entrypoint."""
    if argv is None:
        argv = sys.argv[1:]

    if len(argv) < 1:
        print_usage()
        return 1

    command = argv[0]

    if command in ("-h", "--help"):
        print_usage()
        return 0

    if command in ("-v", "--version"):
        print_version()
        return 0

    if command == "chunk":
        return chunk_main(argv[1:])
    if command == "search":
        return search_main(argv[1:])

    # Vector-store commands pull in requests; import lazily.
    if command == "ingest":
        from tools.cli.rag_ingest import main as ingest_main
        return ingest_main(argv[1:])
    if command == "vector-search":
        from tools.cli.rag_vector_search import main as vector_search_main
        return vector_search_main(argv[1:])
    if command == "projects":
        from tools.cli.rag_projects import main as projects_main
        return projects_main(argv[1:])

    print(f"Unknown command: {command}")
    print_usage()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
