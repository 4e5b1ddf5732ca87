#!/usr/bin/env python3
"""List projects stored in the Qdrant vector store."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "packages"))

from ragcore.errors import RagError
from ragcore.ingest import list_projects_filtered
from ragcore.vector_store import QdrantStore
from tools.cli.rag_common import add_common_args, load_cli_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="List ingested projects with chunk and file counts.")
    parser.add_argument("--prefix", default="", help="Case-insensitive project name prefix.")
    parser.add_argument("--offset", type=int, default=0, help="Page offset.")
    parser.add_argument("--limit", type=int, default=50, help="Page size.")
    add_common_args(parser)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args)
        store = QdrantStore(config.qdrant.url, config.qdrant.collection, config.embedding.local.dim)
        projects, total = list_projects_filtered(
            store, prefix=args.prefix, offset=args.offset, limit=args.limit
        )
    except (RagError, OSError, requests.RequestException) as exc:
        print(f"Error: {exc}")
        return 1

    print(json.dumps({"total": total, "offset": args.offset, "projects": projects}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
