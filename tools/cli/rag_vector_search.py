#!/usr/bin/env python3
"""Similarity search against the Qdrant vector store."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "packages"))

from ragcore.embedder import LocalEmbedder, build_embedder
from ragcore.errors import RagError
from ragcore.ingest import fit_embedder, search_vectors
from ragcore.vector_store import QdrantStore
from tools.cli.rag_common import add_common_args, add_corpus_args, load_cli_config, load_corpus


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vector search over ingested documents.")
    parser.add_argument("--question", required=True, help="Query text.")
    parser.add_argument("--k", type=int, default=5, help="Number of results.")
    parser.add_argument("--project", default="", help="Exact project name to search in.")
    parser.add_argument("--project-prefix", default="", help="Project name prefix filter.")
    # The local vocabulary is rebuilt from this corpus; pass the ingest arguments.
    add_corpus_args(parser, "fit the vocabulary on")
    add_common_args(parser)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args)
        embedder = build_embedder(config)
        if isinstance(embedder, LocalEmbedder):
            # Query vectors are only comparable against the ingest-time vocabulary.
            _, chunks = load_corpus(args, config)
            embedder = fit_embedder(embedder, chunks)
        store = QdrantStore(config.qdrant.url, config.qdrant.collection, embedder.dim())
        hits = search_vectors(
            args.question,
            embedder,
            store,
            k=args.k,
            project=args.project,
            project_prefix=args.project_prefix,
        )
    except (RagError, OSError, requests.RequestException) as exc:
        print(f"Error: {exc}")
        return 1

    payload = {
        "question": args.question,
        "k": args.k,
        "mode": "vector",
        "results": [
            {"id": hit.id, "score": hit.score, **hit.payload} for hit in hits
        ],
    }
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
