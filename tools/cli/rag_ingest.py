#!/usr/bin/env python3
"""Chunk a docs directory, embed the chunks and upsert them into Qdrant."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "packages"))

from ragcore.embedder import build_embedder
from ragcore.errors import RagError
from ragcore.ingest import fit_embedder, ingest_chunks
from ragcore.vector_store import QdrantStore
from tools.cli.rag_common import add_common_args, add_corpus_args, load_cli_config, load_corpus


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ingest documents into the Qdrant vector store.")
    add_corpus_args(parser, "ingest")
    parser.add_argument("--batch-size", type=int, default=0, help="Embedding batch size.")
    add_common_args(parser)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args)
        docs_dir, chunks = load_corpus(args, config)
        embedder = fit_embedder(build_embedder(config), chunks)
        store = QdrantStore(config.qdrant.url, config.qdrant.collection, embedder.dim())
        store.ensure_collection()
        total = ingest_chunks(
            chunks,
            embedder,
            store,
            batch_size=args.batch_size,
            config=config,
        )
    except (RagError, OSError, requests.RequestException) as exc:
        print(f"Error: {exc}")
        return 1

    print(json.dumps({"dir": docs_dir, "ingested": total, "collection": store.collection}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
