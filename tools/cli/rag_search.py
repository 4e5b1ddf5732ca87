#!/usr/bin/env python3
"""Lexical (BM25 + cosine) search over a docs directory."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "packages"))

from ragcore.engine import RetrievalEngine
from ragcore.errors import RagError
from tools.cli.rag_common import add_common_args, load_cli_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search documents with the local lexical index.")
    parser.add_argument("--question", required=True, help="Query text.")
    parser.add_argument("--k", type=int, default=5, help="Number of results.")
    parser.add_argument("--dir", help="Docs directory (default: indexing.docs_dir).")
    add_common_args(parser)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.k <= 0:
        print("Error: --k must be positive.")
        return 1

    try:
        config = load_cli_config(args)
        engine = RetrievalEngine(config)
        engine.rebuild(args.dir)
        hits = engine.search(args.question, args.k)
    except (RagError, OSError) as exc:
        print(f"Error: {exc}")
        return 1

    payload = {
        "question": args.question,
        "k": args.k,
        "mode": "lexical",
        "results": [hit.to_dict() for hit in hits],
    }
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
