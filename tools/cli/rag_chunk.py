#!/usr/bin/env python3
"""Chunk a docs directory and print the chunks as JSON."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "packages"))

from ragcore.chunker import make_chunks
from ragcore.errors import RagError
from tools.cli.rag_common import add_common_args, load_cli_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Split documents into overlapping chunks.")
    parser.add_argument("--dir", help="Docs directory (default: indexing.docs_dir).")
    parser.add_argument("--chunk-size", type=int, help="Chunk size (characters).")
    parser.add_argument("--overlap", type=int, help="Chunk overlap (characters).")
    parser.add_argument("--include-code", action="store_true", help="Also chunk code files.")
    parser.add_argument("--follow-symlinks", action="store_true", help="Follow symlinks under --dir.")
    parser.add_argument("--summary", action="store_true", help="Print counts only.")
    add_common_args(parser)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args)
        chunks = make_chunks(
            args.dir or config.indexing.docs_dir,
            config=config,
            chunk_size=args.chunk_size,
            overlap=args.overlap,
            include_code=args.include_code or None,
            follow_symlinks=args.follow_symlinks or None,
        )
    except (RagError, OSError) as exc:
        print(f"Error: {exc}")
        return 1

    if args.summary:
        files = {chunk.path for chunk in chunks}
        print(json.dumps({"files": len(files), "chunks": len(chunks)}, indent=2))
        return 0

    payload = [
        {"id": c.id, "path": c.path, "position": c.position, "text": c.text}
        for c in chunks
    ]
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
