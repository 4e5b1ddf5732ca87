"""Shared argument handling for the ragtool CLI commands."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Tuple

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "..", "packages"))

from ragcore.chunker import Chunk, make_chunks
from ragcore.config import RagConfig, load_config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to a JSON config file.")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured log level.",
    )


def load_cli_config(args: argparse.Namespace) -> RagConfig:
    """Load config from ``--config`` + environment and set up stderr logging."""
    config = load_config(args.config)
    level = (args.log_level or config.logging.level or "info").upper()
    logging.basicConfig(
        stream=sys.stderr,
        format=LOG_FORMAT,
        level=getattr(logging, level, logging.INFO),
    )
    return config


def add_corpus_args(parser: argparse.ArgumentParser, verb: str) -> None:
    """Arguments selecting the corpus; ingest and vector-search must agree on them."""
    parser.add_argument("--dir", help="Docs directory (default: indexing.docs_dir).")
    parser.add_argument("--include-code", action="store_true", help=f"Also {verb} code files.")


def load_corpus(args: argparse.Namespace, config: RagConfig) -> Tuple[str, List[Chunk]]:
    """Chunk the corpus selected by :func:`add_corpus_args`."""
    docs_dir = args.dir or config.indexing.docs_dir
    chunks = make_chunks(docs_dir, config=config, include_code=args.include_code or None)
    return str(docs_dir), chunks
