#!/usr/bin/env python3
"""
ChunkCLI.py: chunk source files from the command line

- Input: one or more file paths
- Grammar chosen per file extension; unsupported files are reported, not fatal for the run
- Budget/calculator/coalescing from flags, falling back to CODE_CHUNKER_* env vars
- Writes one JSON object per chunk (JSON lines) to stdout
- Finishes with a concise JSON summary line
"""
from __future__ import annotations

import argparse
import itertools
import json
import logging
import os
import sys
from dataclasses import dataclass
from typing import Iterable, List, Optional, TextIO, Tuple

import chunker
from Calculators.TokenCalculator import TokenCalculator
from token_registry import DEFAULT_CALCULATOR, available_token_calculators, create_token_calculator

DEFAULT_MAX_TOKENS = 512

logger = logging.getLogger("chunk")


@dataclass(frozen=True)
class ChunkerConfig:
    max_chunk_size: int = DEFAULT_MAX_TOKENS
    token_calculator: str = DEFAULT_CALCULATOR
    encoding: Optional[str] = None
    coalesce_comments: bool = False


def _env_value(name: str) -> str:
    return (os.environ.get(name) or "").strip()


def _env_flag(name: str) -> bool:
    return _env_value(name).lower() in {"1", "true", "yes", "on"}


def _resolve_config(args: argparse.Namespace) -> ChunkerConfig:
    """Merge CLI flags over CODE_CHUNKER_* environment variables.

    Raises:
        ValueError: when the token budget is not an integer.
    """
    raw_max = args.max_tokens if args.max_tokens is not None else _env_value("CODE_CHUNKER_MAX_TOKENS")
    try:
        max_chunk_size = int(raw_max) if raw_max not in (None, "") else DEFAULT_MAX_TOKENS
    except ValueError as e:
        raise ValueError(f"CODE_CHUNKER_MAX_TOKENS must be an integer, got {raw_max!r}") from e

    calculator = args.calculator or _env_value("CODE_CHUNKER_CALCULATOR") or DEFAULT_CALCULATOR
    encoding = args.encoding or _env_value("CODE_CHUNKER_ENCODING") or None
    coalesce = bool(args.coalesce_comments) or _env_flag("CODE_CHUNKER_COALESCE_COMMENTS")
    return ChunkerConfig(
        max_chunk_size=max_chunk_size,
        token_calculator=calculator,
        encoding=encoding,
        coalesce_comments=coalesce,
    )


def _process_files(
        paths: Iterable[str],
        cfg: ChunkerConfig,
        calculator: TokenCalculator,
        out: TextIO,
        limit: Optional[int] = None,
) -> Tuple[int, List[str]]:
    """Chunk every path and write each chunk as a JSON line to ``out``.

    Returns:
        (total chunks written, paths that failed). Per-file failures are logged and skipped.
    """
    total = 0
    failed: List[str] = []
    for p in paths:
        logger.info("Processing file: %s", p)
        try:
            chunks = chunker.chunk_file(p, cfg.max_chunk_size, calculator=calculator,
                                        coalesce=cfg.coalesce_comments)
            if limit is not None:
                chunks = itertools.islice(chunks, limit)
            count = 0
            for c in chunks:
                record = {"path": p, "start_line": c.start_line, "end_line": c.end_line, "content": c.content}
                out.write(json.dumps(record, ensure_ascii=False) + "\n")
                count += 1
            logger.debug("File %s produced %d chunks", p, count)
            total += count
        except Exception as e:
            logger.error("Failed processing %s: %s", p, e)
            failed.append(p)
    return total, failed


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint.

    - Parses paths and chunking knobs
    - Builds the token calculator once for the whole run
    - Chunks each file lazily (``--limit`` stops early)
    - Prints JSON lines followed by a JSON summary; exit code 1 if any file failed
    """
    parser = argparse.ArgumentParser(description="Split source files into syntax-aware chunks.")
    parser.add_argument("paths", nargs="+", help="Source files to chunk")
    parser.add_argument("--max-tokens", type=int, help=f"Token budget per chunk (default: {DEFAULT_MAX_TOKENS})")
    parser.add_argument("--calculator", help=f"Token calculator: {', '.join(available_token_calculators())}")
    parser.add_argument("--encoding", help="Encoding or model name for the tiktoken calculator")
    parser.add_argument("--coalesce-comments", action="store_true",
                        help="Merge runs of adjacent comments before chunking.")
    parser.add_argument("--limit", type=int, help="Stop after this many chunks per file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        cfg = _resolve_config(args)
        calculator = create_token_calculator(cfg.token_calculator, encoding=cfg.encoding)
    except ValueError as e:
        parser.error(str(e))
    logger.info("Chunking %d file(s) (max_chunk_size=%d, calculator=%s, coalesce=%s)",
                len(args.paths), cfg.max_chunk_size, cfg.token_calculator, cfg.coalesce_comments)

    total, failed = _process_files(args.paths, cfg, calculator, sys.stdout, limit=args.limit)

    summary = {
        "files": len(args.paths),
        "chunks": total,
        "failed": failed,
        "max_chunk_size": cfg.max_chunk_size,
        "calculator": cfg.token_calculator,
        "encoding": getattr(calculator, "encoding_name", None),
    }
    print(json.dumps({"summary": summary}, ensure_ascii=False))
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
