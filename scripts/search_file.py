#!/usr/bin/env python3
"""Embed the lines of a text file and print the lines closest in meaning to a query. Run from repo root."""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from semantic_find.config import DEFAULT_TOP_K, LOG_LEVEL
from semantic_find.coordinator import EmbeddingCoordinator
from semantic_find.errors import SemanticFindError
from semantic_find.formatter import format_progress, format_results

logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


async def search_file(path: Path, query: str, k: int = DEFAULT_TOP_K) -> str:
    """Return formatted top-k matches for query among the lines of path."""
    text = path.read_text(encoding="utf-8")
    coordinator = EmbeddingCoordinator()
    await coordinator.start()
    try:
        await coordinator.wait_ready()
        lines = await coordinator.generate_embeddings(
            text, on_progress=lambda p: logger.info(format_progress(p))
        )
        results = await coordinator.search(query, k=k)
        return format_results(lines, results, query=query)
    finally:
        await coordinator.close()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path)
    parser.add_argument("query")
    parser.add_argument("-k", type=int, default=DEFAULT_TOP_K, help="number of matches to print")
    args = parser.parse_args()
    if not args.path.exists():
        logger.error("File not found: %s", args.path)
        sys.exit(1)
    try:
        print(asyncio.run(search_file(args.path, args.query, k=args.k)))
    except SemanticFindError as e:
        logger.error("%s: %s", type(e).__name__, e)
        sys.exit(1)


if __name__ == "__main__":
    main()
