#!/usr/bin/env python3
"""
docrag demo application.

Retrieves the parts of a plain-text document relevant to one or more
questions and prints the assembled context the generation step would get.

    python main.py policy.txt "What is covered?" "What is excluded?"
    python main.py policy.txt "What is covered?" --mock --write
"""

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger

from docrag import ContextRetriever, InMemoryEmbeddingCache, MockEmbedder, RetrievalConfig
from docrag.config import load_settings
from docrag.context import filtered_context_path
from docrag.core import document_id_from_content
from docrag.errors import DocRAGError
from docrag.utils.logger import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Document-scoped context retrieval demo")
    parser.add_argument("document", type=Path, help="Plain-text document to query")
    parser.add_argument("questions", nargs="+", help="Question(s) about the document")
    parser.add_argument("--mock", action="store_true", help="Use the offline mock embedder")
    parser.add_argument(
        "--write",
        action="store_true",
        help="Write the context next to the document as <name>_contextfiltered.txt",
    )
    return parser.parse_args(argv)


def build_retriever(mock: bool) -> ContextRetriever:
    settings = load_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    if not mock:
        return ContextRetriever.from_settings(settings)

    config = RetrievalConfig.from_settings(settings)
    # Hashed bag-of-words scores are lower than semantic ones
    config = config.model_copy(
        update={"ranking": config.ranking.model_copy(update={"threshold": 0.1})}
    )
    # Mock vectors must not land in the persistent cache
    return ContextRetriever(MockEmbedder(), InMemoryEmbeddingCache(), config)


async def run(args: argparse.Namespace) -> int:
    text = args.document.read_text(encoding="utf-8")
    document_id = document_id_from_content(text)

    async with build_retriever(args.mock) as retriever:
        result = await retriever.retrieve(document_id, text, args.questions)

        logger.info(
            f"{result.chunk_count} chunks, {len(result.selected)} selected, "
            f"cache_hit={result.cache_hit}"
        )
        for i, scored in enumerate(result.selected, 1):
            preview = scored.text.replace("\n", " ")[:80]
            logger.info(f"[{i}] chunk {scored.index} score={scored.score:.3f}: {preview}...")

        print(result.context)

        if args.write:
            path = filtered_context_path(args.document.stem, args.document.parent)
            retriever.assembler.write(result.context, path)

    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except OSError as e:
        logger.error(f"Cannot read {args.document}: {e}")
        return 1
    except DocRAGError as e:
        logger.error(f"Retrieval failed at stage '{e.stage}': {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
