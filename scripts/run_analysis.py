#!/usr/bin/env python3
"""
Run a character analysis from the command line.

Examples:
    # Analyze a local text file with the default provider
    python scripts/run_analysis.py --file hamlet.txt --title Hamlet --author Shakespeare

    # Fetch a Gutenberg book by id and store the result in Weaviate
    python scripts/run_analysis.py --book-id 1524 --provider openai --store weaviate
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from book_analysis.database.config import StoreBackend
from book_analysis.database.factory import create_analysis_repository
from book_analysis.llm import LLMConfig, LLMError, create_llm_provider
from book_analysis.llm.config import SUPPORTED_PROVIDERS
from book_analysis.services import AnalysisOptions, AnalysisService, BookSourceService
from book_analysis.services.exceptions import AnalysisError, AnalysisPersistenceError
from book_analysis.text_processing.text_processing import normalize_text

# Set up logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract characters, relationships and interactions from a novel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", type=Path, help="Local plain-text file to analyze")
    source.add_argument("--book-id", help="Project Gutenberg book id to fetch")

    parser.add_argument("--title", help="Book title (required with --file)")
    parser.add_argument("--author", help="Book author (required with --file)")
    parser.add_argument(
        "--provider",
        choices=sorted(SUPPORTED_PROVIDERS),
        help="LLM provider (default: LLM_PROVIDER or groq)",
    )
    parser.add_argument("--chunk-size", type=int, help="Maximum characters per chunk")
    parser.add_argument(
        "--delay", type=int, help="Pause between chunk requests in milliseconds"
    )
    parser.add_argument(
        "--override-cache",
        action="store_true",
        help="Re-run even if a stored analysis exists",
    )
    parser.add_argument(
        "--store",
        choices=["none", *(backend.value for backend in StoreBackend)],
        default="none",
        help="Where to persist the result (default: none)",
    )
    parser.add_argument("--output", type=Path, help="Write the result JSON here")
    args = parser.parse_args()

    if args.file and not (args.title and args.author):
        parser.error("--file requires --title and --author")
    if args.file and args.store != "none":
        parser.error("--store is only supported with --book-id")
    return args


async def main() -> int:
    args = parse_args()

    try:
        llm = create_llm_provider(LLMConfig.from_environment(args.provider))
    except LLMError as e:
        logger.error(f"Cannot create LLM client: {e}")
        return 2

    repository = (
        None if args.store == "none" else create_analysis_repository(StoreBackend(args.store))
    )
    service = AnalysisService(llm, repository=repository)
    options = AnalysisOptions(
        provider=args.provider,
        chunk_size=args.chunk_size,
        delay_between_chunks=args.delay,
        override_cache=args.override_cache,
    )

    try:
        if args.file:
            content = normalize_text(args.file.read_text(encoding="utf-8"))
            result = await service.analyze_book(content, args.title, args.author, options)
        else:
            result = await service.analyze_book_by_id(
                args.book_id,
                BookSourceService(),
                options,
                title=args.title,
                author=args.author,
            )
    except AnalysisPersistenceError as e:
        logger.error(f"Analysis finished but was not saved: {e}")
        result = e.result
    except (AnalysisError, LLMError) as e:
        logger.error(f"Analysis failed: {e}")
        return 1
    finally:
        if repository is not None:
            repository.close()

    output = json.dumps(result.to_document(), indent=2, ensure_ascii=False)
    if args.output:
        args.output.write_text(output, encoding="utf-8")
        logger.info(f"Wrote analysis to {args.output}")
    else:
        print(output)

    meta = result.meta
    logger.info(
        f"✅ {meta.character_count} characters, {meta.relationship_count} relationships, "
        f"{meta.interactions_count} interactions from {meta.chunks_processed} chunks"
    )
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
