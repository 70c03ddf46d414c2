"""
Command line interface for the competitor research pipeline.

Loads API keys from environment variables (via `.env`), builds the pipeline,
and enters an interactive loop: each line is a company id or name to research.
The resulting bundle is printed as JSON.
"""

import argparse
import asyncio
import json
import logging
import os
from typing import List, Optional, Union

from dotenv import load_dotenv

from domain.errors import EntityNotFoundError, InputValidationError
from domain.models import ArticleOptions, ArticleStyle, Locale, ResearchDepth, ResearchOptions
from research.config import ResearchSettings
from research.factory import build_pipeline
from research.pipeline import CachedResearchPipeline, ResearchPipeline

logger = logging.getLogger(__name__)

Pipeline = Union[ResearchPipeline, CachedResearchPipeline]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Research the related companies of a target company.")
    parser.add_argument("keyword", nargs="?", help="Company id or name; omit for an interactive prompt.")
    parser.add_argument("--locale", choices=[locale.value for locale in Locale], default=Locale.JP.value)
    parser.add_argument("--depth", choices=[depth.value for depth in ResearchDepth], default=ResearchDepth.NORMAL.value)
    parser.add_argument("--limit", type=int, default=10, help="Maximum number of related companies to research.")
    parser.add_argument("--environment", action="store_true", help="Include a market environment report.")
    parser.add_argument("--threat", action="store_true", help="Include a competitive threat report.")
    parser.add_argument("--article", action="store_true", help="Also generate a Markdown article.")
    parser.add_argument(
        "--style",
        choices=[style.value for style in ArticleStyle],
        default=ArticleStyle.PROFESSIONAL.value,
    )
    parser.add_argument("--images", action="store_true", help="Ask for image placeholders in the article.")
    parser.add_argument(
        "--revenues",
        action="store_true",
        help="Print the revenue band of each related company instead of researching.",
    )
    return parser.parse_args(argv)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def options_from_args(args: argparse.Namespace) -> ResearchOptions:
    return ResearchOptions(
        locale=Locale(args.locale),
        depth=ResearchDepth(args.depth),
        limit=args.limit,
        include_environment=args.environment,
        include_threat=args.threat,
    )


async def handle(pipeline: Pipeline, keyword: str, args: argparse.Namespace) -> None:
    try:
        logger.info("Processing keyword: %s", keyword)
        options = options_from_args(args)
        if args.revenues:
            ranges = await pipeline.revenue_ranges(keyword)
            print(json.dumps(ranges, ensure_ascii=False, indent=2))
            return
        if args.article:
            article_options = ArticleOptions(
                style=ArticleStyle(args.style),
                include_images=args.images,
                locale=options.locale,
            )
            bundle = await pipeline.write_article(keyword, options, article_options)
        else:
            bundle = await pipeline.research(keyword, options)
        print(bundle.model_dump_json(indent=2))
        logger.info("Research delivered successfully.")
    except (InputValidationError, EntityNotFoundError) as exc:
        logger.warning("%s", exc)
        print(f"{exc}\n")
    except Exception as exc:
        logger.exception("Error while processing keyword: %s", exc)
        print(f"An error occurred: {exc}\n")


async def interactive(pipeline: Pipeline, args: argparse.Namespace) -> None:
    print(
        "\nWelcome to the Competitor Research CLI!\n"
        "Type a company id or name and press Enter.  Type 'quit' to exit.\n"
    )

    while True:
        try:
            keyword = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            logger.info("EOF received; exiting.")
            break

        if not keyword:
            continue
        if keyword.lower() in {"quit", "exit", "q"}:
            logger.info("User requested exit.")
            break
        await handle(pipeline, keyword, args)

    logger.info("Session ended. Goodbye!")
    print("Goodbye!")


def main(argv: Optional[List[str]] = None) -> None:
    """Run the research pipeline once, or in an interactive loop."""
    configure_logging()
    logger.info("Loading environment variables from .env file...")
    load_dotenv()
    args = parse_args(argv)

    try:
        pipeline = build_pipeline(ResearchSettings.from_env())
    except Exception as exc:
        logger.exception("Failed to initialize the research pipeline: %s", exc)
        return

    if args.keyword:
        asyncio.run(handle(pipeline, args.keyword, args))
    else:
        asyncio.run(interactive(pipeline, args))


if __name__ == "__main__":
    main()
