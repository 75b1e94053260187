"""Convenience script for running one link extraction from the command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure the src directory is on the Python path so the linkextractor package can be imported
SRC_PATH = Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from linkextractor.config import load_config  # noqa: E402  (import after path setup)
from linkextractor.services.errors import ExtractionError  # noqa: E402
from linkextractor.services.extractor import extract_links  # noqa: E402
from linkextractor.services.reports import (  # noqa: E402
    articles_to_json,
    domains_to_csv,
    domains_to_json,
    summarize_articles,
    summarize_domains,
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("url", help="Blog or news listing page to start from")
    parser.add_argument(
        "--format",
        choices=("result", "json", "csv", "articles"),
        default="result",
        help="Print the full result (default), the per-domain JSON/CSV export or per-article link counts",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to a JSON config file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the extraction and print the requested representation."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as exc:
        logging.error("Could not load configuration: %s", exc)
        return 1

    try:
        result = extract_links(args.url, config)
    except ExtractionError as exc:
        logging.error("Extraction failed: %s", exc)
        return 1

    if args.format == "result":
        print(json.dumps(result.to_wire(), indent=2, ensure_ascii=False))
        return 0

    if args.format == "articles":
        print(articles_to_json(summarize_articles(result)))
        return 0

    summaries = summarize_domains(result, config.excluded_domains)
    if args.format == "csv":
        print(domains_to_csv(summaries), end="")
    else:
        print(
            domains_to_json(
                summaries,
                result,
                source_url=args.url,
                excluded_domains=config.excluded_domains,
            )
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
