"""Command-line entry point for Legitly."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from .alerts import alert_action, badge_for, notification_message
from .analyzer.models import EnsembleResult
from .config import Config, load_config, validate_config
from .constants import AlertAction
from .errors import ParseError
from .pipeline.analysis import PhishingAnalyzer

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="legitly",
        description="Estimate the phishing risk of one or more URLs.",
    )
    parser.add_argument("urls", nargs="*", help="URLs to analyze (http or https)")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the result cache")
    parser.add_argument("--clear-cache", action="store_true", help="Clear the result cache before analyzing")
    parser.add_argument("--cache-stats", action="store_true", help="Print cache statistics and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def format_result(result: EnsembleResult, config: Config) -> str:
    """Human-readable report for one result."""
    badge = badge_for(result.risk_percentage)
    lines = [
        f"URL: {result.url}",
        f"Risk: {result.risk_percentage}% [{badge.text}]",
        f"Recommendation: {result.recommendation.value}",
        f"Confidence: {result.confidence:.0%}",
    ]
    if result.factors:
        lines.append("Factors:")
        lines.extend(f"  - {factor}" for factor in result.factors)

    action = alert_action(result, config)
    if action is AlertAction.BLOCK:
        lines.append("Action: BLOCK")
    elif action is AlertAction.NOTIFY:
        lines.append(f"Action: NOTIFY ({notification_message(result.url, result)})")
    return "\n".join(lines)


async def run(args: argparse.Namespace, config: Optional[Config] = None) -> int:
    """Analyze every URL given on the command line; returns an exit code."""
    config = config or load_config()

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        return 1

    analyzer = PhishingAnalyzer(config)

    if args.cache_stats:
        print(json.dumps(analyzer.cache.stats(), indent=2))
        return 0
    if args.clear_cache:
        analyzer.cache.clear()
        logger.info("Result cache cleared")
    if not args.urls:
        return 0
    if not config.enabled:
        logger.warning("Legitly is disabled (LEGITLY_ENABLED=false); nothing to do")
        return 0

    exit_code = 0
    results = []
    for url in args.urls:
        try:
            result = await analyzer.analyze(url, use_cache=not args.no_cache)
        except ParseError as e:
            logger.error(f"Cannot analyze {url!r}: {e.message}")
            exit_code = 2
            continue
        results.append(result)
        if not args.json:
            print(format_result(result, config))
            print()

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
    return exit_code


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
