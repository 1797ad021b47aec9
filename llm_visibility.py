#!/usr/bin/env python3
"""LLM Visibility - brand visibility analysis across LLM providers

Main entry point: loads an analysis configuration, runs every prompt
against the selected providers and writes the results as JSON.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional
import structlog

from visibility import __version__
from visibility.config import load_config
from visibility.exceptions import ConfigurationError
from visibility.export import export_json, report_filename
from visibility.models import Task, TaskStatus
from visibility.orchestrator import run_analysis
from visibility.summary import get_visibility_summary
from visibility.tasks import progress

logger = structlog.get_logger(__name__)


def setup_logging(log_level: str = "INFO"):
    """Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def log_progress(tasks: list[Task]):
    """Progress callback: log overall completion for each snapshot."""
    done = sum(1 for t in tasks if t.status.is_terminal)
    failed = [t for t in tasks if t.status is TaskStatus.ERROR]

    logger.info(
        "analysis_progress",
        done=done,
        total=len(tasks),
        percent=round(progress(tasks) * 100),
        failed=len(failed),
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze brand visibility across LLM providers")
    parser.add_argument("config", help="Path to the analysis configuration JSON file")
    parser.add_argument(
        "--output",
        "-o",
        help="Where to write the JSON results (default: <client>_llm_visibility_report.json)",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for LLM Visibility."""
    args = parse_args(argv)
    setup_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    try:
        config = load_config(args.config)

        logger.info("llm_visibility_starting", version=__version__)
        config.log_configuration()

        # Validate configuration
        problems = config.validate()
        if problems:
            logger.error("configuration_invalid", problems=problems)
            return 1

        results = asyncio.run(run_analysis(config, on_progress=log_progress))

        summary = get_visibility_summary(results, config)
        logger.info("visibility_summary", **summary)

        output = Path(args.output or report_filename(config.client_name))
        export_json(results, config, output)

        logger.info("llm_visibility_finished", output=str(output))
        return 0

    except ConfigurationError as e:
        logger.error("configuration_error", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt_received")
        return 130


if __name__ == "__main__":
    sys.exit(main())
