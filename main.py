"""CLI entrypoint for a Google Trends acquisition run."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from config import get_settings
from models import RunInput
from orchestrator import TrendsPipeline
from storage import JsonlDatasetSink
from utils import ConfigurationError, get_logger, setup_package_logging


EXIT_OK = 0
EXIT_CONFIG_ERROR = 2


def load_run_input(path: str) -> RunInput:
    """读取并校验输入文档，任何问题都转换为 ConfigurationError"""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read input file: {e}", {"path": path}) from e

    try:
        payload = json.loads(raw) if raw.strip() else {}
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Input is not valid JSON: {e}", {"path": path}) from e
    if not isinstance(payload, dict):
        raise ConfigurationError("Input must be a JSON object", {"path": path})

    try:
        return RunInput.model_validate(payload)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid input: {e.error_count()} error(s)", {"errors": str(e)}) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Google Trends search-interest scraper")
    parser.add_argument("--input", required=True, help="Path to the run input JSON document")
    parser.add_argument("--output", default="", help="JSON Lines dataset path (default: TRENDS_OUTPUT_PATH)")
    parser.add_argument("--log-level", default="", help="Logging level (default: LOG_LEVEL)")
    parser.add_argument("--log-file", default="", help="Also write logs to this file (relative paths go under logs/)")
    parser.add_argument(
        "--concurrent-widgets",
        action="store_true",
        help="Fetch the widgets of one item concurrently",
    )
    return parser


async def run(run_input: RunInput, output_path: str, concurrent_widgets: bool = False):
    with JsonlDatasetSink(output_path) as sink:
        pipeline = TrendsPipeline(run_input, sink, concurrent_widgets=concurrent_widgets)
        return await pipeline.run()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_package_logging(
        level=args.log_level or settings.general.log_level,
        log_file=args.log_file or None,
    )
    logger = get_logger()

    try:
        run_input = load_run_input(args.input)
        summary = asyncio.run(
            run(
                run_input,
                args.output or settings.trends.output_path,
                concurrent_widgets=args.concurrent_widgets,
            )
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    print(
        json.dumps(
            {"processed": summary.processed, "emitted": summary.emitted, "skipped": summary.skipped},
            ensure_ascii=False,
        )
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
