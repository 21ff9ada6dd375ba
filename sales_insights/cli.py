"""Command line entry points for the sales analytics toolkit."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Sequence

import pandas as pd
import structlog

from sales_insights.config import AnalysisConfig
from sales_insights.exports import EXPORT_FORMATS, export_results, result_to_payload
from sales_insights.foundation.sales_fact import SalesFact, SalesFactBuilder, fact_to_dict
from sales_insights.pandas.facts import TEXT_COLUMNS, dataframe_to_sales_facts
from sales_insights.runner import ANALYSES, run_all
from sales_insights.synthetic.generator import generate_sales_facts

logger = structlog.get_logger(__name__)


MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Route stdlib and structlog output to stderr so stdout stays machine-readable."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _load_facts(path: Path) -> list[SalesFact]:
    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )

    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype={column: str for column in TEXT_COLUMNS})
        return dataframe_to_sales_facts(df)

    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, list):
        raise ValueError("Expected a list of sales fact rows in the input file")
    return SalesFactBuilder().build(payload)


def _load_config(path: Path | None, reference_date: str | None) -> AnalysisConfig:
    overrides: dict[str, Any] = {}
    if path is not None:
        with path.open("r", encoding="utf-8") as fh:
            overrides.update(json.load(fh))
    if reference_date:
        overrides["reference_date"] = reference_date
    return AnalysisConfig.from_mapping(overrides)


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit structured JSON log lines"
    )


def run_analyses_cli(argv: Sequence[str] | None = None) -> int:
    """Run analyses over a sales fact export and write one result set per analysis.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for invalid input data)
    """
    parser = argparse.ArgumentParser(
        prog="sales-insights run", description="Run sales analyses over a fact export"
    )
    parser.add_argument(
        "input", type=Path, help="Path to JSON (list of rows) or CSV sales fact export"
    )
    parser.add_argument(
        "--analysis",
        dest="analyses",
        action="append",
        choices=sorted(ANALYSES),
        help="Analysis to run; repeat for several (defaults to all).",
    )
    parser.add_argument(
        "--reference-date",
        type=str,
        help="Reference date for recency and lookbacks (ISO format: YYYY-MM-DD). Defaults to today.",
    )
    parser.add_argument(
        "--config", type=Path, help="JSON file with AnalysisConfig overrides"
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for result files. Results are printed as JSON when omitted.",
    )
    parser.add_argument(
        "--format",
        dest="fmt",
        choices=EXPORT_FORMATS,
        default="csv",
        help="Result file format (default: csv)",
    )
    _add_logging_arguments(parser)

    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.json_logs)

    try:
        config = _load_config(args.config, args.reference_date)
        logger.info("loading_facts", path=str(args.input))
        facts = _load_facts(args.input)
        results = run_all(facts, config, names=args.analyses)
    except (ValueError, KeyError, TypeError) as exc:
        logger.error("run_failed", error=str(exc))
        return 1

    if args.output_dir:
        paths = export_results(
            results,
            args.output_dir,
            fmt=args.fmt,
            metadata={"reference_date": config.effective_reference_date.isoformat()},
        )
        logger.info("results_exported", files=[str(p) for p in paths])
    else:  # stdout fallback enables piping in shell usage.
        payload = {name: result_to_payload(result) for name, result in results.items()}
        json.dump(payload, fp=sys.stdout, indent=2, sort_keys=True)
        print()

    return 0


def list_analyses_cli(argv: Sequence[str] | None = None) -> int:
    """Print registered analysis names with their descriptions."""
    parser = argparse.ArgumentParser(
        prog="sales-insights list", description="List available analyses"
    )
    parser.parse_args(argv)
    for name in sorted(ANALYSES):
        print(f"{name}\t{ANALYSES[name].description}")
    return 0


def generate_data_cli(argv: Sequence[str] | None = None) -> int:
    """Write a synthetic sales fact export for demos and testing."""
    parser = argparse.ArgumentParser(
        prog="sales-insights generate", description="Generate synthetic sales facts"
    )
    parser.add_argument("output", type=Path, help="Path for the JSON output file")
    parser.add_argument(
        "--customers", type=int, default=200, help="Number of customers (default: 200)"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--start", type=date.fromisoformat, default=date(2023, 1, 1), help="First order date"
    )
    parser.add_argument(
        "--end", type=date.fromisoformat, default=date(2024, 12, 31), help="Last order date"
    )
    _add_logging_arguments(parser)

    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.json_logs)

    try:
        facts = generate_sales_facts(args.customers, args.start, args.end, seed=args.seed)
    except ValueError as exc:
        logger.error("generate_failed", error=str(exc))
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with args.output.open("w", encoding="utf-8") as fh:
        json.dump([fact_to_dict(fact) for fact in facts], fh, indent=2)
    logger.info("synthetic_facts_written", path=str(args.output), rows=len(facts))
    return 0


COMMANDS = {
    "run": run_analyses_cli,
    "list": list_analyses_cli,
    "generate": generate_data_cli,
}


def main(argv: Sequence[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] not in COMMANDS:
        print(
            f"usage: sales-insights {{{','.join(COMMANDS)}}} ...",
            file=sys.stderr,
        )
        return 2
    return COMMANDS[argv[0]](argv[1:])


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
