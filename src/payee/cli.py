"""CLI tool for payee classification."""

import argparse
import asyncio
import json
from dataclasses import asdict
from pathlib import Path

import pandas as pd
import structlog

from payee.classifier import PayeeClassifier
from payee.config import RULESETS, ClassifierConfig
from payee.errors import ExternalServiceError
from payee.lexicon import default_exclusion_keywords
from payee.logging import configure_logging
from payee.similarity import combined_similarity
from payee.types import BatchResult


def _build_config(args: argparse.Namespace) -> ClassifierConfig:
    """Build a ClassifierConfig from CLI args and PAYEE_* env vars."""
    log = structlog.get_logger()
    config = ClassifierConfig.from_env(ClassifierConfig.for_ruleset(args.ruleset))
    if args.offline:
        config.offline_mode = True
    if args.cache:
        config.cache.path = args.cache

    keywords: list[str] = []
    if args.default_exclusions:
        keywords.extend(default_exclusion_keywords())
    keywords.extend(args.exclude or [])
    if keywords:
        config.exclusion.keywords = keywords
        log.info("exclusions_enabled", count=len(keywords))
    return config


def _build_classifier(args: argparse.Namespace) -> PayeeClassifier:
    """Build a PayeeClassifier, wiring up Gemini unless offline."""
    log = structlog.get_logger()
    config = _build_config(args)

    llm_provider = None
    if not config.offline_mode:
        from payee.gemini import GeminiLLMProvider

        try:
            llm_provider = GeminiLLMProvider(model=config.ai.model)
            log.info("gemini_provider_enabled", model=llm_provider.model)
        except ExternalServiceError as e:
            log.warning("gemini_unavailable", error=str(e))

    return PayeeClassifier(config=config, llm_provider=llm_provider)


def cmd_classify(args: argparse.Namespace) -> None:
    classifier = _build_classifier(args)
    result = asyncio.run(classifier.classify(args.name))
    if args.json:
        print(json.dumps(asdict(result), indent=2))
        return
    print(f"{args.name}: {result.classification} ({result.confidence}%) [{result.processing_tier}]")
    print(f"  {result.reasoning}")


def _read_table(path: str) -> pd.DataFrame:
    if Path(path).suffix.lower() in (".xlsx", ".xls"):
        return pd.read_excel(path)
    return pd.read_csv(path)


def _write_table(df: pd.DataFrame, path: str) -> None:
    if Path(path).suffix.lower() in (".xlsx", ".xls"):
        df.to_excel(path, index=False)
    else:
        df.to_csv(path, index=False)


def _results_frame(batch: BatchResult) -> pd.DataFrame:
    rows = []
    for item in batch.results:
        row = dict(item.original_data) if isinstance(item.original_data, dict) else {}
        row.update({
            "payee_name": item.payee_name,
            "classification": item.result.classification,
            "confidence": item.result.confidence,
            "processing_tier": item.result.processing_tier,
            "reasoning": item.result.reasoning,
            "duplicate_of": item.duplicate_of,
        })
        rows.append(row)
    return pd.DataFrame(rows)


def cmd_batch(args: argparse.Namespace) -> None:
    log = structlog.get_logger()
    df = _read_table(args.file)
    if args.column not in df.columns:
        raise SystemExit(f"Column '{args.column}' not found. Available: {', '.join(map(str, df.columns))}")

    names = ["" if pd.isna(v) else str(v) for v in df[args.column].tolist()]
    rows = df.to_dict(orient="records")
    log.info("file_loaded", path=args.file, rows=len(names))

    def on_progress(done: int, total: int, pct: float, meta: dict) -> None:
        log.info("batch_progress", done=done, total=total, pct=round(pct, 1), **meta)

    classifier = _build_classifier(args)
    batch = asyncio.run(classifier.process_batch(names, rows, progress=on_progress))
    out = _results_frame(batch)

    if args.output:
        _write_table(out, args.output)
        print(f"Classified {len(out)} payees -> {args.output}")
    else:
        print(out[["payee_name", "classification", "confidence", "processing_tier"]].to_string(index=False))

    stats = batch.stats
    print()
    print(f"Business: {stats.business_count}, Individual: {stats.individual_count}, Excluded: {stats.excluded_count}")
    print(f"Average confidence: {stats.average_confidence:.1f}%")
    print(f"Duplicates reused: {stats.deduplication_savings}, retries: {stats.retry_count}, AI calls: {stats.ai_calls}")


def cmd_similarity(args: argparse.Namespace) -> None:
    scores = combined_similarity(args.a, args.b)
    for metric, value in asdict(scores).items():
        print(f"{metric:>13}: {value:6.2f}")


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the JSON service."""
    import uvicorn

    from payee.server import create_app

    log = structlog.get_logger()
    log.info("server_start", host=args.host, port=args.port)
    app = create_app(_build_classifier(args))
    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")


def main() -> None:
    # Parent parser with global options (inherited by all subcommands)
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level (default: INFO)",
    )
    parent_parser.add_argument(
        "--offline",
        action="store_true",
        help="Disable the AI tier (local tiers only)",
    )
    parent_parser.add_argument(
        "--exclude",
        action="append",
        metavar="KEYWORD",
        help="Exclusion keyword (repeatable, e.g., --exclude test --exclude sample)",
    )
    parent_parser.add_argument(
        "--default-exclusions",
        action="store_true",
        help="Add the bundled exclusion keyword list",
    )
    parent_parser.add_argument(
        "--cache",
        metavar="PATH",
        help="JSON file to load and save prior classifications",
    )
    parent_parser.add_argument(
        "--ruleset",
        choices=sorted(RULESETS),
        default="enhanced",
        help="Scoring ruleset (default: enhanced)",
    )

    parser = argparse.ArgumentParser(
        description="Payee classification CLI",
        parents=[parent_parser],
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    classify_parser = subparsers.add_parser("classify", parents=[parent_parser], help="Classify one payee name")
    classify_parser.add_argument("name", help="Payee name")
    classify_parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    classify_parser.set_defaults(func=cmd_classify)

    batch_parser = subparsers.add_parser("batch", parents=[parent_parser], help="Classify a CSV or Excel file")
    batch_parser.add_argument("file", help="Input .csv or .xlsx file")
    batch_parser.add_argument("--column", required=True, help="Column holding payee names")
    batch_parser.add_argument("--output", "-o", help="Output .csv or .xlsx file")
    batch_parser.set_defaults(func=cmd_batch)

    similarity_parser = subparsers.add_parser("similarity", parents=[parent_parser], help="Compare two names")
    similarity_parser.add_argument("a")
    similarity_parser.add_argument("b")
    similarity_parser.set_defaults(func=cmd_similarity)

    serve_parser = subparsers.add_parser("serve", parents=[parent_parser], help="Run the JSON API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8765, help="Server port (default: 8765)")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
