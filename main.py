"""Car Catalog Extractor -- command-line entry point.

Startup sequence:
    1. Load pipeline configuration (needed for log_dir, db_path, preview_dir)
    2. Setup logging (must happen before any code that logs)
    3. Load remaining configuration (source, gateway)
    4. Open the application session (database, model client, fetcher)
    5. Run the requested sub-command

Sub-commands:
    extract PDF            Extract and store a PDF catalog
    extract-url URL        Extract and store a catalog web page
    list                   List stored catalogs, newest first
    show ID                Show one catalog (generates a missing summary)
    delete ID              Delete a catalog and its previews
    export ID --format F   Print a catalog's records as json or csv
    ask ID QUESTION        Ask a question about a catalog's records
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from carcatalog.config import GatewaySettings, PipelineSettings, SourceSettings
from carcatalog.errors import CatalogError
from carcatalog.export import FilterCriteria, to_csv, to_json
from carcatalog.logging import setup_logging
from carcatalog.pipeline import RUN_STAGES, PipelineResult, ProgressState, Stage
from carcatalog.session import AppSession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="carcatalog",
        description="Extract car specifications from PDF catalogs and web pages.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log debug output to the console"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="extract a PDF catalog")
    extract.add_argument("pdf", type=Path)

    extract_url = sub.add_parser("extract-url", help="extract a catalog web page")
    extract_url.add_argument("url")

    sub.add_parser("list", help="list stored catalogs")

    show = sub.add_parser("show", help="show one catalog")
    show.add_argument("id", type=int)

    delete = sub.add_parser("delete", help="delete a catalog")
    delete.add_argument("id", type=int)

    export = sub.add_parser("export", help="print a catalog's records")
    export.add_argument("id", type=int)
    export.add_argument("--format", choices=("json", "csv"), default="json")
    export.add_argument("--manufacturer")
    export.add_argument("--model-name")
    export.add_argument("--issue-date")
    export.add_argument("--option", help="case-insensitive option keyword")

    ask = sub.add_parser("ask", help="ask about a catalog's records")
    ask.add_argument("id", type=int)
    ask.add_argument("question")

    return parser


def print_progress(state: ProgressState) -> None:
    """Progress listener: one status line per transition."""
    if state.stage is Stage.ERROR:
        print(f"[error] {state.error}", file=sys.stderr)
        return
    if state.stage is Stage.IDLE:
        return
    marks = " ".join(
        f"{stage.value}:{state.status_of(stage)}" for stage in RUN_STAGES
    )
    print(f"[{state.stage.value}] {marks}", file=sys.stderr)


def _report_run(result: PipelineResult) -> int:
    if not result.success:
        return 1
    record = result.record
    print(f"Saved catalog {record.id}: {record.file_name}")
    print(f"  records: {len(record.extracted_data)}")
    print(f"  text: {'yes' if result.text_succeeded else 'failed'}")
    print(f"  summary: {'yes' if result.summary_succeeded else 'none'}")
    for message in result.errors:
        print(f"  warning: {message}")
    return 0


async def run_command(app: AppSession, args: argparse.Namespace) -> int:
    """Execute one sub-command against an open session; return the exit code."""
    if args.command == "extract":
        return _report_run(await app.orchestrator.process_pdf(args.pdf))

    if args.command == "extract-url":
        return _report_run(await app.orchestrator.process_url(args.url))

    if args.command == "list":
        for record in app.refresh():
            print(
                f"{record.id:>5}  {record.created_at:%Y-%m-%d %H:%M}  "
                f"{len(record.extracted_data):>4} records  {record.file_name}"
            )
        return 0

    if args.command == "show":
        record = await app.select(args.id)
        print(f"{record.file_name} (catalog {record.id}, {record.created_at:%Y-%m-%d %H:%M})")
        if record.summary:
            print()
            print(record.summary)
        print()
        for spec in record.extracted_data:
            price = f"{spec.price:,.0f}" if spec.price is not None else "-"
            print(f"  {spec.manufacturer or '-'} {spec.model_name or '-'} {spec.grade or '-'}  {price}")
        return 0

    if args.command == "delete":
        app.delete(args.id)
        print(f"Deleted catalog {args.id}")
        return 0

    if args.command == "export":
        await app.select(args.id, summarize=False)
        criteria = FilterCriteria(
            manufacturer=args.manufacturer,
            model_name=args.model_name,
            issue_date=args.issue_date,
            option=args.option,
        )
        specs = app.filtered_specs(criteria)
        print(to_csv(specs) if args.format == "csv" else to_json(specs))
        return 0

    if args.command == "ask":
        await app.select(args.id, summarize=False)
        if app.context.chat is None:
            print("This catalog has no extracted records to ask about.", file=sys.stderr)
            return 1
        print(await app.ask(args.question))
        return 0

    raise ValueError(f"unknown command {args.command!r}")


async def _run(
    args: argparse.Namespace,
    source: SourceSettings,
    gateway: GatewaySettings,
    pipeline: PipelineSettings,
) -> int:
    async with AppSession.open(source, gateway, pipeline) as app:
        app.context.listeners.append(print_progress)
        try:
            return await run_command(app, args)
        except CatalogError as e:
            logger.error("%s failed (%s): %s", args.command, e.kind.value, e.detail or e.user_message)
            print(e.user_message, file=sys.stderr)
            return 1


def main(argv: list[str] | None = None) -> int:
    """Run the Car Catalog Extractor CLI."""
    args = build_parser().parse_args(argv)

    # 1. Load pipeline config first -- needed for logging and storage paths
    pipeline = PipelineSettings()

    # 2. Setup logging BEFORE anything else logs
    log_path = setup_logging(
        log_dir=pipeline.log_dir,
        console_level="DEBUG" if args.verbose else pipeline.log_level,
        max_bytes=pipeline.log_max_bytes,
        backup_count=pipeline.log_backup_count,
    )

    logger.info("Car Catalog Extractor starting (%s), logging to %s", args.command, log_path)

    # 3. Load remaining configuration
    source = SourceSettings()
    gateway = GatewaySettings()

    # Log non-sensitive config values (never log the API key)
    logger.info(
        "Config loaded -- source: render_scale=%s, max_pages=%s, proxy=%s",
        source.render_scale,
        source.max_pages,
        bool(source.fetch_proxy_url),
    )
    logger.info(
        "Config loaded -- gateway: model=%s, extraction_timeout=%ss, rate_limit_retries=%s",
        gateway.model,
        gateway.extraction_timeout_seconds,
        gateway.rate_limit_retries,
    )
    logger.info(
        "Config loaded -- pipeline: db_path=%s, preview_dir=%s",
        pipeline.db_path,
        pipeline.preview_dir,
    )

    # 4-5. Open the session and run the command
    code = asyncio.run(_run(args, source, gateway, pipeline))
    logger.info("Run complete (exit code %d)", code)
    return code


if __name__ == "__main__":
    sys.exit(main())
