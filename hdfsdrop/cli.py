"""CLI entry point for hdfsdrop.

Commands:
    hdfsdrop run      - poll the pending directory and upload to WebHDFS
    hdfsdrop status   - file counts per working directory and recent outcomes
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from hdfsdrop.config import ConfigError, load_config
from hdfsdrop.ingest.audit import AUDIT_FILE_NAME, IngestAuditLog
from hdfsdrop.integrations.webhdfs import WebHdfsClient
from hdfsdrop.schemas.ingest import IngestConfig, OutcomeKind

logger = logging.getLogger("hdfsdrop")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
LOG_FILE_NAME = "hdfsdrop.log"


def _load_config_or_exit(config_path: str | None) -> IngestConfig:
    """Fail loudly if the configuration is missing or invalid."""
    try:
        return load_config(config_path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def ensure_directories(config: IngestConfig) -> None:
    """Create pending/, success/, error/ and log/ under the base path."""
    for directory in (config.pending_dir, config.success_dir, config.error_dir, config.log_dir):
        directory.mkdir(parents=True, exist_ok=True)


def _setup_file_logging(log_dir: Path) -> logging.Handler:
    handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return handler


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Properties file (default: $HDFSDROP_CONFIG or ./config.properties).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """hdfsdrop: deliver files dropped in a pending directory to WebHDFS."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")
    logger.setLevel(level)
    ctx.obj = {"config_path": config_path}


# ------------------------------------------------------------------
# hdfsdrop run
# ------------------------------------------------------------------


@cli.command()
@click.option("--once", is_flag=True, help="Process the pending directory once and exit.")
@click.option(
    "--interval",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between polls (default: poll.interval from the config).",
)
@click.pass_context
def run(ctx: click.Context, once: bool, interval: float | None) -> None:
    """Poll the pending directory and upload eligible files."""
    config = _load_config_or_exit(ctx.obj["config_path"])

    try:
        ensure_directories(config)
    except OSError as exc:
        click.echo(f"Error: Cannot create working directories under {config.base_path}: {exc}", err=True)
        sys.exit(1)

    try:
        handler = _setup_file_logging(config.log_dir)
    except OSError as exc:
        click.echo(f"Error: Cannot open log file in {config.log_dir}: {exc}", err=True)
        sys.exit(1)

    try:
        logger.info("hdfsdrop started; working directory %s", config.base_path)
        asyncio.run(_run_async(config, once, interval))
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")
    finally:
        logger.removeHandler(handler)
        handler.close()


async def _run_async(config: IngestConfig, once: bool, interval: float | None) -> None:
    from hdfsdrop.ingest.pipeline import run_tick
    from hdfsdrop.ingest.scheduler import run_forever

    audit_log = IngestAuditLog(config.log_dir / AUDIT_FILE_NAME)

    async with WebHdfsClient(config) as client:
        if once:
            click.echo(f"Scanning {config.pending_dir} (once mode)…")
            summary = await run_tick(config, client=client, audit_log=audit_log)
            click.echo(
                f"Done. Files: {summary.total}, "
                f"Uploaded: {summary.count(OutcomeKind.SUCCESS)}, "
                f"Rejected: {summary.count(OutcomeKind.REJECTED)}, "
                f"Failed: {summary.count(OutcomeKind.FAILED)}"
            )
        else:
            click.echo(f"Polling {config.pending_dir} (Ctrl+C to stop)…")
            click.echo(f"  Target: {config.remote_base_url}{config.remote_dir}")
            click.echo(f"  Extensions: {', '.join(sorted(config.accepted_extensions))}")
            await run_forever(config, client=client, audit_log=audit_log, interval=interval)


# ------------------------------------------------------------------
# hdfsdrop status
# ------------------------------------------------------------------


def _count_files(directory: Path) -> int:
    if not directory.is_dir():
        return 0
    return sum(1 for p in directory.iterdir() if p.is_file())


@cli.command()
@click.option("--limit", "-n", default=10, show_default=True, help="Recent outcomes to show.")
@click.pass_context
def status(ctx: click.Context, limit: int) -> None:
    """Show file counts per working directory and recent outcomes."""
    config = _load_config_or_exit(ctx.obj["config_path"])

    click.echo(f"Working directory: {config.base_path}")
    click.echo(f"  Pending: {_count_files(config.pending_dir)}")
    click.echo(f"  Success: {_count_files(config.success_dir)}")
    click.echo(f"  Error:   {_count_files(config.error_dir)}")

    audit_path = config.log_dir / AUDIT_FILE_NAME
    if not audit_path.exists():
        click.echo("No outcomes recorded yet.")
        return

    entries = IngestAuditLog(audit_path).read_entries(limit=limit)
    click.echo(f"\nLast {len(entries)} outcome(s):")
    for entry in entries:
        ts = entry.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        detail = entry.remote_path or entry.message
        click.echo(f"  {ts}  {entry.outcome.value:<8}  {entry.file_name}  {detail}")
