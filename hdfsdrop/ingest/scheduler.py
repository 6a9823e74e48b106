"""Fixed-period driver for the ingestion tick.

A single coroutine runs a tick, then sleeps for whatever is left of the
period. A tick that overruns the period delays the next one; two ticks never
run at the same time.
"""

import asyncio
import logging

from hdfsdrop.ingest.audit import IngestAuditLog
from hdfsdrop.ingest.pipeline import run_tick
from hdfsdrop.integrations.webhdfs import WebHdfsClient
from hdfsdrop.schemas.ingest import IngestConfig

logger = logging.getLogger(__name__)


async def run_forever(
    config: IngestConfig,
    *,
    client: WebHdfsClient,
    audit_log: IngestAuditLog | None = None,
    interval: float | None = None,
    max_ticks: int | None = None,
    stop: asyncio.Event | None = None,
) -> int:
    """Run ticks every ``interval`` seconds until stopped.

    Args:
        interval: Period between tick starts. Defaults to
            ``config.poll_interval_seconds``.
        max_ticks: Stop after this many ticks (None = forever).
        stop: Set this event to end the loop after the current tick.

    Returns:
        Number of ticks run.
    """
    period = interval if interval is not None else config.poll_interval_seconds
    loop = asyncio.get_running_loop()
    ticks = 0

    logger.info("Polling %s every %.0fs", config.pending_dir, period)
    while max_ticks is None or ticks < max_ticks:
        started = loop.time()
        try:
            await run_tick(config, client=client, audit_log=audit_log)
        except Exception:
            logger.exception("Tick failed; will retry on the next poll")
        ticks += 1

        if max_ticks is not None and ticks >= max_ticks:
            break

        remaining = max(0.0, period - (loop.time() - started))
        if remaining == 0.0:
            logger.warning("Tick took longer than the %.0fs poll interval", period)

        if stop is None:
            await asyncio.sleep(remaining)
            continue
        try:
            await asyncio.wait_for(stop.wait(), timeout=remaining)
        except TimeoutError:
            continue
        break

    logger.info("Polling stopped after %d tick(s).", ticks)
    return ticks
