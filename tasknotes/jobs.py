"""Batch entry points, run outside the request path (cron, k8s CronJob)."""

import asyncio
import logging

from tasknotes.core.config import get_settings
from tasknotes.core.logging import configure_logging
from tasknotes.database import async_session, engine
from tasknotes.services.report_service import ReportService

logger = logging.getLogger(__name__)


async def run_weekly_reports() -> int:
    async with async_session() as session:
        sent = await ReportService(session).send_weekly_reports()
    await engine.dispose()
    return sent


def main() -> None:
    configure_logging(get_settings().log_level)
    sent = asyncio.run(run_weekly_reports())
    logger.info(f"Weekly report run finished ({sent} sent)")
