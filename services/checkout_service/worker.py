"""ARQ worker for checkout reconciliation."""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def startup(ctx: dict):
    configure_logging()


async def task_reconcile_stale_pending_orders(ctx: dict):
    from services.checkout_service.tasks import run_stale_pending_sweep

    logger.info("Running: reconcile_stale_pending_orders")
    await run_stale_pending_sweep()


class WorkerSettings:
    redis_settings = get_redis_settings()

    on_startup = startup

    functions = [
        task_reconcile_stale_pending_orders,
    ]

    cron_jobs = [
        cron(
            task_reconcile_stale_pending_orders,
            minute={0, 10, 20, 30, 40, 50},
            run_at_startup=True,
        ),
    ]
