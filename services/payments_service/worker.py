"""ARQ worker for payments reconciliation."""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def startup(ctx: dict):
    configure_logging()


async def task_reconcile_pending_payments(ctx: dict):
    from services.payments_service.tasks import reconcile_stale_pending_payments

    logger.info("Running: reconcile_stale_pending_payments")
    return await reconcile_stale_pending_payments()


class WorkerSettings:
    redis_settings = get_redis_settings()
    on_startup = startup

    functions = [task_reconcile_pending_payments]

    cron_jobs = [
        cron(
            task_reconcile_pending_payments,
            minute=set(range(0, 60, 5)),
            run_at_startup=True,
        ),
    ]
