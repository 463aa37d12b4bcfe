"""
ARQ worker — background task definitions.
Run with: python -m app.worker
"""
import logging

from arq import cron
from arq.connections import RedisSettings

from app.core.config import settings
from app.tasks.notifications import send_task_notifications

logger = logging.getLogger(__name__)


def _every(minutes: int) -> set[int]:
    return set(range(0, 60, minutes))


# ── Worker settings ───────────────────────────────────────────────────────────


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    functions = [send_task_notifications]
    cron_jobs = [
        cron(send_task_notifications, minute=_every(settings.NOTIFICATION_CRON_MINUTES)),
    ]
    on_startup = None
    on_shutdown = None


if __name__ == "__main__":
    from arq import run_worker

    logging.basicConfig(level=settings.LOG_LEVEL)
    run_worker(WorkerSettings)
