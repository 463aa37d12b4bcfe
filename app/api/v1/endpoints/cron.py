import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db
from app.tasks.notifications import process_task_notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


async def _run_notifications(
    db: AsyncSession = Depends(get_db),
    authorization: Optional[str] = Header(None),
) -> JSONResponse:
    # No configured secret disables the check
    if settings.CRON_SECRET and authorization != f"Bearer {settings.CRON_SECRET}":
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    logger.info("cron: starting notification pass")
    start = time.monotonic()
    try:
        result = await process_task_notifications(db)
    except Exception as exc:
        logger.exception("cron: notification pass crashed")
        return JSONResponse(
            {"error": "Internal server error", "message": str(exc)}, status_code=500
        )
    duration = int((time.monotonic() - start) * 1000)

    logger.info(
        "cron: completed in %dms — %d sent, %d errors",
        duration,
        result.notifications_sent,
        len(result.errors),
    )
    return JSONResponse(
        {
            "success": result.success,
            "notificationsSent": result.notifications_sent,
            "errors": result.errors,
            "duration": duration,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


router.add_api_route("/send-notifications", _run_notifications, methods=["GET", "POST"])
