from fastapi import APIRouter

from app.api.v1.endpoints import (
    cron,
    groups,
    notification_preferences,
    notifications,
    plants,
    tasks,
    users,
)

api_router = APIRouter()

api_router.include_router(users.router)
api_router.include_router(plants.router)
api_router.include_router(groups.router)
api_router.include_router(tasks.router)
api_router.include_router(notifications.router)
api_router.include_router(notification_preferences.router)
api_router.include_router(cron.router)
