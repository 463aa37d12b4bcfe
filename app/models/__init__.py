from app.models.user import User
from app.models.plant import Plant
from app.models.plant_group import PlantGroup, PlantGroupInvitation, PlantGroupMember
from app.models.care_task import CareTask, TaskCompletion
from app.models.notification import Notification, UserNotificationPreferences
from app.models.logs import PipelineRun

__all__ = [
    "User",
    "Plant",
    "PlantGroup",
    "PlantGroupMember",
    "PlantGroupInvitation",
    "CareTask",
    "TaskCompletion",
    "Notification",
    "UserNotificationPreferences",
    "PipelineRun",
]
