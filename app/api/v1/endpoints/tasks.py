from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.plants import get_accessible_plant
from app.core.deps import CurrentUser, get_db
from app.models.care_task import CareTask, TaskCompletion
from app.models.plant import Plant
from app.schemas.care_task import (
    CareTaskAssign,
    CareTaskComplete,
    CareTaskCreate,
    CareTaskRead,
    CareTaskType,
    CareTaskUpdate,
    TaskDefaults,
)
from app.services.plant_groups import accessible_plants_clause, can_access_plant
from app.services.recurrence import RecurrencePattern, as_utc, get_task_defaults, next_due_date

router = APIRouter(prefix="/tasks", tags=["tasks"])

# Plant care-history fields stamped when a task of the given type is completed
CARE_FIELDS_BY_TYPE: dict[str, tuple[str, ...]] = {
    "water": ("last_watered_at",),
    "fertilize": ("last_fertilized_at",),
    "mist": ("last_misted_at",),
    "repot_check": ("last_repotted_at",),
    "water_fertilize": ("last_watered_at", "last_fertilized_at"),
}


async def _get_accessible_task(db: AsyncSession, task_id: int, user_id: int) -> tuple[CareTask, Plant]:
    task = await db.scalar(select(CareTask).where(CareTask.id == task_id))
    if task:
        plant = await db.scalar(select(Plant).where(Plant.id == task.plant_id))
        if plant and await can_access_plant(db, plant, user_id):
            return task, plant
    raise HTTPException(status_code=404, detail="Task not found")


def _pattern(task: CareTask) -> Optional[RecurrencePattern]:
    if not task.is_recurring or not task.recurrence_frequency or not task.recurrence_unit:
        return None
    return RecurrencePattern(frequency=task.recurrence_frequency, unit=task.recurrence_unit)


def _make_recurring(task: CareTask, pattern: RecurrencePattern) -> None:
    task.is_recurring = True
    task.recurrence_frequency = pattern.frequency
    task.recurrence_unit = pattern.unit
    # Reschedule from the last completion, or from creation if never done
    task.next_due_date = next_due_date(as_utc(task.last_completed_at or task.created_at), pattern)


def _clear_recurrence(task: CareTask, due: Optional[datetime]) -> None:
    task.is_recurring = False
    task.recurrence_frequency = None
    task.recurrence_unit = None
    task.next_due_date = due


@router.get("/defaults/{task_type}", response_model=TaskDefaults)
async def task_defaults(task_type: CareTaskType):
    return get_task_defaults(task_type)


@router.get("", response_model=list[CareTaskRead])
async def list_tasks(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    plant_id: Optional[int] = Query(None),
    due_before: Optional[datetime] = Query(None, description="Only tasks due before this timestamp"),
):
    q = (
        select(CareTask)
        .join(Plant, CareTask.plant_id == Plant.id)
        .where(await accessible_plants_clause(db, current_user.id))
    )
    if plant_id:
        q = q.where(CareTask.plant_id == plant_id)
    if due_before:
        q = q.where(CareTask.next_due_date.isnot(None), CareTask.next_due_date < due_before)
    result = await db.execute(q.order_by(CareTask.next_due_date, CareTask.id))
    return result.scalars().all()


@router.get("/assigned", response_model=list[CareTaskRead])
async def list_assigned_tasks(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    group_id: Optional[int] = Query(None, description="Only tasks on this group's plants"),
):
    q = select(CareTask).where(CareTask.assigned_user_id == current_user.id)
    if group_id:
        q = q.join(Plant, CareTask.plant_id == Plant.id).where(Plant.plant_group_id == group_id)
    result = await db.execute(q.order_by(CareTask.next_due_date, CareTask.id))
    return result.scalars().all()


@router.post("", response_model=CareTaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(data: CareTaskCreate, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    await get_accessible_plant(db, data.plant_id, current_user.id)

    task = CareTask(
        plant_id=data.plant_id,
        user_id=current_user.id,
        type=data.type,
        title=data.title,
        description=data.description,
    )
    if data.schedule_mode == "recurring":
        start = data.start_date or datetime.now(timezone.utc)
        task.is_recurring = True
        task.recurrence_frequency = data.recurrence_pattern.frequency
        task.recurrence_unit = data.recurrence_pattern.unit
        task.next_due_date = next_due_date(start, data.recurrence_pattern)
    elif data.schedule_mode == "one-time":
        task.next_due_date = data.specific_due_date

    db.add(task)
    await db.commit()
    await db.refresh(task)
    return task


@router.get("/{task_id}", response_model=CareTaskRead)
async def get_task(task_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    task, _ = await _get_accessible_task(db, task_id, current_user.id)
    return task


@router.patch("/{task_id}", response_model=CareTaskRead)
async def update_task(
    task_id: int,
    data: CareTaskUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    task, _ = await _get_accessible_task(db, task_id, current_user.id)
    update_data = data.model_dump(exclude_unset=True)
    mode = update_data.pop("schedule_mode", None)
    update_data.pop("recurrence_pattern", None)
    update_data.pop("specific_due_date", None)

    if mode == "recurring" or (mode is None and data.recurrence_pattern is not None):
        _make_recurring(task, data.recurrence_pattern)
    elif mode == "one-time":
        _clear_recurrence(task, data.specific_due_date)
    elif mode == "unscheduled":
        _clear_recurrence(task, None)

    for field, value in update_data.items():
        setattr(task, field, value)
    await db.commit()
    await db.refresh(task)
    return task


@router.post("/{task_id}/assign", response_model=CareTaskRead)
async def assign_task(
    task_id: int,
    data: CareTaskAssign,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    task, plant = await _get_accessible_task(db, task_id, current_user.id)
    if data.assigned_user_id is not None and not await can_access_plant(db, plant, data.assigned_user_id):
        raise HTTPException(status_code=400, detail="Assignee cannot access this plant")

    task.assigned_user_id = data.assigned_user_id
    await db.commit()
    await db.refresh(task)
    return task


@router.post("/{task_id}/complete", response_model=CareTaskRead)
async def complete_task(
    task_id: int,
    current_user: CurrentUser,
    data: Optional[CareTaskComplete] = None,
    db: AsyncSession = Depends(get_db),
):
    """Record a completion and advance the schedule.

    Recurring tasks move to their next occurrence; one-time tasks become unscheduled.
    """
    task, plant = await _get_accessible_task(db, task_id, current_user.id)
    completed_at = datetime.now(timezone.utc)

    db.add(
        TaskCompletion(
            task_id=task.id,
            user_id=current_user.id,
            completed_at=completed_at,
            notes=data.notes if data else None,
        )
    )

    for field in CARE_FIELDS_BY_TYPE.get(task.type, ()):
        setattr(plant, field, completed_at)

    pattern = _pattern(task)
    if pattern is not None:
        # Advance from the later of the due date and the completion
        base = completed_at
        if task.next_due_date is not None:
            base = max(as_utc(task.next_due_date), completed_at)
        task.last_completed_at = completed_at
        task.next_due_date = next_due_date(base, pattern)
    else:
        task.last_completed_at = completed_at
        task.next_due_date = None

    await db.commit()
    await db.refresh(task)
    return task


@router.post("/{task_id}/skip", response_model=CareTaskRead)
async def skip_task(
    task_id: int,
    current_user: CurrentUser,
    days: int = Query(1, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    task, _ = await _get_accessible_task(db, task_id, current_user.id)
    if task.next_due_date is None:
        raise HTTPException(status_code=400, detail="Task is not scheduled")

    task.next_due_date = as_utc(task.next_due_date) + timedelta(days=days)
    db.add(TaskCompletion(task_id=task.id, user_id=current_user.id, skipped=True))
    await db.commit()
    await db.refresh(task)
    return task
