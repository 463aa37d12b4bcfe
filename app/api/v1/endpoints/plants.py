from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import CurrentUser, get_db
from app.models.plant import Plant
from app.schemas.plant import PlantCreate, PlantRead, PlantUpdate
from app.services.plant_groups import accessible_plants_clause, can_access_plant, can_delete_plant

router = APIRouter(prefix="/plants", tags=["plants"])


async def get_accessible_plant(db: AsyncSession, plant_id: int, user_id: int) -> Plant:
    """Load a plant the user owns or shares through their group; 404 otherwise."""
    plant = await db.scalar(select(Plant).where(Plant.id == plant_id))
    if not plant or not await can_access_plant(db, plant, user_id):
        raise HTTPException(status_code=404, detail="Plant not found")
    return plant


@router.get("", response_model=list[PlantRead])
async def list_plants(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    include_archived: bool = Query(False),
):
    q = select(Plant).where(await accessible_plants_clause(db, current_user.id))
    if not include_archived:
        q = q.where(Plant.is_archived.is_(False))
    result = await db.execute(q.order_by(Plant.name, Plant.id))
    return result.scalars().all()


@router.post("", response_model=PlantRead, status_code=status.HTTP_201_CREATED)
async def create_plant(data: PlantCreate, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    plant = Plant(user_id=current_user.id, **data.model_dump())
    db.add(plant)
    await db.commit()
    await db.refresh(plant)
    return plant


@router.get("/{plant_id}", response_model=PlantRead)
async def get_plant(plant_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    return await get_accessible_plant(db, plant_id, current_user.id)


@router.patch("/{plant_id}", response_model=PlantRead)
async def update_plant(
    plant_id: int,
    data: PlantUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    plant = await get_accessible_plant(db, plant_id, current_user.id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(plant, field, value)
    await db.commit()
    await db.refresh(plant)
    return plant


@router.post("/{plant_id}/archive", response_model=PlantRead)
async def archive_plant(plant_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    plant = await get_accessible_plant(db, plant_id, current_user.id)
    plant.is_archived = True
    await db.commit()
    await db.refresh(plant)
    return plant


@router.post("/{plant_id}/unarchive", response_model=PlantRead)
async def unarchive_plant(plant_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    plant = await get_accessible_plant(db, plant_id, current_user.id)
    plant.is_archived = False
    await db.commit()
    await db.refresh(plant)
    return plant


@router.delete("/{plant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plant(plant_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    # Care tasks and their notifications go with the plant
    plant = await get_accessible_plant(db, plant_id, current_user.id)
    if not await can_delete_plant(db, plant, current_user.id):
        raise HTTPException(status_code=403, detail="Only group admins can delete shared plants")
    await db.delete(plant)
    await db.commit()
