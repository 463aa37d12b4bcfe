from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class PlantCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    species_name: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class PlantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    species_name: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    is_archived: Optional[bool] = None

    @model_validator(mode="after")
    def check_not_null(self) -> "PlantUpdate":
        for name in self.model_fields_set & {"name", "is_archived"}:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class PlantRead(BaseModel):
    id: int
    user_id: int
    plant_group_id: Optional[int]
    name: str
    species_name: Optional[str]
    location: Optional[str]
    notes: Optional[str]
    is_archived: bool
    last_watered_at: Optional[datetime]
    last_fertilized_at: Optional[datetime]
    last_misted_at: Optional[datetime]
    last_repotted_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}
