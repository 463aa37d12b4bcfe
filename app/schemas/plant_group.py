from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

GroupRole = Literal["admin", "member"]


class PlantGroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class PlantGroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None

    @model_validator(mode="after")
    def check_not_null(self) -> "PlantGroupUpdate":
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("name cannot be null")
        return self


class PlantGroupRead(BaseModel):
    id: int
    name: str
    description: Optional[str]
    role: GroupRole
    member_count: int
    created_at: datetime


class GroupMemberRead(BaseModel):
    user_id: int
    email: str
    role: GroupRole
    joined_at: datetime


class InvitationCreate(BaseModel):
    email: EmailStr


class InvitationRead(BaseModel):
    id: int
    plant_group_id: int
    email: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
