from pydantic import BaseModel, field_validator
from typing import ClassVar, Optional
from datetime import datetime


class User(BaseModel):
    table_name: ClassVar[str] = "user"

    id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    name: str
    email: str
    profile_image_path: Optional[str] = None
    hero_image_path: Optional[str] = None


class UserUpdate(BaseModel):
    name: str
    profile_image_path: Optional[str] = None
    hero_image_path: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    profile_image_path: Optional[str] = None
    hero_image_path: Optional[str] = None
    profile_image_url: Optional[str] = None
    hero_image_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ImageUploadResponse(BaseModel):
    path: str
    url: Optional[str] = None
