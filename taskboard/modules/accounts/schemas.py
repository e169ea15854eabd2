from pydantic import BaseModel
from typing import ClassVar, Literal, Optional
from datetime import datetime

UserRole = Literal["guest", "default", "manager", "admin"]


class Account(BaseModel):
    table_name: ClassVar[str] = "account"

    id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    name: str
    logo_image_path: Optional[str] = None
    hero_image_path: Optional[str] = None


class AccountMembership(BaseModel):
    table_name: ClassVar[str] = "account_membership"

    id: str
    created_at: datetime
    last_accessed_at: datetime
    user_id: str
    account_id: str
    role: str


class AccountUpdate(BaseModel):
    name: Optional[str] = None
    logo_image_path: Optional[str] = None
    hero_image_path: Optional[str] = None


class AccountResponse(BaseModel):
    id: str
    name: str
    logo_image_path: Optional[str] = None
    hero_image_path: Optional[str] = None
    logo_image_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    user_id: str
    membership_id: str
    name: str
    email: str
    role: str
    profile_image_path: Optional[str] = None
    last_accessed_at: datetime


class MemberRoleUpdate(BaseModel):
    role: UserRole
