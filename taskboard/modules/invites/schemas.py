from pydantic import BaseModel, EmailStr
from typing import ClassVar, Optional
from datetime import datetime

from taskboard.modules.accounts.schemas import AccountMembership, UserRole


class AccountInvite(BaseModel):
    table_name: ClassVar[str] = "account_invite"

    id: str
    created_at: datetime
    account_id: str
    invited_by_user_id: Optional[str] = None
    code: str
    email: Optional[str] = None
    role: str = "default"
    expires_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    accepted_by_user_id: Optional[str] = None
    revoked_at: Optional[datetime] = None


class InviteCreate(BaseModel):
    role: UserRole = "default"
    email: Optional[EmailStr] = None
    expires_at: Optional[datetime] = None


class InviteResponse(AccountInvite):
    url: str


class InvitePreview(BaseModel):
    """What an unauthenticated visitor of an invite link can see"""
    code: str
    role: str
    account_name: Optional[str] = None
    invited_by_name: Optional[str] = None
    expires_at: Optional[datetime] = None
    expired: bool = False
    revoked: bool = False
    accepted: bool = False


class AcceptResult(BaseModel):
    invite: AccountInvite
    membership: AccountMembership
    already_accepted: bool = False
