from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

from taskboard.modules.accounts.schemas import Account, AccountMembership
from taskboard.modules.users.schemas import User


class AuthUser(BaseModel):
    """The identity provider's view of a signed-in user"""
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    app_metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_provider(cls, user: Any) -> "AuthUser":
        """Build from a supabase-py (gotrue) User object or a plain dict"""
        if isinstance(user, dict):
            return cls(**user)
        return cls(
            id=user.id,
            email=user.email,
            user_metadata=user.user_metadata or {},
            app_metadata=user.app_metadata or {},
        )


class AuthSession(BaseModel):
    access_token: Optional[str] = None
    user: AuthUser

    @classmethod
    def from_provider(cls, session: Any) -> Optional["AuthSession"]:
        if session is None or getattr(session, "user", None) is None:
            return None
        return cls(
            access_token=getattr(session, "access_token", None),
            user=AuthUser.from_provider(session.user),
        )


class UserInfo(BaseModel):
    """The resolved identity tuple. membership/account are None when the user has none."""
    user: User
    role: Optional[str] = None
    membership: Optional[AccountMembership] = None
    account: Optional[Account] = None


class SessionState(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    GUEST = "resolved-guest"
    USER = "resolved-user"


class IdentityUpdate(BaseModel):
    state: SessionState
    user_info: Optional[UserInfo] = None
    error: Optional[str] = None


class SwitchAccountRequest(BaseModel):
    account_id: str


class AccountSummary(BaseModel):
    account: Account
    membership: AccountMembership
    current: bool = False
