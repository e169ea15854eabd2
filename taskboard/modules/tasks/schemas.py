from pydantic import BaseModel, Field, field_validator
from typing import ClassVar, Literal, Optional
from datetime import datetime

TaskStatus = Literal["active", "completed", "archived"]


class Task(BaseModel):
    table_name: ClassVar[str] = "task"

    id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    account_id: str
    created_by_user_id: Optional[str] = None
    updated_by_user_id: Optional[str] = None
    title: str
    status: TaskStatus = "active"
    description_markdown: str = ""
    completed_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value):
        return value or "active"

    @field_validator("description_markdown", mode="before")
    @classmethod
    def default_description(cls, value):
        return value or ""


class TaskCreate(BaseModel):
    title: str = Field(default="New task", min_length=1)
    description_markdown: str = ""


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description_markdown: Optional[str] = None


class TaskDraft(BaseModel):
    title: Optional[str] = None
    description_markdown: Optional[str] = None
    saved_at: Optional[datetime] = None


class TaskCounts(BaseModel):
    active: int = 0
    completed: int = 0
    archived: int = 0
