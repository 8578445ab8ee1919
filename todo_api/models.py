from datetime import datetime, timezone
from enum import Enum

from pydantic import ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import DateTime
from sqlmodel import Column, Field, SQLModel


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"

    @classmethod
    def _missing_(cls, value):
        # Accept "Active", "COMPLETED", ...
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class TaskBase(SQLModel):
    """Base model with shared fields"""

    title: str = Field(default="")
    description: str | None = Field(default=None)
    status: TaskStatus = Field(default=TaskStatus.ACTIVE)


class Task(TaskBase, table=True):
    """Database model"""

    __tablename__ = "tasks"

    id: int | None = Field(default=None, primary_key=True)
    status: TaskStatus = Field(default=TaskStatus.ACTIVE, index=True)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class TaskCreate(TaskBase):
    """Schema for creating a task. Any id or createdAt in the body is ignored."""

    pass


class TaskUpdate(TaskBase):
    """Schema for replacing a task's mutable fields; id must match the path."""

    id: int


class ApiModel(SQLModel):
    """Outbound schemas: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TaskResponse(ApiModel):
    """Schema for task responses"""

    id: int
    title: str
    description: str | None = None
    status: TaskStatus
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Stores without timezone support hand back naive UTC values.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class TaskPage(ApiModel):
    total_items: int
    page: int
    page_size: int
    items: list[TaskResponse] = []


class TaskStats(ApiModel):
    active_count: int
    completed_count: int
