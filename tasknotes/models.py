from datetime import datetime, timezone
from uuid import uuid4

from pydantic import field_validator
from sqlalchemy import DateTime
from sqlmodel import Column, Field, SQLModel


def get_utc_now():
    """Helper function to get current UTC time with timezone"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_user_id() -> str:
    return str(uuid4())


# Users


class UserBase(SQLModel):
    username: str = Field(min_length=1, max_length=50, index=True, unique=True)
    email: str = Field(min_length=3, max_length=256)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return v.strip().lower()


class User(UserBase, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_user_id, primary_key=True, max_length=36)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class UserCreate(UserBase):
    pass


class UserResponse(UserBase):
    id: str
    created_at: datetime

    model_config = {"from_attributes": True}


# Tasks


class TaskBase(SQLModel):
    """Fields a caller supplies when creating or replacing a task"""

    title: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=500)
    due_date: datetime

    @field_validator("due_date")
    @classmethod
    def due_date_in_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class Task(TaskBase, table=True):
    """Database model"""

    __tablename__ = "tasks"

    id: int | None = Field(default=None, primary_key=True)
    is_completed: bool = Field(default=False)
    due_date: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    owner_id: str = Field(foreign_key="users.id", index=True, max_length=36)


class TaskCreate(TaskBase):
    """Schema for creating a task"""

    pass


class TaskUpdate(TaskBase):
    """Schema for replacing a task's mutable fields"""

    is_completed: bool


class TaskResponse(TaskBase):
    """Schema for task responses"""

    id: int
    is_completed: bool
    created_at: datetime
    owner_id: str

    model_config = {"from_attributes": True}

    @field_validator("created_at")
    @classmethod
    def created_at_in_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


# Notes


class NoteBase(SQLModel):
    title: str = Field(min_length=1, max_length=50)
    content: str = Field(min_length=1, max_length=500)


class Note(NoteBase, table=True):
    __tablename__ = "notes"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=get_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    task_id: int = Field(foreign_key="tasks.id", ondelete="CASCADE", index=True)


class NoteCreate(NoteBase):
    pass


class NoteUpdate(NoteBase):
    pass


class NoteResponse(NoteBase):
    id: int
    created_at: datetime
    task_id: int

    model_config = {"from_attributes": True}

    @field_validator("created_at")
    @classmethod
    def created_at_in_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


# Reports


class ReportTask(TaskResponse):
    notes: list[NoteResponse] = []


class WeeklyReport(SQLModel):
    username: str
    generated_at: datetime
    past_due: list[ReportTask] = []
    upcoming: list[ReportTask] = []
