"""Task model definitions."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task states (fixed workflow)."""

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    BLOCKED = "Blocked"
    REVIEW = "Review"


class TaskRef(BaseModel):
    """Task display fields joined onto a work interval."""

    name: str
    status: Optional[TaskStatus] = None
    estimate_hours: Optional[float] = None
    assigned_user_id: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class Task(BaseModel):
    """Task as consumed by analytics."""

    id: str = Field(alias="_id", serialization_alias="id")
    name: str
    project_id: Optional[str] = None
    assigned_user_id: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    estimate_hours: Optional[float] = None

    model_config = {"populate_by_name": True}

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED
