"""Work interval model definitions."""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from taskflow.models.project import ProjectRef
from taskflow.models.task import TaskRef
from taskflow.models.user import UserRef


def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC datetime.

    MongoDB returns naive datetimes that are already in UTC.

    Examples:
        >>> as_utc(datetime(2025, 1, 1, 9)).tzinfo is timezone.utc
        True
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class WorkInterval(BaseModel):
    """One logged work session, joined with its task/project/user display fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: Optional[str] = None
    project_id: Optional[str] = None
    task_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    note: str = ""

    user: Optional[UserRef] = None
    project: Optional[ProjectRef] = None
    task: Optional[TaskRef] = None

    model_config = {"populate_by_name": True}

    @property
    def start_utc(self) -> datetime:
        return as_utc(self.start_time)

    @property
    def end_utc(self) -> datetime:
        return as_utc(self.end_time)

    @property
    def duration_hours(self) -> float:
        """Unrounded duration in fractional hours."""
        delta = self.end_utc - self.start_utc
        return delta.total_seconds() / 3600
