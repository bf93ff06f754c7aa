"""Project model definitions."""
from datetime import date, datetime, time, timezone
from typing import Optional

from pydantic import BaseModel, Field


class ProjectRef(BaseModel):
    """Project display fields joined onto a work interval."""

    name: str
    status: Optional[str] = None
    deadline: Optional[date] = None


class Project(BaseModel):
    """Project as consumed by analytics."""

    id: str = Field(alias="_id", serialization_alias="id")
    name: str
    type: Optional[str] = None
    status: Optional[str] = None
    deadline: Optional[date] = None

    model_config = {"populate_by_name": True}

    def is_overdue(self, now: datetime) -> bool:
        """
        Check whether the deadline has passed.

        The deadline is treated as midnight UTC of its date, so a project
        due today is overdue once the day has started.

        Args:
            now: Timezone-aware reference time

        Returns:
            True if a deadline is set and lies before now
        """
        if self.deadline is None:
            return False
        deadline_at = datetime.combine(self.deadline, time.min, tzinfo=timezone.utc)
        return deadline_at < now
