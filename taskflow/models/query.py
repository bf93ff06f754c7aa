"""Report query parameters: windows, filters and sort keys."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TimeRange(str, Enum):
    """Named report windows, all ending at now."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class ReportWindow(BaseModel):
    """Closed time range [start, end] a report covers."""

    start: datetime
    end: datetime

    model_config = {"frozen": True}


class ReportFilters(BaseModel):
    """Optional project/user restriction. None means no restriction."""

    project_id: Optional[str] = None
    user_id: Optional[str] = None

    model_config = {"frozen": True}


class ProjectSortKey(str, Enum):
    """Sort keys for the project report."""

    HOURS = "hours"
    EFFICIENCY = "efficiency"
    COMPLETION = "completion"
    NAME = "name"


class UserSortKey(str, Enum):
    """Sort keys for the user report."""

    HOURS = "hours"
    EFFICIENCY = "efficiency"
    PRODUCTIVITY = "productivity"
    CONSISTENCY = "consistency"
    NAME = "name"
