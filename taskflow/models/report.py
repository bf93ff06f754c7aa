"""Report model definitions (JSON-serializable, fully computed)."""
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from taskflow.models.query import ReportFilters, ReportWindow


class EfficiencyBand(str, Enum):
    """Descriptive banding of actual vs estimated hours."""

    UNDER_ESTIMATED = "under_estimated"
    WELL_ESTIMATED = "well_estimated"
    OVER_ESTIMATED = "over_estimated"


class InsightTrend(str, Enum):
    """Qualitative tag on a work-pattern insight."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class WeekTrend(str, Enum):
    """Week-over-week direction of logged hours."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


# Summary report

class DailySummary(BaseModel):
    day: date
    hours: float
    users: int
    projects: int
    share_of_total: float


class ProjectSummary(BaseModel):
    project_id: str
    project_name: str
    total_hours: float
    user_count: int
    task_count: int
    completion_rate: float


class SummaryReport(BaseModel):
    """Per-day and per-project breakdown of logged time."""

    window: ReportWindow
    filters: ReportFilters
    total_hours: float = 0.0
    avg_hours_per_day: float = 0.0
    peak_day: Optional[date] = None
    daily: list[DailySummary] = Field(default_factory=list)
    projects: list[ProjectSummary] = Field(default_factory=list)


# Project report

class ProjectUserBreakdown(BaseModel):
    user_id: str
    user_name: str
    hours: float
    tasks: int
    completed_tasks: int
    completion_rate: float
    estimated_hours: float
    efficiency: float


class ProjectTaskBreakdown(BaseModel):
    task_id: str
    task_name: str
    status: Optional[str] = None
    assigned_user_id: Optional[str] = None
    estimated_hours: float
    actual_hours: float
    efficiency: float


class ProjectRow(BaseModel):
    project_id: str
    name: str
    type: Optional[str] = None
    status: Optional[str] = None
    total_hours: float
    estimated_hours: float
    efficiency: float
    efficiency_band: Optional[EfficiencyBand] = None
    user_count: int
    task_count: int
    completed_tasks: int
    completion_rate: float
    deadline: Optional[date] = None
    is_overdue: bool = False


class ProjectReport(BaseModel):
    """All projects ranked by the requested sort key."""

    window: ReportWindow
    filters: ReportFilters
    sort_by: str
    projects: list[ProjectRow] = Field(default_factory=list)


class ProjectDetail(BaseModel):
    """Drill-down into a single project."""

    window: ReportWindow
    project: ProjectRow
    users: list[ProjectUserBreakdown] = Field(default_factory=list)
    tasks: list[ProjectTaskBreakdown] = Field(default_factory=list)


# User report

class UserWorkPattern(BaseModel):
    peak_day: Optional[date] = None
    peak_hour: Optional[int] = None
    avg_session_length: float = 0.0
    total_sessions: int = 0
    consistency: float = 0.0


class UserProjectBreakdown(BaseModel):
    project_id: str
    project_name: str
    hours: float
    tasks: int
    completed_tasks: int
    estimated_hours: float
    efficiency: float


class UserDailyBreakdown(BaseModel):
    day: date
    hours: float
    projects: int
    tasks: int


class UserRow(BaseModel):
    user_id: str
    name: str
    email: Optional[str] = None
    role: Optional[str] = None
    specialization: Optional[str] = None
    total_hours: float
    avg_hours_per_day: float
    project_count: int
    task_count: int
    completed_tasks: int
    efficiency: float
    productivity: float
    consistency: float
    work_pattern: UserWorkPattern


class UserReport(BaseModel):
    """All users ranked by the requested sort key."""

    window: ReportWindow
    filters: ReportFilters
    sort_by: str
    users: list[UserRow] = Field(default_factory=list)


class UserDetail(BaseModel):
    """Drill-down into a single user."""

    window: ReportWindow
    user: UserRow
    projects: list[UserProjectBreakdown] = Field(default_factory=list)
    daily: list[UserDailyBreakdown] = Field(default_factory=list)


# Work-pattern report

class HourlyPattern(BaseModel):
    hour: int
    total_hours: float
    user_count: int
    avg_hours_per_user: float
    efficiency: float


class DailyPattern(BaseModel):
    day: date
    total_hours: float
    user_count: int
    project_count: int
    avg_hours_per_user: float
    completion_rate: float


class WeekdayPattern(BaseModel):
    weekday: int
    name: str
    total_hours: float
    days_worked: int
    avg_hours_per_day: float
    user_count: int


class WeeklyPattern(BaseModel):
    week_start: date
    total_hours: float
    user_count: int
    trend: WeekTrend


class RankedEntity(BaseModel):
    id: str
    name: str
    hours: float


class TeamMetrics(BaseModel):
    total_hours: float = 0.0
    avg_hours_per_day: float = 0.0
    peak_hour: Optional[int] = None
    peak_day: Optional[date] = None
    most_productive_user: Optional[RankedEntity] = None
    most_productive_project: Optional[RankedEntity] = None
    team_efficiency: float = 0.0
    consistency: float = 0.0


class Insight(BaseModel):
    type: str
    title: str
    description: str
    value: str
    trend: InsightTrend


class WorkPatternReport(BaseModel):
    """Team-wide time-of-day, date, weekday and week patterns."""

    window: ReportWindow
    filters: ReportFilters
    hourly: list[HourlyPattern] = Field(default_factory=list)
    daily: list[DailyPattern] = Field(default_factory=list)
    weekdays: list[WeekdayPattern] = Field(default_factory=list)
    weekly: list[WeeklyPattern] = Field(default_factory=list)
    team: TeamMetrics = Field(default_factory=TeamMetrics)
    insights: list[Insight] = Field(default_factory=list)


# Overview

class OverviewReport(BaseModel):
    """Dashboard headline numbers."""

    window: ReportWindow
    filters: ReportFilters
    total_projects: int = 0
    total_users: int = 0
    total_hours: float = 0.0
    average_hours_per_user: float = 0.0
    completion_rate: float = 0.0
