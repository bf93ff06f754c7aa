"""Caller-owned snapshot of everything one report build reads."""
from datetime import datetime

from pydantic import BaseModel, Field

from taskflow.models.project import Project
from taskflow.models.query import ReportFilters, ReportWindow
from taskflow.models.task import Task
from taskflow.models.user import User
from taskflow.models.work_log import WorkInterval


class ReportSnapshot(BaseModel):
    """
    Fully loaded source data for a single report build.

    Only ever constructed once all four source lists have loaded, so
    builders never see partial data. ``now`` is the reference time for
    overdue checks and normally equals ``window.end``.
    """

    window: ReportWindow
    filters: ReportFilters = Field(default_factory=ReportFilters)
    intervals: list[WorkInterval] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    users: list[User] = Field(default_factory=list)
    now: datetime
