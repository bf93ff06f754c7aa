"""Pytest configuration and fixtures."""
import itertools
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from taskflow.main import app
from taskflow.models.project import Project, ProjectRef
from taskflow.models.query import ReportFilters, ReportWindow
from taskflow.models.snapshot import ReportSnapshot
from taskflow.models.task import Task, TaskRef, TaskStatus
from taskflow.models.user import User, UserRef
from taskflow.models.work_log import WorkInterval
from taskflow.routers.analytics import get_analytics_service
from taskflow.services.analytics_service import AnalyticsService
from taskflow.services.request_gate import LatestRequestGate

UTC = timezone.utc


def at(day: int, hour: int, minute: int = 0, month: int = 1, year: int = 2025) -> datetime:
    """UTC timestamp helper."""
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


class FakeDataStore:
    """In-memory data store with optional per-source failures."""

    def __init__(self, intervals=None, tasks=None, projects=None, users=None, failures=None):
        self.intervals = intervals or []
        self.tasks = tasks or []
        self.projects = projects or []
        self.users = users or []
        self.failures = failures or {}
        self.calls = []

    async def _load(self, source, rows):
        self.calls.append(source)
        if source in self.failures:
            raise self.failures[source]
        return list(rows)

    async def list_work_intervals(self, window, filters=None):
        return await self._load("work_logs", self.intervals)

    async def list_tasks(self, project_id=None):
        rows = [t for t in self.tasks if project_id is None or t.project_id == project_id]
        return await self._load("tasks", rows)

    async def list_projects(self):
        return await self._load("projects", self.projects)

    async def list_users(self):
        return await self._load("users", self.users)


@pytest.fixture
def make_interval():
    """Factory for joined work intervals."""
    ids = itertools.count(1)

    def _make(
        start,
        end,
        user_id="u1",
        project_id="p1",
        task_id=None,
        status=None,
        estimate=None,
        user_name=None,
        project_name=None,
        interval_id=None,
    ):
        task = None
        if task_id is not None:
            task = TaskRef(name=f"Task {task_id}", status=status, estimate_hours=estimate)
        return WorkInterval(
            _id=interval_id or f"log-{next(ids)}",
            user_id=user_id,
            project_id=project_id,
            task_id=task_id,
            start_time=start,
            end_time=end,
            user=UserRef(name=user_name) if user_name else None,
            project=ProjectRef(name=project_name) if project_name else None,
            task=task,
        )

    return _make


@pytest.fixture
def window():
    """One week in January 2025."""
    return ReportWindow(start=at(1, 0), end=at(8, 0))


@pytest.fixture
def sample_users():
    return [
        User(_id="u1", name="Alice", email="alice@example.com", role="admin"),
        User(_id="u2", name="Bob", email="bob@example.com"),
        User(_id="u3", name="Carol"),
    ]


@pytest.fixture
def sample_projects():
    return [
        Project(_id="p1", name="Apollo", status="Active", deadline=date(2025, 1, 5)),
        Project(_id="p2", name="Borealis", status="Active", deadline=date(2025, 2, 1)),
        Project(_id="p3", name="Cygnus", status="Planning"),
    ]


@pytest.fixture
def sample_tasks():
    return [
        Task(_id="t1", name="Design", project_id="p1", assigned_user_id="u1",
             status=TaskStatus.COMPLETED, estimate_hours=2),
        Task(_id="t2", name="Build", project_id="p1", assigned_user_id="u2",
             status=TaskStatus.IN_PROGRESS, estimate_hours=3),
        Task(_id="t3", name="Test", project_id="p1", status=TaskStatus.TODO, estimate_hours=5),
        Task(_id="t4", name="Launch", project_id="p2", assigned_user_id="u2",
             status=TaskStatus.COMPLETED, estimate_hours=4),
    ]


@pytest.fixture
def sample_intervals(make_interval):
    """
    Five intervals inside the window plus one straddling its start.

    Alice: 4.5h over Jan 1 and Jan 3. Bob: 4.5h on Jan 2.
    """
    completed = TaskStatus.COMPLETED
    return [
        make_interval(at(1, 9), at(1, 11, 30), "u1", "p1", "t1", completed, 2, interval_id="i1"),
        make_interval(at(1, 14), at(1, 15), "u1", "p1", "t1", completed, 2, interval_id="i2"),
        make_interval(at(2, 9), at(2, 12), "u2", "p1", "t2", TaskStatus.IN_PROGRESS, 3,
                      interval_id="i3"),
        make_interval(at(2, 13), at(2, 14, 30), "u2", "p2", "t4", completed, 4, interval_id="i4"),
        make_interval(at(3, 10), at(3, 11), "u1", "p2", interval_id="i5"),
        make_interval(at(31, 23, month=12, year=2024), at(1, 1), "u1", "p1", "t1", completed, 2,
                      interval_id="i6"),
    ]


@pytest.fixture
def sample_snapshot(window, sample_intervals, sample_tasks, sample_projects, sample_users):
    return ReportSnapshot(
        window=window,
        filters=ReportFilters(),
        intervals=sample_intervals,
        tasks=sample_tasks,
        projects=sample_projects,
        users=sample_users,
        now=window.end,
    )


@pytest.fixture
def fake_store(sample_intervals, sample_tasks, sample_projects, sample_users):
    return FakeDataStore(
        intervals=sample_intervals,
        tasks=sample_tasks,
        projects=sample_projects,
        users=sample_users,
    )


@pytest_asyncio.fixture
async def app_client(fake_store):
    """
    Create a test client backed by the in-memory data store.

    The analytics service dependency is overridden so no MongoDB
    connection is needed.
    """
    gate = LatestRequestGate()
    app.dependency_overrides[get_analytics_service] = lambda: AnalyticsService(
        store=fake_store, gate=gate
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()
