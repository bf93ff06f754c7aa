"""Data store - read-only MongoDB queries feeding the analytics engine."""
import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from taskflow.config import settings
from taskflow.errors import DataFetchError
from taskflow.models.project import Project, ProjectRef
from taskflow.models.query import ReportFilters, ReportWindow
from taskflow.models.task import Task, TaskRef
from taskflow.models.user import User, UserRef
from taskflow.models.work_log import WorkInterval

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_date(value):
    """Convert stored datetimes to dates (MongoDB has no date type)."""
    if isinstance(value, datetime):
        return value.date()
    return value


def _lookup(collection: str, local_field: str, as_field: str, projection: dict) -> dict:
    """
    Build a $lookup stage joining on a string reference to ``_id``.

    References are stored as strings while ``_id`` may be an ObjectId, so
    both sides are compared as strings.
    """
    return {
        "$lookup": {
            "from": collection,
            "let": {"ref": f"${local_field}"},
            "pipeline": [
                {"$match": {"$expr": {"$eq": [{"$toString": "$_id"}, "$$ref"]}}},
                {"$project": projection},
            ],
            "as": as_field,
        }
    }


def build_interval_pipeline(window: ReportWindow, filters: ReportFilters) -> list[dict]:
    """
    Aggregation pipeline for the work intervals of a window.

    Only intervals lying entirely inside the window are matched.
    """
    match: dict[str, Any] = {
        "start_time": {"$gte": window.start},
        "end_time": {"$lte": window.end},
    }
    if filters.project_id is not None:
        match["project_id"] = filters.project_id
    if filters.user_id is not None:
        match["user_id"] = filters.user_id

    return [
        {"$match": match},
        {"$sort": {"start_time": 1, "_id": 1}},
        _lookup(
            "tasks",
            "task_id",
            "task",
            {"name": 1, "status": 1, "estimate_hours": 1, "assigned_user_id": 1},
        ),
        _lookup("projects", "project_id", "project", {"name": 1, "status": 1, "deadline": 1}),
        _lookup("users", "user_id", "user", {"name": 1, "role": 1}),
    ]


class AnalyticsDataStore:
    """Read-only queries over work logs, tasks, projects and users."""

    def __init__(self, db, timeout_seconds: Optional[float] = None):
        """Initialize store with database connection."""
        self.db = db
        self.work_logs = db["work_logs"]
        self.tasks = db["tasks"]
        self.projects = db["projects"]
        self.users = db["users"]
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.data_fetch_timeout_seconds
        )

    def _doc_to_interval(self, doc: dict) -> WorkInterval:
        """
        Convert a joined work log document to a WorkInterval model.

        Joined lookups arrive as zero- or one-element lists.
        """
        task_docs = doc.get("task") or []
        project_docs = doc.get("project") or []
        user_docs = doc.get("user") or []

        task = None
        if task_docs:
            task = TaskRef(
                name=task_docs[0]["name"],
                status=task_docs[0].get("status"),
                estimate_hours=task_docs[0].get("estimate_hours"),
                assigned_user_id=task_docs[0].get("assigned_user_id"),
            )
        project = None
        if project_docs:
            project = ProjectRef(
                name=project_docs[0]["name"],
                status=project_docs[0].get("status"),
                deadline=_as_date(project_docs[0].get("deadline")),
            )
        user = None
        if user_docs:
            user = UserRef(name=user_docs[0]["name"], role=user_docs[0].get("role"))

        return WorkInterval(
            _id=str(doc["_id"]),
            user_id=doc.get("user_id"),
            project_id=doc.get("project_id"),
            task_id=doc.get("task_id"),
            start_time=doc["start_time"],
            end_time=doc["end_time"],
            note=doc.get("note") or "",
            user=user,
            project=project,
            task=task,
        )

    def _doc_to_task(self, doc: dict) -> Task:
        """Convert database document to Task model."""
        return Task(
            _id=str(doc["_id"]),
            name=doc["name"],
            project_id=doc.get("project_id"),
            assigned_user_id=doc.get("assigned_user_id"),
            status=doc.get("status") or "To Do",
            estimate_hours=doc.get("estimate_hours"),
        )

    def _doc_to_project(self, doc: dict) -> Project:
        """Convert database document to Project model."""
        return Project(
            _id=str(doc["_id"]),
            name=doc["name"],
            type=doc.get("type"),
            status=doc.get("status"),
            deadline=_as_date(doc.get("deadline")),
        )

    def _doc_to_user(self, doc: dict) -> User:
        """Convert database document to User model."""
        return User(
            _id=str(doc["_id"]),
            name=doc["name"],
            email=doc.get("email"),
            role=doc.get("role") or "user",
            specialization=doc.get("specialization"),
        )

    async def _fetch(
        self,
        source: str,
        query: Callable[[], Awaitable[list[dict]]],
        convert: Callable[[dict], T],
    ) -> list[T]:
        """
        Run a query under the fetch timeout and convert its documents.

        Raises:
            DataFetchError: On driver errors, timeouts or malformed documents
        """
        try:
            docs = await asyncio.wait_for(query(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error("Timed out loading %s after %ss", source, self.timeout_seconds)
            raise DataFetchError(source, f"timed out after {self.timeout_seconds}s") from e
        except PyMongoError as e:
            logger.error("Error loading %s: %s", source, e)
            raise DataFetchError(source, str(e)) from e

        try:
            return [convert(doc) for doc in docs]
        except (KeyError, ValidationError) as e:
            logger.error("Malformed %s document: %s", source, e)
            raise DataFetchError(source, f"malformed document: {e}") from e

    async def list_work_intervals(
        self,
        window: ReportWindow,
        filters: Optional[ReportFilters] = None,
    ) -> list[WorkInterval]:
        """
        List work intervals inside a window, joined with display fields.

        Args:
            window: Report window
            filters: Optional project/user restriction

        Returns:
            Intervals sorted by start time
        """
        pipeline = build_interval_pipeline(window, filters or ReportFilters())
        return await self._fetch(
            "work_logs",
            lambda: self.work_logs.aggregate(pipeline).to_list(length=None),
            self._doc_to_interval,
        )

    async def list_tasks(self, project_id: Optional[str] = None) -> list[Task]:
        """List tasks, optionally restricted to one project."""
        query = {}
        if project_id is not None:
            query["project_id"] = project_id
        return await self._fetch(
            "tasks",
            lambda: self.tasks.find(query).sort("_id", 1).to_list(length=None),
            self._doc_to_task,
        )

    async def list_projects(self) -> list[Project]:
        """List all projects."""
        return await self._fetch(
            "projects",
            lambda: self.projects.find({}).sort("_id", 1).to_list(length=None),
            self._doc_to_project,
        )

    async def list_users(self) -> list[User]:
        """List all users."""
        return await self._fetch(
            "users",
            lambda: self.users.find({}).sort("_id", 1).to_list(length=None),
            self._doc_to_user,
        )
