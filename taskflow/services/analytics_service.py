"""Analytics service - loads report snapshots and builds reports."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from taskflow.analytics import reports
from taskflow.analytics.windows import validate_window
from taskflow.errors import DataFetchError, SupersededRequestError
from taskflow.models.query import ProjectSortKey, ReportFilters, ReportWindow, UserSortKey
from taskflow.models.report import (
    OverviewReport,
    ProjectDetail,
    ProjectReport,
    SummaryReport,
    UserDetail,
    UserReport,
    WorkPatternReport,
)
from taskflow.models.snapshot import ReportSnapshot
from taskflow.services.data_store import AnalyticsDataStore
from taskflow.services.request_gate import LatestRequestGate

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Service for building analytics reports."""

    def __init__(
        self,
        db=None,
        store: Optional[AnalyticsDataStore] = None,
        gate: Optional[LatestRequestGate] = None,
    ):
        """
        Initialize service with a database connection or a ready data store.

        Args:
            db: MongoDB database (used when no store is given)
            store: Optional data store to read from
            gate: Optional supersede tracker shared across requests
        """
        if store is None:
            if db is None:
                raise ValueError("Either db or store is required")
            store = AnalyticsDataStore(db)
        self.store = store
        self.gate = gate

    async def load_snapshot(
        self,
        window: ReportWindow,
        filters: Optional[ReportFilters] = None,
        request_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReportSnapshot:
        """
        Load all four source lists concurrently and wait for every one.

        Args:
            window: Report window
            filters: Optional project/user restriction
            request_key: Optional client key for supersede tracking
            now: Optional reference time for overdue checks

        Returns:
            Complete snapshot for one report build

        Raises:
            InvalidWindowError: If the window is empty or inverted
            DataFetchError: If any source fails; nothing partial is returned
            SupersededRequestError: If a newer request for request_key began
        """
        validate_window(window)
        filters = filters or ReportFilters()

        token = None
        if self.gate is not None and request_key is not None:
            token = self.gate.begin(request_key)

        try:
            fetches = [
                asyncio.ensure_future(self.store.list_work_intervals(window, filters)),
                asyncio.ensure_future(self.store.list_tasks(filters.project_id)),
                asyncio.ensure_future(self.store.list_projects()),
                asyncio.ensure_future(self.store.list_users()),
            ]
            try:
                intervals, tasks, projects, users = await asyncio.gather(*fetches)
            except BaseException:
                for fetch in fetches:
                    fetch.cancel()
                raise

            if token is not None and not self.gate.is_current(request_key, token):
                logger.info("Discarding superseded report request for %s", request_key)
                raise SupersededRequestError(request_key)
        except DataFetchError as e:
            logger.error("Report data fetch failed: %s", e)
            raise
        finally:
            if token is not None:
                self.gate.finish(request_key, token)

        return ReportSnapshot(
            window=window,
            filters=filters,
            intervals=intervals,
            tasks=tasks,
            projects=projects,
            users=users,
            now=now if now is not None else datetime.now(timezone.utc),
        )

    async def summary_report(
        self,
        window: ReportWindow,
        filters: Optional[ReportFilters] = None,
        request_key: Optional[str] = None,
    ) -> SummaryReport:
        """Build the time tracking summary."""
        snapshot = await self.load_snapshot(window, filters, request_key)
        return reports.build_summary_report(snapshot)

    async def project_report(
        self,
        window: ReportWindow,
        filters: Optional[ReportFilters] = None,
        sort_by: ProjectSortKey = ProjectSortKey.HOURS,
        request_key: Optional[str] = None,
    ) -> ProjectReport:
        """Build the ranked project report."""
        snapshot = await self.load_snapshot(window, filters, request_key)
        return reports.build_project_report(snapshot, sort_by)

    async def project_detail(
        self,
        window: ReportWindow,
        project_id: str,
        filters: Optional[ReportFilters] = None,
        request_key: Optional[str] = None,
    ) -> ProjectDetail:
        """
        Build the drill-down for one project.

        Raises:
            ValueError: If project not found
        """
        snapshot = await self.load_snapshot(window, filters, request_key)
        return reports.build_project_detail(snapshot, project_id)

    async def user_report(
        self,
        window: ReportWindow,
        filters: Optional[ReportFilters] = None,
        sort_by: UserSortKey = UserSortKey.HOURS,
        request_key: Optional[str] = None,
    ) -> UserReport:
        """Build the ranked user report."""
        snapshot = await self.load_snapshot(window, filters, request_key)
        return reports.build_user_report(snapshot, sort_by)

    async def user_detail(
        self,
        window: ReportWindow,
        user_id: str,
        filters: Optional[ReportFilters] = None,
        request_key: Optional[str] = None,
    ) -> UserDetail:
        """
        Build the drill-down for one user.

        Raises:
            ValueError: If user not found
        """
        snapshot = await self.load_snapshot(window, filters, request_key)
        return reports.build_user_detail(snapshot, user_id)

    async def work_pattern_report(
        self,
        window: ReportWindow,
        filters: Optional[ReportFilters] = None,
        request_key: Optional[str] = None,
    ) -> WorkPatternReport:
        """Build the team work-pattern report."""
        snapshot = await self.load_snapshot(window, filters, request_key)
        return reports.build_work_pattern_report(snapshot)

    async def overview_report(
        self,
        window: ReportWindow,
        filters: Optional[ReportFilters] = None,
        request_key: Optional[str] = None,
    ) -> OverviewReport:
        """Build the dashboard overview."""
        snapshot = await self.load_snapshot(window, filters, request_key)
        return reports.build_overview_report(snapshot)
