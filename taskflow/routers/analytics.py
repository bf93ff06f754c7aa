"""Analytics router - report endpoints for the dashboard UI."""
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Optional, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from taskflow.analytics.windows import window_from_params
from taskflow.config import settings
from taskflow.database import get_database
from taskflow.errors import DataFetchError, InvalidWindowError, SupersededRequestError
from taskflow.models.query import (
    ProjectSortKey,
    ReportFilters,
    ReportWindow,
    TimeRange,
    UserSortKey,
)
from taskflow.models.report import (
    OverviewReport,
    ProjectDetail,
    ProjectReport,
    SummaryReport,
    UserDetail,
    UserReport,
    WorkPatternReport,
)
from taskflow.services.analytics_service import AnalyticsService


router = APIRouter(prefix="/analytics", tags=["analytics"])

T = TypeVar("T")


@dataclass
class ReportQuery:
    """Window, filters and client key shared by every report endpoint."""

    window: ReportWindow
    filters: ReportFilters
    request_key: Optional[str] = None


async def get_report_query(
    time_range: TimeRange = Query(
        TimeRange(settings.default_time_range), description="Named window ending now"
    ),
    start: Optional[datetime] = Query(None, description="Custom window start"),
    end: Optional[datetime] = Query(None, description="Custom window end"),
    project_id: Optional[str] = Query(None, description="Filter by project"),
    user_id: Optional[str] = Query(None, description="Filter by user"),
    x_report_client: Optional[str] = Header(None),
) -> ReportQuery:
    """
    Dependency to resolve report query parameters.

    Raises:
        HTTPException: If the window is invalid (400)
    """
    try:
        window = window_from_params(time_range, start=start, end=end)
    except InvalidWindowError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ReportQuery(
        window=window,
        filters=ReportFilters(project_id=project_id, user_id=user_id),
        request_key=x_report_client,
    )


async def get_analytics_service(
    request: Request,
    db=Depends(get_database),
) -> AnalyticsService:
    """Dependency to build the analytics service for a request."""
    return AnalyticsService(db, gate=getattr(request.app.state, "request_gate", None))


async def _respond(build: Awaitable[T]) -> T:
    """
    Await a report build and map analytics errors to HTTP errors.

    Raises:
        HTTPException: 400 invalid window, 404 unknown drill-down id,
            409 superseded request, 503 data fetch failure
    """
    try:
        return await build
    except InvalidWindowError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SupersededRequestError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except DataFetchError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/summary", response_model=SummaryReport)
async def get_summary(
    query: ReportQuery = Depends(get_report_query),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Time tracking summary.

    - Daily hours ascending by date
    - Project hours descending
    - Total, daily average and peak day
    """
    return await _respond(
        service.summary_report(query.window, query.filters, request_key=query.request_key)
    )


@router.get("/projects", response_model=ProjectReport)
async def get_projects(
    sort_by: ProjectSortKey = Query(ProjectSortKey.HOURS),
    query: ReportQuery = Depends(get_report_query),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Project analytics.

    - One row per project
    - Sort by hours, efficiency, completion (highest first) or name
    """
    return await _respond(
        service.project_report(
            query.window, query.filters, sort_by=sort_by, request_key=query.request_key
        )
    )


# Drill-down path params must not reuse the project_id/user_id filter names.
@router.get("/projects/{detail_project_id}", response_model=ProjectDetail)
async def get_project_detail(
    detail_project_id: str,
    query: ReportQuery = Depends(get_report_query),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Project drill-down with user and task breakdowns.

    - Returns 404 if the project is unknown
    """
    return await _respond(
        service.project_detail(
            query.window, detail_project_id, query.filters, request_key=query.request_key
        )
    )


@router.get("/users", response_model=UserReport)
async def get_users(
    sort_by: UserSortKey = Query(UserSortKey.HOURS),
    query: ReportQuery = Depends(get_report_query),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    User analytics.

    - One row per user with work pattern
    - Sort by hours, efficiency, productivity, consistency (highest first) or name
    """
    return await _respond(
        service.user_report(
            query.window, query.filters, sort_by=sort_by, request_key=query.request_key
        )
    )


@router.get("/users/{detail_user_id}", response_model=UserDetail)
async def get_user_detail(
    detail_user_id: str,
    query: ReportQuery = Depends(get_report_query),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    User drill-down with project and daily breakdowns.

    - Returns 404 if the user is unknown
    """
    return await _respond(
        service.user_detail(
            query.window, detail_user_id, query.filters, request_key=query.request_key
        )
    )


@router.get("/patterns", response_model=WorkPatternReport)
async def get_work_patterns(
    query: ReportQuery = Depends(get_report_query),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Hourly, daily, weekday and weekly work patterns with team insights."""
    return await _respond(
        service.work_pattern_report(query.window, query.filters, request_key=query.request_key)
    )


@router.get("/overview", response_model=OverviewReport)
async def get_overview(
    query: ReportQuery = Depends(get_report_query),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Dashboard headline numbers."""
    return await _respond(
        service.overview_report(query.window, query.filters, request_key=query.request_key)
    )
