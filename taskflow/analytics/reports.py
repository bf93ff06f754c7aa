"""Report builders.

Each builder takes a fully loaded ``ReportSnapshot``, aggregates its
intervals and returns a display-ready report model. Hours and percentages
are rounded to two decimals here and nowhere earlier. Every ranking has an
explicit tie-break (name, then id) so output never depends on input order.
"""
import calendar
import logging
from typing import Optional

from taskflow.analytics import metrics
from taskflow.analytics.aggregator import Aggregation, TaskTally, aggregate
from taskflow.models.project import Project
from taskflow.models.query import ProjectSortKey, UserSortKey
from taskflow.models.report import (
    DailyPattern,
    DailySummary,
    HourlyPattern,
    Insight,
    InsightTrend,
    OverviewReport,
    ProjectDetail,
    ProjectReport,
    ProjectRow,
    ProjectSummary,
    ProjectTaskBreakdown,
    ProjectUserBreakdown,
    RankedEntity,
    SummaryReport,
    TeamMetrics,
    UserDailyBreakdown,
    UserDetail,
    UserProjectBreakdown,
    UserReport,
    UserRow,
    UserWorkPattern,
    WeekTrend,
    WeekdayPattern,
    WeeklyPattern,
    WorkPatternReport,
)
from taskflow.models.snapshot import ReportSnapshot
from taskflow.models.task import TaskRef
from taskflow.models.user import User

logger = logging.getLogger(__name__)

UNKNOWN_PROJECT = "Unknown Project"
UNKNOWN_USER = "Unknown User"
UNKNOWN_TASK = "Unknown Task"

r2 = metrics.round2


class _Directory:
    """Name and metadata lookups for one snapshot."""

    def __init__(self, snapshot: ReportSnapshot, aggregation: Aggregation):
        self.projects = {project.id: project for project in snapshot.projects}
        self.users = {user.id: user for user in snapshot.users}
        self.tasks = {task.id: task for task in snapshot.tasks}
        self.aggregation = aggregation

        # Joined display fields, first interval wins (intervals are sorted).
        self.task_refs: dict[str, TaskRef] = {}
        for interval in aggregation.intervals:
            if interval.task_id is not None and interval.task is not None:
                self.task_refs.setdefault(interval.task_id, interval.task)

    def project_name(self, project_id: str) -> str:
        project = self.projects.get(project_id)
        if project is not None:
            return project.name
        accumulator = self.aggregation.projects.get(project_id)
        if accumulator is not None and accumulator.name:
            return accumulator.name
        return UNKNOWN_PROJECT

    def user_name(self, user_id: str) -> str:
        user = self.users.get(user_id)
        if user is not None:
            return user.name
        accumulator = self.aggregation.users.get(user_id)
        if accumulator is not None and accumulator.name:
            return accumulator.name
        return UNKNOWN_USER

    def task_name(self, task_id: str) -> str:
        task = self.tasks.get(task_id)
        if task is not None:
            return task.name
        ref = self.task_refs.get(task_id)
        return ref.name if ref is not None else UNKNOWN_TASK


def _aggregate(snapshot: ReportSnapshot) -> Aggregation:
    result = aggregate(snapshot.intervals, snapshot.window, snapshot.filters)
    logger.debug(
        "Aggregated %d of %d intervals", len(result.intervals), len(snapshot.intervals)
    )
    return result


def _visible_projects(snapshot: ReportSnapshot) -> list[Project]:
    project_id = snapshot.filters.project_id
    if project_id is None:
        return list(snapshot.projects)
    return [project for project in snapshot.projects if project.id == project_id]


def _visible_users(snapshot: ReportSnapshot) -> list[User]:
    user_id = snapshot.filters.user_id
    if user_id is None:
        return list(snapshot.users)
    return [user for user in snapshot.users if user.id == user_id]


def _estimate(hours: Optional[float]) -> float:
    """Task estimate, 0 when unset or not positive."""
    if hours is None or hours <= 0:
        return 0.0
    return hours


def _name_key(name: str, entity_id: str):
    return (name.casefold(), name, entity_id)


# Summary

def build_summary_report(snapshot: ReportSnapshot) -> SummaryReport:
    """Per-day and per-project breakdown with total, daily average and peak day."""
    aggregation = _aggregate(snapshot)
    directory = _Directory(snapshot, aggregation)
    total_hours = aggregation.total_hours

    daily = [
        DailySummary(
            day=day,
            hours=r2(bucket.total_hours),
            users=len(bucket.user_ids),
            projects=len(bucket.project_ids),
            share_of_total=r2(metrics.safe_divide(bucket.total_hours, total_hours) * 100),
        )
        for day, bucket in sorted(aggregation.days.items())
    ]

    projects = [
        ProjectSummary(
            project_id=project_id,
            project_name=directory.project_name(project_id),
            total_hours=r2(accumulator.total_hours),
            user_count=len(accumulator.user_ids),
            task_count=accumulator.tasks.task_count,
            completion_rate=r2(
                metrics.completion_rate(
                    accumulator.tasks.completed_count, accumulator.tasks.task_count
                )
            ),
        )
        for project_id, accumulator in aggregation.projects.items()
    ]
    projects.sort(key=lambda row: _name_key(row.project_name, row.project_id))
    projects.sort(key=lambda row: row.total_hours, reverse=True)

    return SummaryReport(
        window=snapshot.window,
        filters=snapshot.filters,
        total_hours=r2(total_hours),
        avg_hours_per_day=r2(metrics.safe_divide(total_hours, len(aggregation.days))),
        peak_day=metrics.peak_key(aggregation.daily_hours),
        daily=daily,
        projects=projects,
    )


# Projects

def _project_tasks(
    project_id: str,
    snapshot: ReportSnapshot,
    aggregation: Aggregation,
) -> TaskTally:
    """Catalogue tasks of a project, plus any task only seen in its intervals."""
    tally = TaskTally()
    for task in snapshot.tasks:
        if task.project_id != project_id:
            continue
        tally.task_ids.add(task.id)
        if task.is_completed:
            tally.completed_task_ids.add(task.id)
        if task.estimate_hours is not None and task.estimate_hours > 0:
            tally.estimates[task.id] = task.estimate_hours

    accumulator = aggregation.projects.get(project_id)
    if accumulator is not None:
        for task_id in accumulator.tasks.task_ids - tally.task_ids:
            tally.task_ids.add(task_id)
            if task_id in accumulator.tasks.completed_task_ids:
                tally.completed_task_ids.add(task_id)
            if task_id in accumulator.tasks.estimates:
                tally.estimates[task_id] = accumulator.tasks.estimates[task_id]
    return tally


def _project_row(
    project_id: str,
    snapshot: ReportSnapshot,
    aggregation: Aggregation,
    directory: _Directory,
) -> ProjectRow:
    project = directory.projects.get(project_id)
    accumulator = aggregation.projects.get(project_id)
    total_hours = accumulator.total_hours if accumulator is not None else 0.0
    user_count = len(accumulator.user_ids) if accumulator is not None else 0

    tasks = _project_tasks(project_id, snapshot, aggregation)
    estimated_hours = tasks.estimated_hours
    efficiency = metrics.efficiency(total_hours, estimated_hours)

    return ProjectRow(
        project_id=project_id,
        name=directory.project_name(project_id),
        type=project.type if project is not None else None,
        status=project.status if project is not None else None,
        total_hours=r2(total_hours),
        estimated_hours=r2(estimated_hours),
        efficiency=r2(efficiency),
        # Band the reported (rounded) value.
        efficiency_band=metrics.efficiency_band(r2(efficiency)) if estimated_hours > 0 else None,
        user_count=user_count,
        task_count=tasks.task_count,
        completed_tasks=tasks.completed_count,
        completion_rate=r2(metrics.completion_rate(tasks.completed_count, tasks.task_count)),
        deadline=project.deadline if project is not None else None,
        is_overdue=project.is_overdue(snapshot.now) if project is not None else False,
    )


_PROJECT_SORT_VALUES = {
    ProjectSortKey.HOURS: lambda row: row.total_hours,
    ProjectSortKey.EFFICIENCY: lambda row: row.efficiency,
    ProjectSortKey.COMPLETION: lambda row: row.completion_rate,
}


def sort_project_rows(rows: list[ProjectRow], sort_by: ProjectSortKey) -> list[ProjectRow]:
    """Name ascending, or the numeric key descending with name/id tie-break."""
    ordered = sorted(rows, key=lambda row: _name_key(row.name, row.project_id))
    if sort_by == ProjectSortKey.NAME:
        return ordered
    return sorted(ordered, key=_PROJECT_SORT_VALUES[sort_by], reverse=True)


def _project_ids(snapshot: ReportSnapshot, aggregation: Aggregation) -> list[str]:
    ids = {project.id for project in _visible_projects(snapshot)}
    ids.update(aggregation.projects)
    return sorted(ids)


def build_project_report(
    snapshot: ReportSnapshot,
    sort_by: ProjectSortKey = ProjectSortKey.HOURS,
) -> ProjectReport:
    """One row per project, ranked by the sort key."""
    aggregation = _aggregate(snapshot)
    directory = _Directory(snapshot, aggregation)
    rows = [
        _project_row(project_id, snapshot, aggregation, directory)
        for project_id in _project_ids(snapshot, aggregation)
    ]
    return ProjectReport(
        window=snapshot.window,
        filters=snapshot.filters,
        sort_by=sort_by.value,
        projects=sort_project_rows(rows, sort_by),
    )


def build_project_detail(snapshot: ReportSnapshot, project_id: str) -> ProjectDetail:
    """
    Drill down into one project's per-user and per-task breakdown.

    Raises:
        ValueError: If the project is neither in the catalogue nor in the window
    """
    aggregation = _aggregate(snapshot)
    directory = _Directory(snapshot, aggregation)
    if project_id not in directory.projects and project_id not in aggregation.projects:
        raise ValueError("Project not found")

    row = _project_row(project_id, snapshot, aggregation, directory)
    accumulator = aggregation.projects.get(project_id)
    users: list[ProjectUserBreakdown] = []
    tasks: list[ProjectTaskBreakdown] = []

    if accumulator is not None:
        for user_id, project_user in accumulator.users.items():
            estimated = project_user.tasks.estimated_hours
            users.append(
                ProjectUserBreakdown(
                    user_id=user_id,
                    user_name=directory.user_name(user_id),
                    hours=r2(project_user.hours),
                    tasks=project_user.tasks.task_count,
                    completed_tasks=project_user.tasks.completed_count,
                    completion_rate=r2(
                        metrics.completion_rate(
                            project_user.tasks.completed_count, project_user.tasks.task_count
                        )
                    ),
                    estimated_hours=r2(estimated),
                    efficiency=r2(metrics.efficiency(project_user.hours, estimated)),
                )
            )

        for task_id, actual in accumulator.task_hours.items():
            task = directory.tasks.get(task_id)
            ref = directory.task_refs.get(task_id)
            if task is not None:
                status = task.status.value
                assigned = task.assigned_user_id
                estimate = _estimate(task.estimate_hours)
            elif ref is not None:
                status = ref.status.value if ref.status is not None else None
                assigned = ref.assigned_user_id
                estimate = _estimate(ref.estimate_hours)
            else:
                status = None
                assigned = None
                estimate = 0.0
            tasks.append(
                ProjectTaskBreakdown(
                    task_id=task_id,
                    task_name=directory.task_name(task_id),
                    status=status,
                    assigned_user_id=assigned,
                    estimated_hours=r2(estimate),
                    actual_hours=r2(actual),
                    efficiency=r2(metrics.efficiency(actual, estimate)),
                )
            )

    users.sort(key=lambda item: _name_key(item.user_name, item.user_id))
    users.sort(key=lambda item: item.hours, reverse=True)
    tasks.sort(key=lambda item: _name_key(item.task_name, item.task_id))
    tasks.sort(key=lambda item: item.actual_hours, reverse=True)

    return ProjectDetail(window=snapshot.window, project=row, users=users, tasks=tasks)


# Users

def _user_row(user_id: str, aggregation: Aggregation, directory: _Directory) -> UserRow:
    user = directory.users.get(user_id)
    accumulator = aggregation.users.get(user_id)

    if accumulator is None:
        total_hours = 0.0
        days = 0
        project_count = 0
        tasks = TaskTally()
        daily_hours = {}
        hourly_hours = {}
        sessions = 0
    else:
        total_hours = accumulator.total_hours
        days = len(accumulator.daily)
        project_count = len(accumulator.projects)
        tasks = accumulator.tasks
        daily_hours = accumulator.daily_hours
        hourly_hours = dict(accumulator.hourly_hours)
        sessions = accumulator.session_count

    consistency = metrics.consistency(daily_hours[day] for day in sorted(daily_hours))

    return UserRow(
        user_id=user_id,
        name=directory.user_name(user_id),
        email=user.email if user is not None else None,
        role=user.role.value if user is not None else None,
        specialization=user.specialization if user is not None else None,
        total_hours=r2(total_hours),
        avg_hours_per_day=r2(metrics.safe_divide(total_hours, days)),
        project_count=project_count,
        task_count=tasks.task_count,
        completed_tasks=tasks.completed_count,
        efficiency=r2(metrics.efficiency(total_hours, tasks.estimated_hours)),
        productivity=r2(metrics.productivity(tasks.completed_count, total_hours)),
        consistency=r2(consistency),
        work_pattern=UserWorkPattern(
            peak_day=metrics.peak_key(daily_hours),
            peak_hour=metrics.peak_key(hourly_hours),
            avg_session_length=r2(metrics.safe_divide(total_hours, sessions)),
            total_sessions=sessions,
            consistency=r2(consistency),
        ),
    )


_USER_SORT_VALUES = {
    UserSortKey.HOURS: lambda row: row.total_hours,
    UserSortKey.EFFICIENCY: lambda row: row.efficiency,
    UserSortKey.PRODUCTIVITY: lambda row: row.productivity,
    UserSortKey.CONSISTENCY: lambda row: row.consistency,
}


def sort_user_rows(rows: list[UserRow], sort_by: UserSortKey) -> list[UserRow]:
    """Name ascending, or the numeric key descending with name/id tie-break."""
    ordered = sorted(rows, key=lambda row: _name_key(row.name, row.user_id))
    if sort_by == UserSortKey.NAME:
        return ordered
    return sorted(ordered, key=_USER_SORT_VALUES[sort_by], reverse=True)


def build_user_report(
    snapshot: ReportSnapshot,
    sort_by: UserSortKey = UserSortKey.HOURS,
) -> UserReport:
    """One row per user, ranked by the sort key."""
    aggregation = _aggregate(snapshot)
    directory = _Directory(snapshot, aggregation)

    user_ids = {user.id for user in _visible_users(snapshot)}
    user_ids.update(aggregation.users)
    rows = [_user_row(user_id, aggregation, directory) for user_id in sorted(user_ids)]

    return UserReport(
        window=snapshot.window,
        filters=snapshot.filters,
        sort_by=sort_by.value,
        users=sort_user_rows(rows, sort_by),
    )


def build_user_detail(snapshot: ReportSnapshot, user_id: str) -> UserDetail:
    """
    Drill down into one user's per-project and per-day breakdown.

    Raises:
        ValueError: If the user is neither in the catalogue nor in the window
    """
    aggregation = _aggregate(snapshot)
    directory = _Directory(snapshot, aggregation)
    if user_id not in directory.users and user_id not in aggregation.users:
        raise ValueError("User not found")

    row = _user_row(user_id, aggregation, directory)
    accumulator = aggregation.users.get(user_id)
    projects: list[UserProjectBreakdown] = []
    daily: list[UserDailyBreakdown] = []

    if accumulator is not None:
        for project_id, user_project in accumulator.projects.items():
            estimated = user_project.tasks.estimated_hours
            projects.append(
                UserProjectBreakdown(
                    project_id=project_id,
                    project_name=directory.project_name(project_id),
                    hours=r2(user_project.hours),
                    tasks=user_project.tasks.task_count,
                    completed_tasks=user_project.tasks.completed_count,
                    estimated_hours=r2(estimated),
                    efficiency=r2(metrics.efficiency(user_project.hours, estimated)),
                )
            )
        daily = [
            UserDailyBreakdown(
                day=day,
                hours=r2(user_day.hours),
                projects=len(user_day.project_ids),
                tasks=len(user_day.task_ids),
            )
            for day, user_day in sorted(accumulator.daily.items())
        ]

    projects.sort(key=lambda item: _name_key(item.project_name, item.project_id))
    projects.sort(key=lambda item: item.hours, reverse=True)

    return UserDetail(window=snapshot.window, user=row, projects=projects, daily=daily)


# Work patterns

def _week_trend(hours: float, previous: Optional[float]) -> WeekTrend:
    if previous is None or hours == previous:
        return WeekTrend.STABLE
    return WeekTrend.UP if hours > previous else WeekTrend.DOWN


def _top_entity(hours_by_id: dict[str, float], name_of) -> Optional[RankedEntity]:
    """Entity with the most hours, ties broken by name then id."""
    if not hours_by_id:
        return None
    ranked = sorted(hours_by_id, key=lambda entity_id: _name_key(name_of(entity_id), entity_id))
    best = max(ranked, key=lambda entity_id: hours_by_id[entity_id])
    return RankedEntity(id=best, name=name_of(best), hours=r2(hours_by_id[best]))


def _insights(team: TeamMetrics, peak_hour_hours: float, peak_day_hours: float) -> list[Insight]:
    has_peak_hour = team.peak_hour is not None
    has_peak_day = team.peak_day is not None
    return [
        Insight(
            type="peak_hour",
            title="Peak Productivity Hour",
            description=(
                f"Team is most productive at {team.peak_hour}:00"
                if has_peak_hour
                else "No time logged in this period"
            ),
            value=f"{r2(peak_hour_hours)}h logged",
            trend=InsightTrend.POSITIVE if has_peak_hour else InsightTrend.NEUTRAL,
        ),
        Insight(
            type="peak_day",
            title="Most Productive Day",
            description=(
                f"Team works most on {team.peak_day.isoformat()}"
                if has_peak_day
                else "No time logged in this period"
            ),
            value=f"{r2(peak_day_hours)}h logged",
            trend=InsightTrend.POSITIVE if has_peak_day else InsightTrend.NEUTRAL,
        ),
        Insight(
            type="efficiency",
            title="Team Efficiency",
            description="Overall team efficiency vs estimates",
            value=f"{team.team_efficiency}%",
            trend=metrics.insight_trend(team.team_efficiency),
        ),
        Insight(
            type="consistency",
            title="Work Consistency",
            description="How consistent the team is with daily hours",
            value=f"{team.consistency}%",
            trend=metrics.insight_trend(team.consistency),
        ),
    ]


def build_work_pattern_report(snapshot: ReportSnapshot) -> WorkPatternReport:
    """Hourly, daily, weekday and weekly patterns with team metrics and insights."""
    aggregation = _aggregate(snapshot)
    directory = _Directory(snapshot, aggregation)

    hourly_efficiencies = {
        hour: metrics.efficiency(bucket.actual_hours, bucket.estimated_hours)
        for hour, bucket in aggregation.hours.items()
    }
    hourly = [
        HourlyPattern(
            hour=hour,
            total_hours=r2(bucket.total_hours),
            user_count=len(bucket.user_ids),
            avg_hours_per_user=r2(metrics.safe_divide(bucket.total_hours, len(bucket.user_ids))),
            efficiency=r2(hourly_efficiencies[hour]),
        )
        for hour, bucket in sorted(aggregation.hours.items())
    ]

    daily = [
        DailyPattern(
            day=day,
            total_hours=r2(bucket.total_hours),
            user_count=len(bucket.user_ids),
            project_count=len(bucket.project_ids),
            avg_hours_per_user=r2(metrics.safe_divide(bucket.total_hours, len(bucket.user_ids))),
            completion_rate=r2(
                metrics.completion_rate(bucket.tasks.completed_count, bucket.tasks.task_count)
            ),
        )
        for day, bucket in sorted(aggregation.days.items())
    ]

    weekdays = [
        WeekdayPattern(
            weekday=weekday,
            name=calendar.day_name[weekday],
            total_hours=r2(bucket.total_hours),
            days_worked=len(bucket.days),
            avg_hours_per_day=r2(metrics.safe_divide(bucket.total_hours, len(bucket.days))),
            user_count=len(bucket.user_ids),
        )
        for weekday, bucket in sorted(aggregation.weekdays.items())
    ]

    weekly: list[WeeklyPattern] = []
    previous: Optional[float] = None
    for week_start, bucket in sorted(aggregation.weeks.items()):
        weekly.append(
            WeeklyPattern(
                week_start=week_start,
                total_hours=r2(bucket.total_hours),
                user_count=len(bucket.user_ids),
                trend=_week_trend(bucket.total_hours, previous),
            )
        )
        previous = bucket.total_hours

    total_hours = aggregation.total_hours
    daily_hours = aggregation.daily_hours
    hour_totals = {hour: bucket.total_hours for hour, bucket in aggregation.hours.items()}
    peak_hour = metrics.peak_key(hour_totals)
    peak_day = metrics.peak_key(daily_hours)

    team = TeamMetrics(
        total_hours=r2(total_hours),
        avg_hours_per_day=r2(metrics.safe_divide(total_hours, len(daily_hours))),
        peak_hour=peak_hour,
        peak_day=peak_day,
        most_productive_user=_top_entity(
            {user_id: user.total_hours for user_id, user in aggregation.users.items()},
            directory.user_name,
        ),
        most_productive_project=_top_entity(
            {
                project_id: project.total_hours
                for project_id, project in aggregation.projects.items()
            },
            directory.project_name,
        ),
        team_efficiency=r2(
            metrics.mean(hourly_efficiencies[hour] for hour in sorted(hourly_efficiencies))
        ),
        consistency=r2(metrics.consistency(daily_hours[day] for day in sorted(daily_hours))),
    )

    insights = _insights(
        team,
        hour_totals.get(peak_hour, 0.0) if peak_hour is not None else 0.0,
        daily_hours.get(peak_day, 0.0) if peak_day is not None else 0.0,
    )

    return WorkPatternReport(
        window=snapshot.window,
        filters=snapshot.filters,
        hourly=hourly,
        daily=daily,
        weekdays=weekdays,
        weekly=weekly,
        team=team,
        insights=insights,
    )


# Overview

def build_overview_report(snapshot: ReportSnapshot) -> OverviewReport:
    """Headline counts, hours and catalogue-wide completion rate."""
    aggregation = _aggregate(snapshot)
    total_hours = aggregation.total_hours

    project_id = snapshot.filters.project_id
    tasks = [
        task for task in snapshot.tasks
        if project_id is None or task.project_id == project_id
    ]
    completed = sum(1 for task in tasks if task.is_completed)

    return OverviewReport(
        window=snapshot.window,
        filters=snapshot.filters,
        total_projects=len(_visible_projects(snapshot)),
        total_users=len(_visible_users(snapshot)),
        total_hours=r2(total_hours),
        average_hours_per_user=r2(
            metrics.safe_divide(total_hours, len(aggregation.active_user_ids))
        ),
        completion_rate=r2(metrics.completion_rate(completed, len(tasks))),
    )
