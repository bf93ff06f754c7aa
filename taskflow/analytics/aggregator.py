"""Interval aggregator.

Folds the work intervals of a report window into hour, day, weekday, week,
user and project accumulators. Accumulators are rebuilt on every call and
never persisted.

Attribution rules:
- An interval is included only if it lies entirely inside the window; one
  that straddles either edge is dropped, not clipped.
- Hour, date and weekday come from the UTC start time. An interval spanning
  several hours is attributed wholly to its start hour.
- Tasks are counted by distinct task id, and a completed task counts once per
  bucket however many intervals reference it. Estimates are summed once per
  distinct task, except in hour buckets, which add the task estimate of every
  interval starting in that hour.
- Intervals are folded in (start, end, id) order so that float sums do not
  depend on input order.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from taskflow.analytics.windows import validate_window
from taskflow.models.query import ReportFilters, ReportWindow
from taskflow.models.work_log import WorkInterval, as_utc


@dataclass
class TaskTally:
    """Distinct tasks seen in a bucket, with completion and estimates."""

    task_ids: set[str] = field(default_factory=set)
    completed_task_ids: set[str] = field(default_factory=set)
    estimates: dict[str, float] = field(default_factory=dict)

    def add(self, interval: WorkInterval) -> None:
        if interval.task_id is None:
            return
        self.task_ids.add(interval.task_id)
        task = interval.task
        if task is None:
            return
        if task.is_completed:
            self.completed_task_ids.add(interval.task_id)
        if task.estimate_hours is not None and task.estimate_hours > 0:
            self.estimates[interval.task_id] = task.estimate_hours

    @property
    def task_count(self) -> int:
        return len(self.task_ids)

    @property
    def completed_count(self) -> int:
        return len(self.completed_task_ids)

    @property
    def estimated_hours(self) -> float:
        return sum(self.estimates[task_id] for task_id in sorted(self.estimates))


@dataclass
class HourBucket:
    hour: int
    total_hours: float = 0.0
    actual_hours: float = 0.0
    estimated_hours: float = 0.0
    user_ids: set[str] = field(default_factory=set)


@dataclass
class DayBucket:
    day: date
    total_hours: float = 0.0
    user_ids: set[str] = field(default_factory=set)
    project_ids: set[str] = field(default_factory=set)
    tasks: TaskTally = field(default_factory=TaskTally)


@dataclass
class WeekdayBucket:
    weekday: int
    total_hours: float = 0.0
    days: set[date] = field(default_factory=set)
    user_ids: set[str] = field(default_factory=set)


@dataclass
class WeekBucket:
    week_start: date
    total_hours: float = 0.0
    user_ids: set[str] = field(default_factory=set)


@dataclass
class UserDay:
    hours: float = 0.0
    project_ids: set[str] = field(default_factory=set)
    task_ids: set[str] = field(default_factory=set)


@dataclass
class UserProject:
    hours: float = 0.0
    tasks: TaskTally = field(default_factory=TaskTally)


@dataclass
class UserAccumulator:
    user_id: str
    name: Optional[str] = None
    total_hours: float = 0.0
    session_count: int = 0
    daily: dict[date, UserDay] = field(default_factory=lambda: defaultdict(UserDay))
    projects: dict[str, UserProject] = field(default_factory=lambda: defaultdict(UserProject))
    hourly_hours: dict[int, float] = field(default_factory=lambda: defaultdict(float))
    tasks: TaskTally = field(default_factory=TaskTally)

    @property
    def daily_hours(self) -> dict[date, float]:
        return {day: bucket.hours for day, bucket in self.daily.items()}


@dataclass
class ProjectUser:
    hours: float = 0.0
    tasks: TaskTally = field(default_factory=TaskTally)


@dataclass
class ProjectAccumulator:
    project_id: str
    name: Optional[str] = None
    total_hours: float = 0.0
    user_ids: set[str] = field(default_factory=set)
    tasks: TaskTally = field(default_factory=TaskTally)
    users: dict[str, ProjectUser] = field(default_factory=lambda: defaultdict(ProjectUser))
    task_hours: dict[str, float] = field(default_factory=lambda: defaultdict(float))


@dataclass
class Aggregation:
    """Result of folding one window's intervals."""

    window: ReportWindow
    intervals: list[WorkInterval] = field(default_factory=list)
    hours: dict[int, HourBucket] = field(default_factory=dict)
    days: dict[date, DayBucket] = field(default_factory=dict)
    weekdays: dict[int, WeekdayBucket] = field(default_factory=dict)
    weeks: dict[date, WeekBucket] = field(default_factory=dict)
    users: dict[str, UserAccumulator] = field(default_factory=dict)
    projects: dict[str, ProjectAccumulator] = field(default_factory=dict)

    @property
    def total_hours(self) -> float:
        return sum(self.days[day].total_hours for day in sorted(self.days))

    @property
    def daily_hours(self) -> dict[date, float]:
        return {day: bucket.total_hours for day, bucket in self.days.items()}

    @property
    def active_user_ids(self) -> set[str]:
        return set(self.users)


def in_window(interval: WorkInterval, window: ReportWindow) -> bool:
    """True if the interval lies entirely inside the window."""
    return (
        interval.start_utc >= as_utc(window.start)
        and interval.end_utc <= as_utc(window.end)
    )


def matches_filters(interval: WorkInterval, filters: Optional[ReportFilters]) -> bool:
    """True if the interval belongs to the filtered project/user, if any."""
    if filters is None:
        return True
    if filters.project_id is not None and interval.project_id != filters.project_id:
        return False
    if filters.user_id is not None and interval.user_id != filters.user_id:
        return False
    return True


def week_start(day: date) -> date:
    """Sunday on or before the given date."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _interval_estimate(interval: WorkInterval) -> float:
    task = interval.task
    if task is None or task.estimate_hours is None or task.estimate_hours <= 0:
        return 0.0
    return task.estimate_hours


def _sort_key(interval: WorkInterval):
    return (interval.start_utc, interval.end_utc, interval.id)


def aggregate(
    intervals: Iterable[WorkInterval],
    window: ReportWindow,
    filters: Optional[ReportFilters] = None,
) -> Aggregation:
    """
    Bucket the intervals that fall inside a window.

    Args:
        intervals: Work intervals joined with task/project/user display fields
        window: Report window
        filters: Optional project/user restriction

    Returns:
        Aggregation with every accumulator populated

    Raises:
        InvalidWindowError: If the window is empty or inverted
    """
    validate_window(window)

    included = sorted(
        (
            interval
            for interval in intervals
            if in_window(interval, window) and matches_filters(interval, filters)
        ),
        key=_sort_key,
    )

    result = Aggregation(window=window, intervals=included)
    for interval in included:
        _fold(result, interval)
    return result


def _fold(result: Aggregation, interval: WorkInterval) -> None:
    start = interval.start_utc
    hours = interval.duration_hours
    day = start.date()

    hour_bucket = result.hours.get(start.hour)
    if hour_bucket is None:
        hour_bucket = result.hours[start.hour] = HourBucket(hour=start.hour)
    hour_bucket.total_hours += hours
    hour_bucket.actual_hours += hours
    hour_bucket.estimated_hours += _interval_estimate(interval)

    day_bucket = result.days.get(day)
    if day_bucket is None:
        day_bucket = result.days[day] = DayBucket(day=day)
    day_bucket.total_hours += hours
    day_bucket.tasks.add(interval)

    weekday_bucket = result.weekdays.get(day.weekday())
    if weekday_bucket is None:
        weekday_bucket = result.weekdays[day.weekday()] = WeekdayBucket(weekday=day.weekday())
    weekday_bucket.total_hours += hours
    weekday_bucket.days.add(day)

    week_key = week_start(day)
    week_bucket = result.weeks.get(week_key)
    if week_bucket is None:
        week_bucket = result.weeks[week_key] = WeekBucket(week_start=week_key)
    week_bucket.total_hours += hours

    if interval.project_id is not None:
        day_bucket.project_ids.add(interval.project_id)

    if interval.user_id is not None:
        hour_bucket.user_ids.add(interval.user_id)
        day_bucket.user_ids.add(interval.user_id)
        weekday_bucket.user_ids.add(interval.user_id)
        week_bucket.user_ids.add(interval.user_id)
        _fold_user(result, interval, hours, day, start.hour)

    if interval.project_id is not None:
        _fold_project(result, interval, hours)


def _fold_user(
    result: Aggregation,
    interval: WorkInterval,
    hours: float,
    day: date,
    hour: int,
) -> None:
    user = result.users.get(interval.user_id)
    if user is None:
        user = result.users[interval.user_id] = UserAccumulator(user_id=interval.user_id)
    if user.name is None and interval.user is not None:
        user.name = interval.user.name

    user.total_hours += hours
    user.session_count += 1
    user.hourly_hours[hour] += hours
    user.tasks.add(interval)

    user_day = user.daily[day]
    user_day.hours += hours
    if interval.project_id is not None:
        user_day.project_ids.add(interval.project_id)
    if interval.task_id is not None:
        user_day.task_ids.add(interval.task_id)

    if interval.project_id is not None:
        user_project = user.projects[interval.project_id]
        user_project.hours += hours
        user_project.tasks.add(interval)


def _fold_project(result: Aggregation, interval: WorkInterval, hours: float) -> None:
    project = result.projects.get(interval.project_id)
    if project is None:
        project = result.projects[interval.project_id] = ProjectAccumulator(
            project_id=interval.project_id
        )
    if project.name is None and interval.project is not None:
        project.name = interval.project.name

    project.total_hours += hours
    project.tasks.add(interval)
    if interval.task_id is not None:
        project.task_hours[interval.task_id] += hours

    if interval.user_id is not None:
        project.user_ids.add(interval.user_id)
        project_user = project.users[interval.user_id]
        project_user.hours += hours
        project_user.tasks.add(interval)
