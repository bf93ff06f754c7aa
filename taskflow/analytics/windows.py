"""Report window resolution."""
import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional

from taskflow.errors import InvalidWindowError
from taskflow.models.query import ReportWindow, TimeRange
from taskflow.models.work_log import as_utc


def _subtract_months(value: datetime, months: int) -> datetime:
    """
    Move a datetime back by whole calendar months.

    The day is clamped to the length of the target month.

    Examples:
        >>> _subtract_months(datetime(2025, 3, 31), 1)
        datetime.datetime(2025, 2, 28, 0, 0)
    """
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def validate_window(window: ReportWindow) -> ReportWindow:
    """
    Ensure a window is non-empty.

    Raises:
        InvalidWindowError: If start is not strictly before end
    """
    if as_utc(window.start) >= as_utc(window.end):
        raise InvalidWindowError(
            f"Window start {window.start.isoformat()} must be before end {window.end.isoformat()}"
        )
    return window


def make_window(start: datetime, end: datetime) -> ReportWindow:
    """Build a validated window from explicit bounds (naive values are UTC)."""
    return validate_window(ReportWindow(start=as_utc(start), end=as_utc(end)))


def resolve_window(
    time_range: TimeRange,
    now: Optional[datetime] = None,
) -> ReportWindow:
    """
    Resolve a named time range into a window ending at now.

    Args:
        time_range: day, week, month, quarter or year
        now: Optional end of window (defaults to current UTC time)

    Returns:
        Validated report window

    Examples:
        >>> end = datetime(2025, 5, 31, 12, tzinfo=timezone.utc)
        >>> resolve_window(TimeRange.QUARTER, end).start.date().isoformat()
        '2025-02-28'
    """
    end = as_utc(now) if now is not None else datetime.now(timezone.utc)

    if time_range == TimeRange.DAY:
        start = end - timedelta(days=1)
    elif time_range == TimeRange.WEEK:
        start = end - timedelta(days=7)
    elif time_range == TimeRange.MONTH:
        start = _subtract_months(end, 1)
    elif time_range == TimeRange.QUARTER:
        start = _subtract_months(end, 3)
    elif time_range == TimeRange.YEAR:
        start = _subtract_months(end, 12)
    else:
        raise InvalidWindowError(f"Unknown time range: {time_range}")

    return validate_window(ReportWindow(start=start, end=end))


def window_from_params(
    time_range: TimeRange,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> ReportWindow:
    """
    Pick an explicit window when both bounds are given, else a named range.

    Raises:
        InvalidWindowError: If only one bound is given or bounds are inverted
    """
    if start is None and end is None:
        return resolve_window(time_range, now=now)
    if start is None or end is None:
        raise InvalidWindowError("Both start and end are required for a custom window")
    return make_window(start, end)
