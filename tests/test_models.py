"""Tests for Pydantic models."""
import pytest
from datetime import date, datetime, timezone
from pydantic import ValidationError


class TestTaskModel:
    """Tests for Task models."""

    def test_task_status_enum_values(self):
        """Test TaskStatus enum has correct values."""
        from taskflow.models.task import TaskStatus

        assert TaskStatus.TODO.value == "To Do"
        assert TaskStatus.IN_PROGRESS.value == "In Progress"
        assert TaskStatus.COMPLETED.value == "Completed"
        assert TaskStatus.BLOCKED.value == "Blocked"
        assert TaskStatus.REVIEW.value == "Review"

    def test_task_minimal(self):
        """Test creating a task with minimal required fields."""
        from taskflow.models.task import Task, TaskStatus

        task = Task(_id="t1", name="Design")

        assert task.id == "t1"
        assert task.status == TaskStatus.TODO
        assert task.estimate_hours is None
        assert not task.is_completed

    def test_task_populate_by_name(self):
        """Test id can be given by field name as well as alias."""
        from taskflow.models.task import Task

        task = Task(id="t1", name="Design", status="Completed")

        assert task.id == "t1"
        assert task.is_completed

    def test_task_invalid_status(self):
        """Test unknown status is rejected."""
        from taskflow.models.task import Task

        with pytest.raises(ValidationError):
            Task(_id="t1", name="Design", status="Done-ish")

    def test_task_serializes_id(self):
        """Test _id is serialized as id."""
        from taskflow.models.task import Task

        data = Task(_id="t1", name="Design").model_dump(by_alias=True)

        assert data["id"] == "t1"
        assert "_id" not in data

    def test_task_ref_completion(self):
        """Test joined task fields report completion."""
        from taskflow.models.task import TaskRef

        assert TaskRef(name="Design", status="Completed").is_completed
        assert not TaskRef(name="Design").is_completed


class TestProjectModel:
    """Tests for Project model."""

    def test_project_minimal(self):
        """Test creating a project with minimal required fields."""
        from taskflow.models.project import Project

        project = Project(_id="p1", name="Apollo")

        assert project.deadline is None
        assert project.type is None

    def test_overdue_without_deadline(self):
        """Test project without deadline is never overdue."""
        from taskflow.models.project import Project

        project = Project(_id="p1", name="Apollo")

        assert not project.is_overdue(datetime(2030, 1, 1, tzinfo=timezone.utc))

    def test_overdue_from_deadline_midnight(self):
        """Test deadline counts as passed once its day has started."""
        from taskflow.models.project import Project

        project = Project(_id="p1", name="Apollo", deadline=date(2025, 1, 5))

        assert not project.is_overdue(datetime(2025, 1, 4, 23, 59, tzinfo=timezone.utc))
        assert not project.is_overdue(datetime(2025, 1, 5, 0, 0, tzinfo=timezone.utc))
        assert project.is_overdue(datetime(2025, 1, 5, 0, 1, tzinfo=timezone.utc))


class TestUserModel:
    """Tests for User model."""

    def test_user_role_enum_values(self):
        """Test UserRole enum has correct values."""
        from taskflow.models.user import UserRole

        assert UserRole.ADMIN.value == "admin"
        assert UserRole.USER.value == "user"

    def test_user_default_role(self):
        """Test user defaults to the user role."""
        from taskflow.models.user import User, UserRole

        user = User(_id="u1", name="Alice")

        assert user.role == UserRole.USER
        assert user.email is None

    def test_user_invalid_role(self):
        """Test unknown role is rejected."""
        from taskflow.models.user import User

        with pytest.raises(ValidationError):
            User(_id="u1", name="Alice", role="superuser")


class TestWorkIntervalModel:
    """Tests for WorkInterval model."""

    def test_duration_hours(self):
        """Test duration is unrounded fractional hours."""
        from taskflow.models.work_log import WorkInterval

        interval = WorkInterval(
            _id="log-1",
            start_time=datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
            end_time=datetime(2025, 1, 1, 9, 20, tzinfo=timezone.utc),
        )

        assert interval.duration_hours == pytest.approx(1 / 3)

    def test_naive_times_read_as_utc(self):
        """Test naive datetimes from MongoDB are treated as UTC."""
        from taskflow.models.work_log import WorkInterval

        interval = WorkInterval(
            _id="log-1",
            start_time=datetime(2025, 1, 1, 9),
            end_time=datetime(2025, 1, 1, 10),
        )

        assert interval.start_utc == datetime(2025, 1, 1, 9, tzinfo=timezone.utc)
        assert interval.end_utc.tzinfo is timezone.utc

    def test_offset_times_converted_to_utc(self):
        """Test aware datetimes in other zones are converted."""
        from datetime import timedelta
        from taskflow.models.work_log import WorkInterval

        plus_two = timezone(timedelta(hours=2))
        interval = WorkInterval(
            _id="log-1",
            start_time=datetime(2025, 1, 1, 11, tzinfo=plus_two),
            end_time=datetime(2025, 1, 1, 12, tzinfo=plus_two),
        )

        assert interval.start_utc.hour == 9

    def test_missing_times_rejected(self):
        """Test start and end times are required."""
        from taskflow.models.work_log import WorkInterval

        with pytest.raises(ValidationError):
            WorkInterval(_id="log-1", start_time=datetime(2025, 1, 1, 9))


class TestQueryModels:
    """Tests for report query models."""

    def test_time_range_values(self):
        """Test TimeRange enum has correct values."""
        from taskflow.models.query import TimeRange

        assert [r.value for r in TimeRange] == ["day", "week", "month", "quarter", "year"]

    def test_filters_default_to_unrestricted(self):
        """Test default filters restrict nothing."""
        from taskflow.models.query import ReportFilters

        filters = ReportFilters()

        assert filters.project_id is None
        assert filters.user_id is None

    def test_window_is_frozen(self):
        """Test report windows are immutable."""
        from taskflow.models.query import ReportWindow

        window = ReportWindow(
            start=datetime(2025, 1, 1, tzinfo=timezone.utc),
            end=datetime(2025, 1, 8, tzinfo=timezone.utc),
        )

        with pytest.raises(ValidationError):
            window.start = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestReportModels:
    """Tests for report models."""

    def test_summary_defaults(self):
        """Test an empty summary report."""
        from taskflow.models.query import ReportFilters, ReportWindow
        from taskflow.models.report import SummaryReport

        report = SummaryReport(
            window=ReportWindow(
                start=datetime(2025, 1, 1, tzinfo=timezone.utc),
                end=datetime(2025, 1, 8, tzinfo=timezone.utc),
            ),
            filters=ReportFilters(),
        )

        assert report.total_hours == 0.0
        assert report.peak_day is None
        assert report.daily == []

    def test_enum_serialization(self):
        """Test enums serialize to their string values."""
        from taskflow.models.report import Insight, InsightTrend

        insight = Insight(
            type="efficiency",
            title="Team Efficiency",
            description="Overall team efficiency vs estimates",
            value="85.0%",
            trend=InsightTrend.POSITIVE,
        )

        assert insight.model_dump(mode="json")["trend"] == "positive"
