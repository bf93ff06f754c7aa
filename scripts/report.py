"""Print an analytics report as JSON.

Usage:
    # Weekly summary
    python scripts/report.py summary

    # Projects for the last quarter, ranked by efficiency
    python scripts/report.py projects --range quarter --sort efficiency

    # One user's drill-down
    python scripts/report.py users --user 64f0c0ffee --range month
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from motor.motor_asyncio import AsyncIOMotorClient
from taskflow.analytics import reports
from taskflow.analytics.windows import resolve_window
from taskflow.config import settings
from taskflow.errors import AnalyticsError
from taskflow.models.query import ProjectSortKey, ReportFilters, TimeRange, UserSortKey
from taskflow.services.analytics_service import AnalyticsService

logger = logging.getLogger("report")

REPORTS = ["summary", "projects", "users", "patterns", "overview"]


def render(kind: str, snapshot, args) -> str:
    """Build the requested report from a loaded snapshot and serialize it."""
    if kind == "summary":
        report = reports.build_summary_report(snapshot)
    elif kind == "projects":
        if args.project and args.detail:
            report = reports.build_project_detail(snapshot, args.project)
        else:
            report = reports.build_project_report(snapshot, ProjectSortKey(args.sort or "hours"))
    elif kind == "users":
        if args.user and args.detail:
            report = reports.build_user_detail(snapshot, args.user)
        else:
            report = reports.build_user_report(snapshot, UserSortKey(args.sort or "hours"))
    elif kind == "patterns":
        report = reports.build_work_pattern_report(snapshot)
    else:
        report = reports.build_overview_report(snapshot)
    return report.model_dump_json(indent=2)


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Print an analytics report as JSON")
    parser.add_argument("report", choices=REPORTS, help="Report to build")
    parser.add_argument(
        "--range",
        default=settings.default_time_range,
        choices=[time_range.value for time_range in TimeRange],
        help="Time range ending now",
    )
    parser.add_argument("--project", help="Filter by project ID")
    parser.add_argument("--user", help="Filter by user ID")
    parser.add_argument("--sort", help="Sort key for projects/users reports")
    parser.add_argument(
        "--detail",
        action="store_true",
        help="Drill down into --project or --user",
    )
    parser.add_argument(
        "--mongodb-url",
        default=settings.mongodb_url,
        help="MongoDB connection URL",
    )
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level)

    client = AsyncIOMotorClient(args.mongodb_url)
    try:
        service = AnalyticsService(client[settings.mongodb_db_name])
        window = resolve_window(TimeRange(args.range))
        filters = ReportFilters(project_id=args.project, user_id=args.user)
        snapshot = await service.load_snapshot(window, filters)
        print(render(args.report, snapshot, args))
    except (AnalyticsError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(1)
    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(main())
