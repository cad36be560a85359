"""
Weekly past-due / upcoming task reports.

Reads go straight to the store. Reports run rarely and must not show data
the cache has not caught up with yet.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlmodel.ext.asyncio.session import AsyncSession

from tasknotes.models import (
    NoteResponse,
    ReportTask,
    TaskResponse,
    User,
    UserResponse,
    WeeklyReport,
    as_utc,
)
from tasknotes.repositories.note_repository import NoteRepository
from tasknotes.repositories.task_repository import TaskRepository
from tasknotes.services.notification_service import Notifier, notifier as default_notifier
from tasknotes.services.user_service import UserService

logger = logging.getLogger(__name__)

TASKS_PER_SECTION = 10
NOTES_PER_TASK = 2


def week_start(now: datetime) -> datetime:
    """Monday 00:00 UTC of the week containing ``now``."""
    now = as_utc(now)
    monday = now.date() - timedelta(days=now.weekday())
    return datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)


def previous_week(now: datetime) -> tuple[datetime, datetime]:
    start = week_start(now)
    return start - timedelta(days=7), start


def next_week(now: datetime) -> tuple[datetime, datetime]:
    start = week_start(now) + timedelta(days=7)
    return start, start + timedelta(days=7)


class ReportService:
    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier | None = None,
        users: UserService | None = None,
    ):
        self.db = db
        self.tasks = TaskRepository(db)
        self.notes = NoteRepository(db)
        self.users = users or UserService(db)
        self.notifier = notifier or default_notifier

    async def get_past_due_tasks(
        self, username: str, now: datetime | None = None
    ) -> list[TaskResponse]:
        """Incomplete tasks that were due during the previous calendar week."""
        owner_id = await self.users.resolve_owner_id(username)
        start, end = previous_week(now or datetime.now(timezone.utc))
        return await self._due_between(owner_id, start, end)

    async def get_upcoming_tasks(
        self, username: str, now: datetime | None = None
    ) -> list[TaskResponse]:
        """Incomplete tasks due during the next calendar week."""
        owner_id = await self.users.resolve_owner_id(username)
        start, end = next_week(now or datetime.now(timezone.utc))
        return await self._due_between(owner_id, start, end)

    async def _due_between(self, owner_id: str, start: datetime, end: datetime):
        tasks = await self.tasks.get_due_between(owner_id, start, end)
        return [TaskResponse.model_validate(task) for task in tasks]

    async def build_weekly_report(
        self, user: User | UserResponse, now: datetime | None = None
    ) -> WeeklyReport:
        now = as_utc(now or datetime.now(timezone.utc))
        past_due = (await self.get_past_due_tasks(user.username, now))[:TASKS_PER_SECTION]
        upcoming = (await self.get_upcoming_tasks(user.username, now))[:TASKS_PER_SECTION]

        task_ids = [t.id for t in past_due + upcoming]
        notes_by_task: dict[int, list[NoteResponse]] = {}
        for note in await self.notes.get_for_tasks(task_ids):
            bucket = notes_by_task.setdefault(note.task_id, [])
            if len(bucket) < NOTES_PER_TASK:
                bucket.append(NoteResponse.model_validate(note))

        def with_notes(tasks: list[TaskResponse]) -> list[ReportTask]:
            return [
                ReportTask(**t.model_dump(), notes=notes_by_task.get(t.id, []))
                for t in tasks
            ]

        return WeeklyReport(
            username=user.username,
            generated_at=now,
            past_due=with_notes(past_due),
            upcoming=with_notes(upcoming),
        )

    async def send_weekly_reports(self, now: datetime | None = None) -> int:
        """
        Build and deliver a report for every user.

        One user's failure is logged and does not stop the others.
        Returns the number of users that received a report.
        """
        # Plain snapshots survive the rollback that expires ORM instances
        users = [UserResponse.model_validate(u) for u in await self.users.list_users()]
        sent = 0

        for user in users:
            try:
                report = await self.build_weekly_report(user, now)
                await self.notifier.send_private_message(user.id, format_report(report))
                sent += 1
            except Exception as e:
                logger.error(
                    f"Failed to generate report for user {user.username}: {e}",
                    exc_info=True,
                )
                # A failed statement leaves the shared session unusable until rolled back
                await self.db.rollback()

        logger.info(f"Weekly reports sent to {sent}/{len(users)} users")
        return sent


def format_report(report: WeeklyReport) -> str:
    lines = [
        f"Weekly task report for {report.username} "
        f"({report.generated_at:%Y-%m-%d}): "
        f"{len(report.past_due)} past due, {len(report.upcoming)} upcoming"
    ]
    for label, tasks in (("Past due", report.past_due), ("Upcoming", report.upcoming)):
        for task in tasks:
            lines.append(f"- {label}: {task.title} (due {task.due_date:%b %d})")
    return "\n".join(lines)
