from fastapi import Depends, Header
from sqlmodel.ext.asyncio.session import AsyncSession
from typing_extensions import Annotated

from tasknotes.cache.layer import CacheLayer, get_cache
from tasknotes.database import get_db
from tasknotes.services.note_service import NoteService
from tasknotes.services.notification_service import Notifier, get_notifier
from tasknotes.services.report_service import ReportService
from tasknotes.services.task_service import TaskService
from tasknotes.services.user_service import UserService


async def get_caller(x_username: Annotated[str | None, Header()] = None) -> str:
    # Token verification happens upstream; blank names fail in resolve_owner_id
    return x_username or ""


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


def get_task_service(
    db: AsyncSession = Depends(get_db), cache: CacheLayer = Depends(get_cache)
) -> TaskService:
    return TaskService(db, cache=cache)


def get_note_service(
    db: AsyncSession = Depends(get_db), cache: CacheLayer = Depends(get_cache)
) -> NoteService:
    return NoteService(db, cache=cache)


def get_report_service(
    db: AsyncSession = Depends(get_db), notifier: Notifier = Depends(get_notifier)
) -> ReportService:
    return ReportService(db, notifier=notifier)


CallerDep = Annotated[str, Depends(get_caller)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
NoteServiceDep = Annotated[NoteService, Depends(get_note_service)]
ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]
