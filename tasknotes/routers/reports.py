from fastapi import APIRouter

from tasknotes.api.deps import CallerDep, ReportServiceDep
from tasknotes.models import WeeklyReport

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/weekly", response_model=WeeklyReport)
async def weekly_report(caller: CallerDep, reports: ReportServiceDep):
    """Past-due and upcoming tasks for the caller, read from the store"""
    user = await reports.users.resolve_user(caller)
    return await reports.build_weekly_report(user)
