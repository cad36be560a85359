from datetime import datetime

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from tasknotes.models import Note, Task


class TaskRepository:
    """Owner-filtered CRUD over the tasks table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all_for_owner(self, owner_id: str) -> list[Task]:
        query = (
            select(Task)
            .where(Task.owner_id == owner_id)
            .order_by(Task.created_at, Task.id)
        )
        result = await self.db.exec(query)
        return list(result.all())

    async def get_by_id(self, task_id: int, owner_id: str) -> Task | None:
        query = select(Task).where(Task.id == task_id, Task.owner_id == owner_id)
        result = await self.db.exec(query)
        return result.first()

    async def exists(self, task_id: int, owner_id: str) -> bool:
        query = select(Task.id).where(Task.id == task_id, Task.owner_id == owner_id)
        result = await self.db.exec(query)
        return result.first() is not None

    async def create(self, task: Task) -> Task:
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        return task

    async def update(self, task: Task) -> Task:
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        return task

    async def delete(self, task_id: int) -> bool:
        task = await self.db.get(Task, task_id)
        if not task:
            return False
        # Child notes go in the same transaction as the task itself
        notes = await self.db.exec(select(Note).where(Note.task_id == task_id))
        for note in notes.all():
            await self.db.delete(note)
        await self.db.flush()
        await self.db.delete(task)
        await self.db.commit()
        return True

    async def get_due_between(
        self,
        owner_id: str,
        start: datetime,
        end: datetime,
        completed: bool = False,
    ) -> list[Task]:
        query = (
            select(Task)
            .where(
                Task.owner_id == owner_id,
                Task.is_completed == completed,
                Task.due_date >= start,
                Task.due_date < end,
            )
            .order_by(Task.due_date, Task.id)
        )
        result = await self.db.exec(query)
        return list(result.all())
