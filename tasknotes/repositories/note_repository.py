from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tasknotes.models import Note, Task


class NoteRepository:
    """Note queries always join through the parent task's owner."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_task_id(self, task_id: int, owner_id: str) -> list[Note]:
        query = (
            select(Note)
            .join(Task, Task.id == Note.task_id)
            .where(Note.task_id == task_id, Task.owner_id == owner_id)
            .order_by(Note.created_at, Note.id)
        )
        result = await self.db.exec(query)
        return list(result.all())

    async def get_by_id(self, note_id: int, owner_id: str) -> Note | None:
        query = (
            select(Note)
            .join(Task, Task.id == Note.task_id)
            .where(Note.id == note_id, Task.owner_id == owner_id)
        )
        result = await self.db.exec(query)
        return result.first()

    async def get_for_tasks(self, task_ids: list[int]) -> list[Note]:
        if not task_ids:
            return []
        query = (
            select(Note)
            .where(col(Note.task_id).in_(task_ids))
            .order_by(Note.created_at, Note.id)
        )
        result = await self.db.exec(query)
        return list(result.all())

    async def create(self, note: Note) -> Note:
        self.db.add(note)
        await self.db.commit()
        await self.db.refresh(note)
        return note

    async def update(self, note: Note) -> Note:
        self.db.add(note)
        await self.db.commit()
        await self.db.refresh(note)
        return note

    async def delete(self, note_id: int) -> bool:
        note = await self.db.get(Note, note_id)
        if not note:
            return False
        await self.db.delete(note)
        await self.db.commit()
        return True
