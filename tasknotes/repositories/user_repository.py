from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from tasknotes.models import User


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_username(self, username: str) -> User | None:
        result = await self.db.exec(select(User).where(User.username == username))
        return result.first()

    async def get_all(self) -> list[User]:
        result = await self.db.exec(select(User).order_by(User.username))
        return list(result.all())

    async def create(self, user: User) -> User:
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user
