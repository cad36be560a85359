import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from tasknotes.core.errors import ConflictError, IdentityError, InternalError
from tasknotes.models import User, UserCreate, UserResponse
from tasknotes.repositories.user_repository import UserRepository
from tasknotes.services.validation import validate_input

logger = logging.getLogger(__name__)


class UserService:
    """Identity collaborator: maps a caller-presented name to an owner id."""

    def __init__(self, db: AsyncSession):
        self.users = UserRepository(db)

    async def resolve_user(self, username: str | None) -> User:
        if not username or not username.strip():
            logger.warning("Caller identity missing")
            raise IdentityError("Unable to determine user identity")

        user = await self.users.get_by_username(username.strip().lower())
        if user is None:
            logger.warning(f"Unknown caller {username!r}")
            raise IdentityError("Unable to determine user identity")
        return user

    async def resolve_owner_id(self, username: str | None) -> str:
        user = await self.resolve_user(username)
        return user.id

    async def register_user(self, user_data: UserCreate | dict) -> UserResponse:
        data = validate_input(UserCreate, user_data)
        logger.info(f"Registering user {data.username}")

        if await self.users.get_by_username(data.username):
            raise ConflictError(f"User {data.username} already exists")

        user = await self.users.create(User.model_validate(data))
        if user is None or user.id is None:
            logger.error("Repository returned no user on create")
            raise InternalError("Failed to create user")

        logger.info(f"User {user.username} registered with id {user.id}")
        return UserResponse.model_validate(user)

    async def list_users(self) -> list[User]:
        return await self.users.get_all()
