from fastapi import APIRouter, status

from tasknotes.api.deps import UserServiceDep
from tasknotes.models import UserCreate, UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, users: UserServiceDep):
    """Register a user; the username is what callers send as X-Username"""
    return await users.register_user(user_data)
