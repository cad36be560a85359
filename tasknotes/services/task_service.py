import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from tasknotes.cache.keys import all_tasks_key, task_key, task_notes_key
from tasknotes.cache.layer import CacheLayer, cache_layer
from tasknotes.core.errors import InternalError, NotFoundError
from tasknotes.models import Task, TaskCreate, TaskResponse, TaskUpdate
from tasknotes.repositories.task_repository import TaskRepository
from tasknotes.services.user_service import UserService
from tasknotes.services.validation import validate_input

logger = logging.getLogger(__name__)


def to_payload(task: Task) -> dict:
    """JSON-safe form of a task; the exact shape that goes into the cache."""
    return TaskResponse.model_validate(task).model_dump(mode="json")


class TaskService:
    """
    Ownership-scoped task CRUD with cache-aside reads.

    Every public method takes the caller's username and resolves it to an
    owner id once. Cache keys embed the owner id, so two users never share
    an entry even for the same task id. Writes commit to the store first and
    only then invalidate.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: CacheLayer | None = None,
        users: UserService | None = None,
    ):
        self.tasks = TaskRepository(db)
        self.cache = cache or cache_layer
        self.users = users or UserService(db)

    async def list_tasks(self, username: str) -> list[TaskResponse]:
        owner_id = await self.users.resolve_owner_id(username)
        logger.info(f"Fetching all tasks for owner {owner_id}")

        async def load():
            tasks = await self.tasks.get_all_for_owner(owner_id)
            return [to_payload(task) for task in tasks]

        payloads = await self.cache.get_or_load(
            all_tasks_key(owner_id), load, cache_empty=False
        )
        return [TaskResponse.model_validate(p) for p in payloads]

    async def get_task(self, username: str, task_id: int) -> TaskResponse | None:
        owner_id = await self.users.resolve_owner_id(username)
        logger.info(f"Fetching task {task_id} for owner {owner_id}")

        async def load():
            task = await self.tasks.get_by_id(task_id, owner_id)
            if task is None:
                logger.warning(f"Task {task_id} not found for owner {owner_id}")
                return None
            return to_payload(task)

        payload = await self.cache.get_or_load(task_key(task_id, owner_id), load)
        if payload is None:
            return None
        return TaskResponse.model_validate(payload)

    async def create_task(self, username: str, task_data: TaskCreate | dict) -> TaskResponse:
        data = validate_input(TaskCreate, task_data)
        owner_id = await self.users.resolve_owner_id(username)
        logger.info(f"Creating task {data.title!r} for owner {owner_id}")

        task = Task.model_validate(data, update={"owner_id": owner_id, "is_completed": False})
        created = await self.tasks.create(task)
        if created is None or created.id is None:
            logger.error("Repository returned no id when creating task")
            raise InternalError("Failed to create task")

        payload = to_payload(created)
        await self.cache.remove(all_tasks_key(owner_id))
        await self.cache.set(task_key(created.id, owner_id), payload)

        logger.info(f"Created task {created.id} for owner {owner_id}")
        return TaskResponse.model_validate(payload)

    async def update_task(
        self, username: str, task_id: int, task_data: TaskUpdate | dict
    ) -> TaskResponse:
        data = validate_input(TaskUpdate, task_data)
        owner_id = await self.users.resolve_owner_id(username)
        logger.info(f"Updating task {task_id} for owner {owner_id}")

        task = await self.tasks.get_by_id(task_id, owner_id)
        if task is None:
            logger.warning(f"Task {task_id} not found for update")
            raise NotFoundError(f"Task with id {task_id} not found")

        task.sqlmodel_update(data.model_dump())
        updated = await self.tasks.update(task)

        await self._invalidate(task_id, owner_id)
        logger.info(f"Updated task {task_id}")
        return TaskResponse.model_validate(to_payload(updated))

    async def delete_task(self, username: str, task_id: int) -> bool:
        owner_id = await self.users.resolve_owner_id(username)
        logger.info(f"Deleting task {task_id} for owner {owner_id}")

        if not await self.tasks.exists(task_id, owner_id):
            logger.warning(f"Cannot delete task {task_id}: not found for owner")
            return False

        deleted = await self.tasks.delete(task_id)
        if not deleted:
            logger.warning(f"Repository did not delete task {task_id}")
            return False

        await self._invalidate(task_id, owner_id)
        await self.cache.remove(task_notes_key(task_id, owner_id))
        logger.info(f"Deleted task {task_id} and its notes")
        return True

    async def task_exists(self, username: str, task_id: int) -> bool:
        owner_id = await self.users.resolve_owner_id(username)
        return await self.task_exists_for_owner(owner_id, task_id)

    async def task_exists_for_owner(self, owner_id: str, task_id: int) -> bool:
        # Only a positive answer is ever cached (by get_task/create_task)
        if await self.cache.get(task_key(task_id, owner_id)) is not None:
            logger.debug(f"Task {task_id} exists (cache)")
            return True

        exists = await self.tasks.exists(task_id, owner_id)
        logger.debug(f"Task {task_id} exists: {exists}")
        return exists

    async def _invalidate(self, task_id: int, owner_id: str):
        await self.cache.remove(task_key(task_id, owner_id))
        await self.cache.remove(all_tasks_key(owner_id))
