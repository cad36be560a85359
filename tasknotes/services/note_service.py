import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from tasknotes.cache.keys import task_notes_key
from tasknotes.cache.layer import CacheLayer
from tasknotes.core.errors import AuthorizationError, InternalError
from tasknotes.models import Note, NoteCreate, NoteResponse, NoteUpdate, get_utc_now
from tasknotes.repositories.note_repository import NoteRepository
from tasknotes.services.task_service import TaskService
from tasknotes.services.validation import validate_input

logger = logging.getLogger(__name__)


def to_payload(note: Note) -> dict:
    return NoteResponse.model_validate(note).model_dump(mode="json")


class NoteService:
    """
    Note CRUD scoped through the parent task's owner.

    Notes carry no owner of their own. Every operation checks the parent
    task against the caller before reading the cache or touching the store,
    so a deleted or foreign task never serves notes, cached or not.
    """

    def __init__(
        self,
        db: AsyncSession,
        task_service: TaskService | None = None,
        cache: CacheLayer | None = None,
    ):
        self.notes = NoteRepository(db)
        self.task_service = task_service or TaskService(db, cache=cache)
        self.cache = cache or self.task_service.cache
        self.users = self.task_service.users

    async def _verify_task_owner(self, owner_id: str, task_id: int):
        if not await self.task_service.task_exists_for_owner(owner_id, task_id):
            logger.warning(f"Task {task_id} not accessible to owner {owner_id}")
            raise AuthorizationError(f"Task {task_id} is not accessible")

    async def list_notes_by_task(self, username: str, task_id: int) -> list[NoteResponse]:
        owner_id = await self.users.resolve_owner_id(username)
        logger.info(f"Retrieving notes for task {task_id}")
        await self._verify_task_owner(owner_id, task_id)

        async def load():
            notes = await self.notes.get_by_task_id(task_id, owner_id)
            logger.info(f"Loaded {len(notes)} notes for task {task_id}")
            return [to_payload(note) for note in notes]

        payloads = await self.cache.get_or_load(task_notes_key(task_id, owner_id), load)
        return [NoteResponse.model_validate(p) for p in payloads]

    async def add_note(
        self, username: str, task_id: int, note_data: NoteCreate | dict
    ) -> NoteResponse:
        data = validate_input(NoteCreate, note_data)
        owner_id = await self.users.resolve_owner_id(username)
        logger.info(f"Adding note to task {task_id}")
        await self._verify_task_owner(owner_id, task_id)

        note = Note.model_validate(
            data, update={"task_id": task_id, "created_at": get_utc_now()}
        )
        created = await self.notes.create(note)
        if created is None or created.id is None:
            logger.error(f"Failed to create note for task {task_id}")
            raise InternalError("Failed to create note")

        await self.cache.remove(task_notes_key(task_id, owner_id))
        logger.info(f"Created note {created.id} on task {task_id}")
        return NoteResponse.model_validate(to_payload(created))

    async def update_note(
        self, username: str, note_id: int, note_data: NoteUpdate | dict
    ) -> NoteResponse:
        data = validate_input(NoteUpdate, note_data)
        owner_id = await self.users.resolve_owner_id(username)
        logger.info(f"Updating note {note_id}")

        note = await self.notes.get_by_id(note_id, owner_id)
        if note is None:
            logger.warning(f"Note {note_id} not accessible to owner {owner_id}")
            raise AuthorizationError(f"Note {note_id} is not accessible")

        note.sqlmodel_update(data.model_dump())
        updated = await self.notes.update(note)
        if updated is None:
            logger.error(f"Failed to update note {note_id}")
            raise InternalError("Failed to update note")

        await self.cache.remove(task_notes_key(updated.task_id, owner_id))
        logger.info(f"Updated note {note_id}")
        return NoteResponse.model_validate(to_payload(updated))

    async def delete_note(self, username: str, note_id: int) -> bool:
        owner_id = await self.users.resolve_owner_id(username)
        logger.info(f"Deleting note {note_id}")

        note = await self.notes.get_by_id(note_id, owner_id)
        if note is None:
            logger.warning(f"Note {note_id} not found for owner {owner_id}")
            return False

        task_id = note.task_id
        if not await self.notes.delete(note_id):
            return False

        await self.cache.remove(task_notes_key(task_id, owner_id))
        logger.info(f"Deleted note {note_id}")
        return True
