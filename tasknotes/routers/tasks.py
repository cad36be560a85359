from fastapi import APIRouter, HTTPException, status

from tasknotes.api.deps import CallerDep, NoteServiceDep, TaskServiceDep
from tasknotes.models import (
    NoteCreate,
    NoteResponse,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(task_data: TaskCreate, caller: CallerDep, tasks: TaskServiceDep):
    """Create a new task"""
    return await tasks.create_task(caller, task_data)


@router.get("/", response_model=list[TaskResponse])
async def get_tasks(caller: CallerDep, tasks: TaskServiceDep):
    return await tasks.list_tasks(caller)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, caller: CallerDep, tasks: TaskServiceDep):
    """Get a specific task by ID"""

    task = await tasks.get_task(caller, task_id)

    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task with id {task_id} not found",
        )
    return task


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int, task_data: TaskUpdate, caller: CallerDep, tasks: TaskServiceDep
):
    return await tasks.update_task(caller, task_id, task_data)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, caller: CallerDep, tasks: TaskServiceDep):
    """Delete a task and its notes"""
    result = await tasks.delete_task(caller, task_id)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task with id {task_id} not found",
        )


@router.get("/{task_id}/notes", response_model=list[NoteResponse])
async def get_task_notes(task_id: int, caller: CallerDep, notes: NoteServiceDep):
    return await notes.list_notes_by_task(caller, task_id)


@router.post(
    "/{task_id}/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_note(
    task_id: int, note_data: NoteCreate, caller: CallerDep, notes: NoteServiceDep
):
    """Attach a note to a task"""
    return await notes.add_note(caller, task_id, note_data)
