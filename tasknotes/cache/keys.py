# Every entry lives exactly this long; callers cannot override it.
CACHE_TTL_SECONDS = 45


def all_tasks_key(owner_id: str) -> str:
    return f"AllTasks_{owner_id}"


def task_key(task_id: int, owner_id: str) -> str:
    return f"Task_{task_id}_{owner_id}"


def task_notes_key(task_id: int, owner_id: str) -> str:
    return f"Task_{task_id}_Notes_{owner_id}"
