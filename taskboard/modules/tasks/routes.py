from fastapi import APIRouter, Depends, Response
from typing import List, Optional

from taskboard.core.context import AppContext, get_context
from taskboard.core.dependencies import require_permission
from taskboard.modules.identity.schemas import UserInfo
from taskboard.modules.tasks.schemas import Task, TaskCounts, TaskCreate, TaskDraft, TaskStatus, TaskUpdate
from taskboard.modules.tasks.service import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])


def get_task_service(context: AppContext = Depends(get_context)) -> TaskService:
    return TaskService(context.store, context.local_store)


@router.get("", response_model=List[Task])
async def list_tasks(
    status: Optional[TaskStatus] = None,
    q: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    info: UserInfo = Depends(require_permission("tasks:read")),
    service: TaskService = Depends(get_task_service)
):
    """List tasks of the current account, newest first"""
    return await service.list_tasks(info.account.id, status=status, query=q, limit=limit, offset=offset)


@router.get("/counts", response_model=TaskCounts)
async def count_tasks(
    info: UserInfo = Depends(require_permission("tasks:read")),
    service: TaskService = Depends(get_task_service)
):
    return await service.count_by_status(info.account.id)


@router.post("", response_model=Task, status_code=201)
async def create_task(
    task_data: TaskCreate,
    info: UserInfo = Depends(require_permission("tasks:create")),
    service: TaskService = Depends(get_task_service)
):
    """Create a task in the current account"""
    return await service.create_task(info.account.id, info.user.id, task_data)


@router.get("/{task_id}", response_model=Task)
async def get_task(
    task_id: str,
    info: UserInfo = Depends(require_permission("tasks:read")),
    service: TaskService = Depends(get_task_service)
):
    return await service.get_task(task_id, info.account.id)


@router.put("/{task_id}", response_model=Task)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    info: UserInfo = Depends(require_permission("tasks:update")),
    service: TaskService = Depends(get_task_service)
):
    """Save title/description changes; discards the user's draft of the task"""
    return await service.update_task(task_id, info.account.id, info.user.id, task_data)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    info: UserInfo = Depends(require_permission("tasks:delete")),
    service: TaskService = Depends(get_task_service)
):
    await service.delete_task(task_id, info.account.id)
    return None


@router.post("/{task_id}/complete", response_model=Task)
async def complete_task(
    task_id: str,
    info: UserInfo = Depends(require_permission("tasks:update")),
    service: TaskService = Depends(get_task_service)
):
    return await service.complete_task(task_id, info.account.id, info.user.id)


@router.post("/{task_id}/reopen", response_model=Task)
async def reopen_task(
    task_id: str,
    info: UserInfo = Depends(require_permission("tasks:update")),
    service: TaskService = Depends(get_task_service)
):
    return await service.reopen_task(task_id, info.account.id, info.user.id)


@router.post("/{task_id}/archive", response_model=Task)
async def archive_task(
    task_id: str,
    info: UserInfo = Depends(require_permission("tasks:update")),
    service: TaskService = Depends(get_task_service)
):
    return await service.archive_task(task_id, info.account.id, info.user.id)


@router.post("/{task_id}/unarchive", response_model=Task)
async def unarchive_task(
    task_id: str,
    info: UserInfo = Depends(require_permission("tasks:update")),
    service: TaskService = Depends(get_task_service)
):
    return await service.unarchive_task(task_id, info.account.id, info.user.id)


@router.get("/{task_id}/export")
async def export_task(
    task_id: str,
    info: UserInfo = Depends(require_permission("tasks:read")),
    service: TaskService = Depends(get_task_service)
):
    """Download the task as a markdown file"""
    task = await service.get_task(task_id, info.account.id)
    filename, content = service.export_markdown(task)
    return Response(
        content=content,
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{task_id}/draft", response_model=Optional[TaskDraft])
async def get_draft(
    task_id: str,
    info: UserInfo = Depends(require_permission("tasks:update")),
    service: TaskService = Depends(get_task_service)
):
    """The caller's unsaved edits of a task, or null"""
    await service.get_task(task_id, info.account.id)
    return await service.get_draft(task_id, info.user.id)


@router.put("/{task_id}/draft", response_model=TaskDraft)
async def save_draft(
    task_id: str,
    draft: TaskDraft,
    info: UserInfo = Depends(require_permission("tasks:update")),
    service: TaskService = Depends(get_task_service)
):
    return await service.save_draft(task_id, info.account.id, info.user.id, draft)


@router.delete("/{task_id}/draft", status_code=204)
async def discard_draft(
    task_id: str,
    info: UserInfo = Depends(require_permission("tasks:update")),
    service: TaskService = Depends(get_task_service)
):
    await service.discard_draft(task_id, info.user.id)
    return None
