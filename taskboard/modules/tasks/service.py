import logging
import re
import uuid
from typing import List, Optional, Tuple

from taskboard.core.errors import NotFoundError
from taskboard.core.local_store import LocalStore
from taskboard.core.store import Record, Store, utc_now
from taskboard.modules.tasks.schemas import Task, TaskCounts, TaskCreate, TaskDraft, TaskUpdate

logger = logging.getLogger(__name__)

DRAFT_TABLE = "task_draft"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w-]+")


def _matches_query(row: Record, query: str) -> bool:
    q = query.lower()
    return q in (row.get("title") or "").lower() or q in (row.get("description_markdown") or "").lower()


class TaskService:
    def __init__(self, store: Store, local_store: Optional[LocalStore] = None):
        self.store = store
        self.local_store = local_store

    async def list_tasks(
        self,
        account_id: str,
        status: Optional[str] = None,
        query: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Task]:
        """List an account's tasks, newest first. query filters on title and description."""
        match = {"account_id": account_id}
        if status:
            match["status"] = status
        if query and query.strip():
            # Text search is applied locally, so fetch the full status page first
            rows = await self.store.select_matching(Task, match, order_by="created_at", descending=True)
            rows = [row for row in rows if _matches_query(row, query.strip())]
            rows = rows[offset:offset + limit]
        else:
            rows = await self.store.select_matching(
                Task, match, limit=limit, offset=offset, order_by="created_at", descending=True
            )
        return [Task(**row) for row in rows]

    async def count_by_status(self, account_id: str) -> TaskCounts:
        rows = await self.store.select_matching(Task, {"account_id": account_id})
        counts = TaskCounts()
        for row in rows:
            status = row.get("status") or "active"
            if status in ("active", "completed", "archived"):
                setattr(counts, status, getattr(counts, status) + 1)
        return counts

    async def create_task(self, account_id: str, user_id: str, task_data: TaskCreate) -> Task:
        now = utc_now()
        row = await self.store.insert(Task, {
            "id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
            "account_id": account_id,
            "created_by_user_id": user_id,
            "updated_by_user_id": user_id,
            "title": task_data.title.strip() or "New task",
            "status": "active",
            "description_markdown": task_data.description_markdown,
        })
        logger.info(f"Created task {row['id']} in account {account_id}")
        return Task(**row)

    async def _get_row(self, task_id: str, account_id: str) -> Record:
        row = await self.store.select_first_by_id(Task, task_id)
        if row is None or row.get("account_id") != account_id:
            raise NotFoundError("Task not found")
        return row

    async def get_task(self, task_id: str, account_id: str) -> Task:
        return Task(**await self._get_row(task_id, account_id))

    async def _apply(self, row: Record, user_id: str, fields: Record) -> Task:
        fields = {**fields, "updated_at": utc_now(), "updated_by_user_id": user_id}
        updated = await self.store.update(Task, row["id"], fields, previous=row)
        return Task(**updated)

    async def update_task(self, task_id: str, account_id: str, user_id: str, task_data: TaskUpdate) -> Task:
        row = await self._get_row(task_id, account_id)
        fields = {}
        if task_data.title is not None:
            fields["title"] = task_data.title.strip()
        if task_data.description_markdown is not None:
            fields["description_markdown"] = task_data.description_markdown
        if not fields:
            return Task(**row)
        task = await self._apply(row, user_id, fields)
        await self.discard_draft(task_id, user_id)
        return task

    async def complete_task(self, task_id: str, account_id: str, user_id: str) -> Task:
        row = await self._get_row(task_id, account_id)
        if row.get("status") == "completed":
            return Task(**row)
        return await self._apply(row, user_id, {"status": "completed", "completed_at": utc_now()})

    async def reopen_task(self, task_id: str, account_id: str, user_id: str) -> Task:
        row = await self._get_row(task_id, account_id)
        return await self._apply(row, user_id, {"status": "active", "completed_at": None})

    async def archive_task(self, task_id: str, account_id: str, user_id: str) -> Task:
        row = await self._get_row(task_id, account_id)
        if row.get("status") == "archived":
            return Task(**row)
        return await self._apply(row, user_id, {"status": "archived", "archived_at": utc_now()})

    async def unarchive_task(self, task_id: str, account_id: str, user_id: str) -> Task:
        row = await self._get_row(task_id, account_id)
        return await self._apply(row, user_id, {"status": "active", "archived_at": None})

    async def delete_task(self, task_id: str, account_id: str) -> Task:
        row = await self._get_row(task_id, account_id)
        await self.store.delete(Task, task_id)
        logger.info(f"Deleted task {task_id} from account {account_id}")
        return Task(**row)

    # -- drafts ---------------------------------------------------------------

    def _draft_id(self, task_id: str, user_id: str) -> str:
        return f"{user_id}:{task_id}"

    async def get_draft(self, task_id: str, user_id: str) -> Optional[TaskDraft]:
        if self.local_store is None:
            return None
        value = await self.local_store.get_item(DRAFT_TABLE, self._draft_id(task_id, user_id))
        return TaskDraft(**value) if value else None

    async def save_draft(self, task_id: str, account_id: str, user_id: str, draft: TaskDraft) -> TaskDraft:
        """Keep unsaved edits for a task on this host until they are saved or discarded"""
        await self._get_row(task_id, account_id)
        if self.local_store is None:
            return draft
        value = {
            "title": draft.title,
            "description_markdown": draft.description_markdown,
            "saved_at": utc_now(),
        }
        await self.local_store.set_item(DRAFT_TABLE, self._draft_id(task_id, user_id), value)
        return TaskDraft(**value)

    async def discard_draft(self, task_id: str, user_id: str) -> None:
        if self.local_store is None:
            return
        draft_id = self._draft_id(task_id, user_id)
        if await self.local_store.get_item(DRAFT_TABLE, draft_id) is not None:
            await self.local_store.delete_item(DRAFT_TABLE, draft_id)

    # -- export ---------------------------------------------------------------

    def export_markdown(self, task: Task) -> Tuple[str, str]:
        """Render a task as a markdown document. Returns (filename, content)."""
        created = task.created_at.isoformat() if task.created_at else ""
        updated = task.updated_at.isoformat() if task.updated_at else ""
        header = (
            "---\n"
            f"title: {task.title}\n"
            f"status: {task.status or 'active'}\n"
            f"created: {created}\n"
            f"updated: {updated}\n"
            f"account_id: {task.account_id}\n"
            f"task_id: {task.id}\n"
            "---\n\n"
        )
        content = f"# {task.title}\n\n{header}{task.description_markdown or ''}\n"
        safe_title = _UNSAFE_FILENAME_CHARS.sub("-", task.title or "task") or "task"
        return f"{safe_title}.md", content
