"""Repository layer for database operations."""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from focusflow.database.change_feed import ChangeFeed, ChangeType, TaskChange
from focusflow.database.models import TaskDB
from focusflow.models.constants import TASKS_COLLECTION
from focusflow.models.task import Task

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task database operations.

    Every successful write is published on the change feed (if one is given)
    after the commit.
    """

    def __init__(self, db: Session, feed: Optional[ChangeFeed] = None):
        self.db = db
        self.feed = feed

    def _publish(self, change_type: ChangeType, task_id: Optional[str]) -> None:
        if self.feed is not None:
            self.feed.publish(TaskChange(TASKS_COLLECTION, change_type, task_id))

    def _get_db(self, task_id: str) -> Optional[TaskDB]:
        return self.db.query(TaskDB).filter(TaskDB.id == task_id).first()

    def create(self, task: Task) -> Task:
        """Create a new task. Storage assigns the id when the task has none."""
        if task.id is None:
            task = task.model_copy(update={"id": str(uuid.uuid4())})
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {task.title[:50]}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise
        self._publish(ChangeType.CREATED, task.id)
        return task_db.to_pydantic()

    def get(self, task_id: str) -> Optional[Task]:
        """Get task by ID."""
        task_db = self._get_db(task_id)
        return task_db.to_pydantic() if task_db else None

    def get_all(self) -> List[Task]:
        """Get all tasks sorted by creation date (newest first)."""
        tasks_db = self.db.query(TaskDB).order_by(desc(TaskDB.created_at)).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def patch(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        """Update only the given fields of a task.

        Returns:
            Updated task, or None if the task does not exist (e.g. deleted meanwhile)
        """
        task_db = self._get_db(task_id)
        if not task_db:
            return None

        task_db.apply_fields({k: v for k, v in fields.items() if k != "id"})
        try:
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Patched task {task_id}: {sorted(fields)}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to patch task {task_id}: {type(e).__name__}: {str(e)}")
            raise
        self._publish(ChangeType.UPDATED, task_id)
        return task_db.to_pydantic()

    def update(self, task: Task) -> Task:
        """Write every field of an existing task (last write wins)."""
        fields = task.model_dump(exclude={"id", "created_at"})
        updated = self.patch(task.id, fields)
        if updated is None:
            raise ValueError(f"Task {task.id} not found")
        return updated

    def delete(self, task_id: str) -> bool:
        """Delete a task by ID."""
        task_db = self._get_db(task_id)
        if not task_db:
            return False

        try:
            self.db.delete(task_db)
            self.db.commit()
            logger.debug(f"Deleted task {task_id}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task {task_id}: {type(e).__name__}: {str(e)}")
            raise
        self._publish(ChangeType.DELETED, task_id)
        return True
