"""Run records for task trees.

Tracks per-task state (Created, Running, Success, Failure) and per-node
status, and persists them to disk so task history survives the process.
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from config import load_site_settings

logger = logging.getLogger(__name__)

CREATED = 'Created'
RUNNING = 'Running'
SUCCESS = 'Success'
FAILURE = 'Failure'


@dataclass
class TaskInfo:
    """Per-task run record.

    Attributes:
        task_type: Registered task name (e.g. 'node-action')
        node_name: Target node, if the task acts on one
        details: Task parameters as a plain dict
        task_uuid: Unique id for this task run
        state: Created, Running, Success or Failure
        attempts: Number of run() attempts started
        retryable: False once a non-retryable error ended the task
        error: Error message of the last failed attempt
    """
    task_type: str
    node_name: Optional[str] = None
    details: dict = field(default_factory=dict)
    task_uuid: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: str = CREATED
    attempts: int = 0
    retryable: bool = True
    error: Optional[str] = None
    started_at: Optional[float] = None
    completed_at: Optional[float] = None

    def start_attempt(self) -> None:
        self.state = RUNNING
        self.attempts += 1
        if self.started_at is None:
            self.started_at = time.time()

    def succeed(self) -> None:
        self.state = SUCCESS
        self.completed_at = time.time()
        self.error = None

    def fail(self, error: str, retryable: bool = True) -> None:
        self.state = FAILURE
        self.completed_at = time.time()
        self.error = error
        self.retryable = retryable

    @property
    def duration(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return self.completed_at - self.started_at
        return None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            'task_uuid': self.task_uuid,
            'task_type': self.task_type,
            'state': self.state,
            'attempts': self.attempts,
            'retryable': self.retryable,
        }
        if self.node_name is not None:
            d['node_name'] = self.node_name
        if self.details:
            d['details'] = self.details
        if self.error is not None:
            d['error'] = self.error
        if self.started_at is not None:
            d['started_at'] = self.started_at
        if self.completed_at is not None:
            d['completed_at'] = self.completed_at
        return d

    @classmethod
    def from_dict(cls, data: dict) -> 'TaskInfo':
        return cls(
            task_type=data['task_type'],
            node_name=data.get('node_name'),
            details=data.get('details', {}),
            task_uuid=data['task_uuid'],
            state=data.get('state', CREATED),
            attempts=data.get('attempts', 0),
            retryable=data.get('retryable', True),
            error=data.get('error'),
            started_at=data.get('started_at'),
            completed_at=data.get('completed_at'),
        )


class TaskTreeState:
    """Tree-level run record with save/load.

    Holds the task records in execution order and the status of every node
    the failure cascade has touched.

    State is persisted to {state_dir}/{tree_name}/tasks.json.
    """

    def __init__(self, tree_name: str, state_dir: Optional[Path] = None):
        """Initialize task tree state.

        Args:
            tree_name: Task tree identifier
            state_dir: Root directory for state files
        """
        self.tree_name = tree_name
        self.state_dir = state_dir
        self._tasks: list[TaskInfo] = []
        self._node_status: dict[str, dict[str, str]] = {}
        self.started_at: Optional[float] = None
        self.completed_at: Optional[float] = None

    def add_task(self, task_type: str, node_name: Optional[str] = None,
                 details: Optional[dict] = None) -> TaskInfo:
        """Register a task for tracking."""
        info = TaskInfo(task_type=task_type, node_name=node_name, details=details or {})
        self._tasks.append(info)
        return info

    def get_task(self, task_uuid: str) -> TaskInfo:
        """Get task record by uuid.

        Raises:
            KeyError: If task not registered
        """
        for info in self._tasks:
            if info.task_uuid == task_uuid:
                return info
        raise KeyError(task_uuid)

    @property
    def tasks(self) -> list[TaskInfo]:
        return list(self._tasks)

    @property
    def failed_tasks(self) -> list[TaskInfo]:
        return [t for t in self._tasks if t.state == FAILURE]

    def mark_node_errored(self, node_name: str, error: str) -> None:
        self._node_status[node_name] = {'status': 'errored', 'error': error}

    def node_status(self, node_name: str) -> Optional[dict[str, str]]:
        return self._node_status.get(node_name)

    def start(self) -> None:
        self.started_at = time.time()

    def finish(self) -> None:
        self.completed_at = time.time()

    def _default_path(self) -> Path:
        if self.state_dir is None:
            self.state_dir = load_site_settings().state_dir
        return self.state_dir / self.tree_name / 'tasks.json'

    def save(self, path: Optional[Path] = None) -> Path:
        """Save state to JSON file.

        Args:
            path: Optional override path. Default: {state_dir}/{tree}/tasks.json

        Returns:
            Path where state was saved
        """
        if path is None:
            path = self._default_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            'tree_name': self.tree_name,
            'started_at': self.started_at,
            'completed_at': self.completed_at,
            'tasks': [info.to_dict() for info in self._tasks],
            'nodes': dict(self._node_status),
        }
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        logger.debug(f"Saved task tree state to {path}")
        return path

    @classmethod
    def load(cls, tree_name: str, state_dir: Optional[Path] = None,
             path: Optional[Path] = None) -> 'TaskTreeState':
        """Load state from JSON file.

        Raises:
            FileNotFoundError: If state file doesn't exist
        """
        state = cls(tree_name, state_dir)
        if path is None:
            path = state._default_path()

        with open(path, encoding='utf-8') as f:
            data = json.load(f)

        state.started_at = data.get('started_at')
        state.completed_at = data.get('completed_at')
        state._tasks = [TaskInfo.from_dict(t) for t in data.get('tasks', [])]
        state._node_status = dict(data.get('nodes', {}))

        logger.debug(f"Loaded task tree state from {path}")
        return state
