"""Task tree orchestration: run records, failure escalation, execution."""

from commissioner.task_info import TaskInfo, TaskTreeState
from commissioner.failure import DefaultFailureHandler, FailureHandler
from commissioner.commissioner import Commissioner, Task

__all__ = [
    'TaskInfo',
    'TaskTreeState',
    'DefaultFailureHandler',
    'FailureHandler',
    'Commissioner',
    'Task',
]
