"""Default failure escalation for terminally failed tasks."""

import logging
from typing import Callable, Optional, Protocol, runtime_checkable

from commissioner.task_info import TaskInfo, TaskTreeState

logger = logging.getLogger(__name__)

AlertHook = Callable[[TaskInfo, BaseException], None]


@runtime_checkable
class FailureHandler(Protocol):
    """Called once when a task has exhausted its attempts."""

    def __call__(self, task_info: TaskInfo, cause: BaseException) -> None:
        ...


class DefaultFailureHandler:
    """Standard escalation cascade.

    Marks the task's node as errored in the tree state, then runs each alert
    hook (notifications, remediation such as reboots). A hook that raises is
    logged and the remaining hooks still run.
    """

    def __init__(self, state: TaskTreeState, alert_hooks: Optional[list[AlertHook]] = None):
        self.state = state
        self.alert_hooks = list(alert_hooks or [])

    def add_hook(self, hook: AlertHook) -> None:
        self.alert_hooks.append(hook)

    def __call__(self, task_info: TaskInfo, cause: BaseException) -> None:
        logger.error(f"Task {task_info.task_type} ({task_info.task_uuid}) failed: {cause}")
        if task_info.node_name:
            self.state.mark_node_errored(task_info.node_name, str(cause))

        for hook in self.alert_hooks:
            try:
                hook(task_info, cause)
            except Exception:
                logger.exception(f"Failure hook {getattr(hook, '__name__', hook)!r} raised")
