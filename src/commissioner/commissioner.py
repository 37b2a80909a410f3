"""Task tree execution.

The commissioner creates tasks with their dependencies injected, runs them
in order, retries failed attempts up to each task's retry limit, and hands
terminal failures to the task's own failure hook.
"""

import logging
import time
from typing import Any, Optional, Protocol, runtime_checkable

from commissioner.failure import DefaultFailureHandler, FailureHandler
from commissioner.task_info import FAILURE, SUCCESS, TaskInfo, TaskTreeState
from config import ConfigError
from node_manager import NodeCommandExecutor
from tasks import get_task_class

logger = logging.getLogger(__name__)


@runtime_checkable
class Task(Protocol):
    """Protocol for task tree steps.

    Class attributes:
        name: Registered task identifier (e.g., 'node-action')
    """
    name: str

    def run(self) -> None:
        """Perform the step. Success is returning without raising."""
        ...

    def get_retry_limit(self) -> int:
        """Extra attempts allowed after the first failure."""
        ...

    def on_failure(self, task_info: TaskInfo, cause: BaseException) -> None:
        """Called once after the final attempt failed."""
        ...


class Commissioner:
    """Coordinates task tree execution."""

    def __init__(
        self,
        tree_name: str,
        executor: NodeCommandExecutor,
        state: Optional[TaskTreeState] = None,
        failure_handler: Optional[FailureHandler] = None,
        persist: bool = False,
    ):
        self.tree_name = tree_name
        self.executor = executor
        self.state = state or TaskTreeState(tree_name)
        self.failure_handler = failure_handler or DefaultFailureHandler(self.state)
        self.persist = persist
        self._queue: list[tuple[Task, TaskInfo]] = []

    def create_task(self, task_type: str, params: Any) -> Task:
        """Instantiate a registered task with this tree's collaborators."""
        task_class = get_task_class(task_type)
        return task_class(
            params=params,
            executor=self.executor,
            failure_handler=self.failure_handler,
        )

    def add_task(self, task: Task) -> TaskInfo:
        """Queue a task and register its run record."""
        params = getattr(task, 'params', None)
        info = self.state.add_task(
            task_type=task.name,
            node_name=getattr(params, 'node_name', None),
            details=params.to_dict() if hasattr(params, 'to_dict') else {},
        )
        self._queue.append((task, info))
        return info

    def run(self) -> bool:
        """Run all queued tasks. Returns True if all succeeded.

        The tree stops at the first task that fails terminally. On a repeat
        run, tasks that already succeeded are skipped and a task that already
        failed terminally stops the tree again without being re-run.
        """
        logger.info(f"Starting task tree '{self.tree_name}' ({len(self._queue)} tasks)")
        self.state.start()
        start_time = time.time()
        all_passed = True

        try:
            for task, info in self._queue:
                if info.state == SUCCESS:
                    continue
                if info.state == FAILURE:
                    logger.info(f"Task {task.name} already failed, not re-running")
                    all_passed = False
                    break
                if not self._run_task(task, info):
                    all_passed = False
                    break
        finally:
            self.state.finish()
            if self.persist:
                self.state.save()

        logger.info(f"Task tree completed in {time.time() - start_time:.1f}s")
        return all_passed

    def _run_task(self, task: Task, info: TaskInfo) -> bool:
        max_attempts = task.get_retry_limit() + 1
        cause: Optional[BaseException] = None

        while info.attempts < max_attempts:
            info.start_attempt()
            logger.info(f"Running task {task.name} (attempt {info.attempts}/{max_attempts})")
            try:
                task.run()
            except ConfigError as e:
                logger.error(f"Task {task.name} misconfigured: {e}")
                info.fail(str(e), retryable=False)
                cause = e
                break
            except Exception as e:
                logger.warning(f"Task {task.name} attempt {info.attempts} failed: {e}")
                info.fail(str(e))
                cause = e
                continue
            info.succeed()
            logger.info(f"Task {task.name} succeeded")
            return True

        assert cause is not None
        logger.error(f"Task {task.name} failed after {info.attempts} attempt(s)")
        task.on_failure(info, cause)
        return False
