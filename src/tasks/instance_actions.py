"""Node action task: one administrative command against one node."""

import logging
from enum import Enum
from typing import Optional

from commissioner.failure import FailureHandler
from commissioner.task_info import TaskInfo
from config import ConfigError
from node_manager import NodeActionParams, NodeCommandExecutor, NodeCommandType
from tasks import register_task

logger = logging.getLogger(__name__)

RETRY_LIMIT = 2


class FailurePolicy(Enum):
    ESCALATE = 'escalate'
    SUPPRESS = 'suppress'


# Every command kind needs an entry here.
# Disk updates must not trigger the default cascade (it may reboot the node).
FAILURE_POLICIES: dict[NodeCommandType, FailurePolicy] = {
    NodeCommandType.Tags_Update: FailurePolicy.ESCALATE,
    NodeCommandType.Disk_Update: FailurePolicy.SUPPRESS,
    NodeCommandType.Update_Mounted_Disks: FailurePolicy.ESCALATE,
    NodeCommandType.Change_Instance_Type: FailurePolicy.ESCALATE,
    NodeCommandType.Reboot: FailurePolicy.ESCALATE,
    NodeCommandType.Pause: FailurePolicy.ESCALATE,
    NodeCommandType.Resume: FailurePolicy.ESCALATE,
}


def failure_policy(command_type: Optional[NodeCommandType]) -> FailurePolicy:
    """Failure policy for a command kind.

    Unset kinds escalate. Raises KeyError for a kind missing from
    FAILURE_POLICIES.
    """
    if command_type is None:
        return FailurePolicy.ESCALATE
    return FAILURE_POLICIES[command_type]


@register_task
class NodeActionTask:
    """Runs a node command through the executor.

    Retries are owned by the commissioner; this task only reports its retry
    limit and decides whether a terminal failure escalates.
    """
    name = 'node-action'
    description = 'Run an administrative command against one node'

    def __init__(self, params: NodeActionParams, executor: NodeCommandExecutor,
                 failure_handler: FailureHandler):
        self.params = params
        self.executor = executor
        self.failure_handler = failure_handler

    def run(self) -> None:
        if self.params.command_type is None:
            raise ConfigError(f"No command type set for node action on '{self.params.node_name}'")
        if not self.params.node_name:
            raise ConfigError("Node action requires a node name")

        logger.info(
            f"Running node action {self.name} type {self.params.command_type} "
            f"against node {self.params.node_name}")

        self.executor.execute(self.params.command_type, self.params).process_errors()

    def get_retry_limit(self) -> int:
        return RETRY_LIMIT

    def on_failure(self, task_info: TaskInfo, cause: BaseException) -> None:
        if failure_policy(self.params.command_type) is FailurePolicy.SUPPRESS:
            logger.warning(
                f"{self.params.command_type} failed on {self.params.node_name}; "
                f"skipping failure escalation: {cause}")
            return
        self.failure_handler(task_info, cause)
