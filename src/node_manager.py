"""Node command execution.

Defines the command kinds a node action can request, the parameters bound to
a node action, and the executor contract used by tasks:

    result = executor.execute(NodeCommandType.Tags_Update, params)
    result.process_errors()   # raises NodeCommandError if any sub-step failed

Executors collect errors instead of raising so that multi-step commands can
report every failure at once; the caller decides when to surface them.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Protocol, runtime_checkable

from common import run_command, split_csv
from config import find_provider_for_node

logger = logging.getLogger(__name__)


class NodeCommandType(str, Enum):
    """Administrative command kinds for a single node."""
    Tags_Update = 'Tags_Update'
    Disk_Update = 'Disk_Update'
    Update_Mounted_Disks = 'Update_Mounted_Disks'
    Change_Instance_Type = 'Change_Instance_Type'
    Reboot = 'Reboot'
    Pause = 'Pause'
    Resume = 'Resume'

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NodeActionParams:
    """Parameters bound to one node action.

    Attributes:
        node_name: Target node
        command_type: Command kind; must be set before execution
        delete_tags: CSV of tag keys to remove ('' means none)
        tags: Tag key -> value to add or update
        force: Bypass executor safety checks
    """
    node_name: str
    command_type: Optional[NodeCommandType] = None
    delete_tags: str = ''
    tags: Mapping[str, str] = field(default_factory=dict)
    force: bool = False

    def __post_init__(self):
        if isinstance(self.command_type, str) and not isinstance(self.command_type, NodeCommandType):
            object.__setattr__(self, 'command_type', NodeCommandType(self.command_type))
        # Read-only view over a private copy so callers can't mutate params
        object.__setattr__(self, 'tags', MappingProxyType(dict(self.tags or {})))

    @property
    def delete_tag_keys(self) -> frozenset[str]:
        return frozenset(split_csv(self.delete_tags))

    def to_dict(self) -> dict:
        return {
            'node_name': self.node_name,
            'command_type': str(self.command_type) if self.command_type else None,
            'delete_tags': self.delete_tags,
            'tags': dict(self.tags),
            'force': self.force,
        }


class NodeCommandError(Exception):
    """A node command reported one or more failed sub-steps."""

    def __init__(self, node_name: str, command_type: Optional[NodeCommandType], errors: list[str]):
        self.node_name = node_name
        self.command_type = command_type
        self.errors = list(errors)
        super().__init__(
            f"{command_type} failed on node {node_name}: {'; '.join(self.errors)}")


@dataclass
class ExecutionResult:
    """Outcome of a node command, with deferred errors."""
    node_name: str
    command_type: Optional[NodeCommandType] = None
    errors: list[str] = field(default_factory=list)
    output: str = ''

    @property
    def success(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def process_errors(self) -> None:
        """Raise NodeCommandError if any sub-step failed."""
        if self.errors:
            raise NodeCommandError(self.node_name, self.command_type, self.errors)


@runtime_checkable
class NodeCommandExecutor(Protocol):
    """Protocol for collaborators that run commands against a node."""

    def execute(self, command_type: NodeCommandType, params: NodeActionParams) -> ExecutionResult:
        """Run command_type against params.node_name. Blocking."""


EnvLookup = Callable[[str], Mapping[str, str]]


def provider_env_for_node(node_name: str) -> dict[str, str]:
    """Resolve a node's provider environment from site-config.

    Nodes not listed under any provider get an empty environment.
    """
    provider = find_provider_for_node(node_name)
    if provider is None:
        logger.debug(f"No provider lists node {node_name}, using empty provider env")
        return {}
    return provider.env_vars_for_node(node_name)


@dataclass
class ShellNodeCommandExecutor:
    """Runs node commands through an external node-agent program.

    Invocation:
        <agent> instance <command> --node_name <node> [--instance_tags JSON]
                [--remove_tag_keys CSV] [--force]

    The program's environment is the current process environment overlaid
    with the node's provider metadata.

    In dry-run mode commands are logged and appended to `planned` instead of
    being run.
    """
    node_agent: str = 'node-agent'
    timeout: int = 600
    env_lookup: EnvLookup = provider_env_for_node
    dry_run: bool = False
    planned: list[list[str]] = field(default_factory=list, init=False, repr=False)

    def build_command(self, command_type: NodeCommandType, params: NodeActionParams) -> list[str]:
        cmd = [self.node_agent, 'instance', command_type.value.lower(),
               '--node_name', params.node_name]
        if params.tags:
            cmd += ['--instance_tags', json.dumps(dict(params.tags), sort_keys=True)]
        if delete_keys := split_csv(params.delete_tags):
            cmd += ['--remove_tag_keys', ','.join(delete_keys)]
        if params.force:
            cmd.append('--force')
        return cmd

    def build_env(self, node_name: str) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self.env_lookup(node_name))
        return env

    def execute(self, command_type: NodeCommandType, params: NodeActionParams) -> ExecutionResult:
        """Run the node agent for command_type.

        Non-zero exits are recorded on the result. A ConfigError while
        resolving the node's environment propagates.
        """
        result = ExecutionResult(node_name=params.node_name, command_type=command_type)
        cmd = self.build_command(command_type, params)

        if self.dry_run:
            self.planned.append(cmd)
            logger.info(f"[dry-run] Would run: {' '.join(cmd)}")
            return result

        env = self.build_env(params.node_name)
        rc, out, err = run_command(cmd, timeout=self.timeout, env=env)
        result.output = out
        if rc != 0:
            result.add_error(f"{command_type} exited {rc}: {err.strip() or out.strip()}")
        return result
