#!/usr/bin/env python3
"""CLI entry point for node-commissioner.

Noun-action subcommands:
- action: Run node actions (run/types)
- provider: Provider cloud metadata (list/show/update)

Examples:
    node-commissioner action run --node yb-node-1 --type Tags_Update --tag team=db
    node-commissioner provider show k8s-west --zone us-west1-a --region us-west1
    node-commissioner provider update k8s-west KUBECONFIG_STORAGE_CLASSES=ssd
"""

import argparse
import json
import logging
import sys
from typing import Optional

from commissioner import Commissioner, TaskTreeState
from common import parse_key_values
from config import ConfigError, list_providers, load_provider_config, load_site_settings, save_provider_config
from node_manager import NodeActionParams, NodeCommandType, ShellNodeCommandExecutor
from tasks.instance_actions import NodeActionTask, failure_policy

# Noun commands (noun-action subcommands)
NOUN_COMMANDS = {
    "action": "Run node actions (run/types)",
    "provider": "Provider cloud metadata (list/show/update)",
}

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool, json_output: bool) -> None:
    """Log to stdout normally, stderr when stdout carries JSON."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr if json_output else sys.stdout)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def print_usage():
    """Print top-level usage showing noun commands."""
    print("Usage: node-commissioner <noun> <action> [options]")
    print()
    print("Commands:")
    for noun, desc in NOUN_COMMANDS.items():
        print(f"  {noun:<12} {desc}")
    print()
    print("Run 'node-commissioner <noun> --help' for command-specific options.")


def _command_type(value: str) -> NodeCommandType:
    try:
        return NodeCommandType(value)
    except ValueError:
        choices = ', '.join(t.value for t in NodeCommandType)
        raise argparse.ArgumentTypeError(f"invalid command type '{value}' (choose from {choices})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='node-commissioner',
        description='Run node actions and manage provider metadata',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    nouns = parser.add_subparsers(dest='noun')

    # action
    action = nouns.add_parser('action', help=NOUN_COMMANDS['action'])
    action_verbs = action.add_subparsers(dest='verb')

    run = action_verbs.add_parser('run', help='Run a node action')
    run.add_argument('--node', required=True, help='Target node name')
    run.add_argument('--type', dest='command_type', type=_command_type,
                     help='Command type (e.g. Tags_Update, Disk_Update)')
    run.add_argument('--tag', action='append', default=[], metavar='KEY=VALUE',
                     help='Tag to add or update (repeatable)')
    run.add_argument('--delete-tags', default='', metavar='CSV',
                     help='Comma-separated tag keys to remove')
    run.add_argument('--force', action='store_true', help='Bypass executor safety checks')
    run.add_argument('--tree', default=None, help='Task tree name (default: node-action-<node>)')
    run.add_argument('--dry-run', action='store_true', help='Show the node command without running it')
    run.add_argument('--persist', action='store_true', help='Save task tree state to the state directory')
    run.add_argument('--json', dest='json_output', action='store_true',
                     help='Print task records as JSON')

    action_verbs.add_parser('types', help='List command types and failure policies')

    # provider
    provider = nouns.add_parser('provider', help=NOUN_COMMANDS['provider'])
    provider_verbs = provider.add_subparsers(dest='verb')

    provider_verbs.add_parser('list', help='List configured providers')

    show = provider_verbs.add_parser('show', help='Show environment for a provider, region, zone or node')
    show.add_argument('name', help='Provider name')
    show.add_argument('--region', help='Region name')
    show.add_argument('--zone', help='Zone name (requires --region)')
    show.add_argument('--node', help='Resolve region/zone from a node placement')

    update = provider_verbs.add_parser('update', help='Merge KEY=VALUE settings into provider metadata')
    update.add_argument('name', help='Provider name')
    update.add_argument('settings', nargs='+', metavar='KEY=VALUE')
    update.add_argument('--region', help='Region name')
    update.add_argument('--zone', help='Zone name (requires --region)')

    return parser


def cmd_action_run(args) -> int:
    """Run a single node action through a one-task tree."""
    try:
        tags = parse_key_values(args.tag)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    settings = load_site_settings()
    executor = ShellNodeCommandExecutor(
        node_agent=settings.node_agent,
        timeout=settings.command_timeout,
        dry_run=args.dry_run,
    )
    tree_name = args.tree or f"node-action-{args.node}"
    commissioner = Commissioner(
        tree_name,
        executor=executor,
        state=TaskTreeState(tree_name, state_dir=settings.state_dir),
        persist=args.persist,
    )
    params = NodeActionParams(
        node_name=args.node,
        command_type=args.command_type,
        delete_tags=args.delete_tags,
        tags=tags,
        force=args.force,
    )
    commissioner.add_task(commissioner.create_task(NodeActionTask.name, params))

    success = commissioner.run()

    if args.json_output:
        print(json.dumps([t.to_dict() for t in commissioner.state.tasks], indent=2))
    else:
        for info in commissioner.state.tasks:
            line = f"{info.task_type} on {info.node_name}: {info.state} after {info.attempts} attempt(s)"
            if info.error:
                line += f" - {info.error}"
            print(line)
    return 0 if success else 1


def cmd_action_types(_args) -> int:
    for command_type in NodeCommandType:
        print(f"  {command_type.value:<24} {failure_policy(command_type).value}")
    return 0


def cmd_provider_list(_args) -> int:
    providers = list_providers()
    if not providers:
        print("No providers configured")
        return 0
    for name in providers:
        provider = load_provider_config(name)
        print(f"  {name:<24} {provider.code}")
    return 0


def cmd_provider_show(args) -> int:
    provider = load_provider_config(args.name)
    if args.node:
        env = provider.env_vars_for_node(args.node)
    else:
        env = provider.env_vars(region=args.region, zone=args.zone)
    print(json.dumps(env, indent=2, sort_keys=True))
    return 0


def cmd_provider_update(args) -> int:
    try:
        settings = parse_key_values(args.settings)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    provider = load_provider_config(args.name)
    known = set(type(provider.metadata).env_keys())
    unknown = sorted(set(settings) - known)
    if unknown:
        logger.warning(f"Ignoring keys not used by {provider.code} providers: {', '.join(unknown)}")

    provider.update(settings, region=args.region, zone=args.zone)
    path = save_provider_config(provider)
    logger.info(f"Updated provider '{provider.name}' ({path})")
    return 0


COMMANDS = {
    ('action', 'run'): cmd_action_run,
    ('action', 'types'): cmd_action_types,
    ('provider', 'list'): cmd_provider_list,
    ('provider', 'show'): cmd_provider_show,
    ('provider', 'update'): cmd_provider_update,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose, getattr(args, 'json_output', False))

    handler = COMMANDS.get((args.noun, getattr(args, 'verb', None)))
    if handler is None:
        print_usage()
        return 1

    try:
        return handler(args)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
