"""Tests for node command types, params and executors."""

import json
import sys
from dataclasses import FrozenInstanceError
from pathlib import Path
from unittest.mock import patch

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from config import ConfigError
from node_manager import (
    ExecutionResult,
    NodeActionParams,
    NodeCommandError,
    NodeCommandExecutor,
    NodeCommandType,
    ShellNodeCommandExecutor,
    provider_env_for_node,
)


class TestNodeCommandType:
    """Tests for NodeCommandType."""

    def test_value_is_name(self):
        for command_type in NodeCommandType:
            assert command_type.value == command_type.name

    def test_parse(self):
        assert NodeCommandType('Disk_Update') is NodeCommandType.Disk_Update

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            NodeCommandType('disk_update')

    def test_str(self):
        assert str(NodeCommandType.Tags_Update) == 'Tags_Update'


class TestNodeActionParams:
    """Tests for NodeActionParams."""

    def test_defaults(self):
        params = NodeActionParams(node_name='n1')
        assert params.command_type is None
        assert params.delete_tags == ''
        assert dict(params.tags) == {}
        assert params.force is False
        assert params.delete_tag_keys == frozenset()

    def test_command_type_from_string(self):
        params = NodeActionParams(node_name='n1', command_type='Tags_Update')
        assert params.command_type is NodeCommandType.Tags_Update

    def test_delete_tag_keys_is_a_set(self):
        params = NodeActionParams(node_name='n1', delete_tags='a, b,,a ,c')
        assert params.delete_tag_keys == frozenset({'a', 'b', 'c'})

    def test_frozen(self):
        params = NodeActionParams(node_name='n1')
        with pytest.raises(FrozenInstanceError):
            params.force = True

    def test_tags_are_read_only_copy(self):
        tags = {'team': 'db'}
        params = NodeActionParams(node_name='n1', tags=tags)
        tags['team'] = 'changed'
        assert params.tags['team'] == 'db'
        with pytest.raises(TypeError):
            params.tags['new'] = 'x'

    def test_to_dict(self):
        params = NodeActionParams(node_name='n1', command_type=NodeCommandType.Tags_Update,
                                  delete_tags='old', tags={'k': 'v'}, force=True)
        assert params.to_dict() == {
            'node_name': 'n1',
            'command_type': 'Tags_Update',
            'delete_tags': 'old',
            'tags': {'k': 'v'},
            'force': True,
        }


class TestExecutionResult:
    """Tests for deferred error handling."""

    def test_no_errors_is_noop(self):
        result = ExecutionResult(node_name='n1', command_type=NodeCommandType.Reboot)
        assert result.success is True
        result.process_errors()

    def test_errors_raised_together(self):
        result = ExecutionResult(node_name='n1', command_type=NodeCommandType.Disk_Update)
        result.add_error('resize failed')
        result.add_error('remount failed')
        assert result.success is False

        with pytest.raises(NodeCommandError) as exc_info:
            result.process_errors()

        err = exc_info.value
        assert err.node_name == 'n1'
        assert err.command_type is NodeCommandType.Disk_Update
        assert err.errors == ['resize failed', 'remount failed']
        assert 'resize failed; remount failed' in str(err)


class TestShellNodeCommandExecutor:
    """Tests for ShellNodeCommandExecutor."""

    def _executor(self, **kwargs):
        kwargs.setdefault('env_lookup', lambda node: {'KUBECONFIG': f'/kube/{node}'})
        return ShellNodeCommandExecutor(node_agent='/bin/agent', **kwargs)

    def test_satisfies_protocol(self):
        assert isinstance(self._executor(), NodeCommandExecutor)

    def test_build_command_minimal(self):
        params = NodeActionParams(node_name='n1', command_type=NodeCommandType.Reboot)
        cmd = self._executor().build_command(NodeCommandType.Reboot, params)
        assert cmd == ['/bin/agent', 'instance', 'reboot', '--node_name', 'n1']

    def test_build_command_tags(self):
        params = NodeActionParams(node_name='n1', command_type=NodeCommandType.Tags_Update,
                                  tags={'b': '2', 'a': '1'}, delete_tags='x,y,x', force=True)
        cmd = self._executor().build_command(NodeCommandType.Tags_Update, params)
        assert cmd[:5] == ['/bin/agent', 'instance', 'tags_update', '--node_name', 'n1']
        assert json.loads(cmd[cmd.index('--instance_tags') + 1]) == {'a': '1', 'b': '2'}
        assert cmd[cmd.index('--remove_tag_keys') + 1] == 'x,y'
        assert cmd[-1] == '--force'

    def test_env_includes_provider_metadata(self):
        with patch.dict('os.environ', {'PATH': '/usr/bin'}, clear=True):
            env = self._executor().build_env('n1')
        assert env == {'PATH': '/usr/bin', 'KUBECONFIG': '/kube/n1'}

    def test_execute_success(self):
        params = NodeActionParams(node_name='n1', command_type=NodeCommandType.Pause)
        executor = self._executor(timeout=30)
        with patch('node_manager.run_command', return_value=(0, 'paused\n', '')) as mock_run:
            result = executor.execute(NodeCommandType.Pause, params)

        assert result.success is True
        assert result.output == 'paused\n'
        args, kwargs = mock_run.call_args
        assert args[0] == ['/bin/agent', 'instance', 'pause', '--node_name', 'n1']
        assert kwargs['timeout'] == 30
        assert kwargs['env']['KUBECONFIG'] == '/kube/n1'

    def test_execute_failure_is_deferred(self):
        """A failing command records an error instead of raising."""
        params = NodeActionParams(node_name='n1', command_type=NodeCommandType.Disk_Update)
        with patch('node_manager.run_command', return_value=(2, '', 'no space\n')):
            result = self._executor().execute(NodeCommandType.Disk_Update, params)

        assert result.errors == ['Disk_Update exited 2: no space']
        with pytest.raises(NodeCommandError):
            result.process_errors()

    def test_execute_env_error_propagates(self):
        def broken_lookup(node):
            raise ConfigError('bad provider file')

        params = NodeActionParams(node_name='n1', command_type=NodeCommandType.Resume)
        with patch('node_manager.run_command') as mock_run:
            with pytest.raises(ConfigError, match='bad provider file'):
                self._executor(env_lookup=broken_lookup).execute(NodeCommandType.Resume, params)

        mock_run.assert_not_called()

    def test_dry_run_does_not_execute(self):
        params = NodeActionParams(node_name='n1', command_type=NodeCommandType.Reboot)
        executor = self._executor(dry_run=True)
        with patch('node_manager.run_command') as mock_run:
            result = executor.execute(NodeCommandType.Reboot, params)

        mock_run.assert_not_called()
        assert result.success is True
        assert executor.planned == [['/bin/agent', 'instance', 'reboot', '--node_name', 'n1']]

    def test_real_runs_are_not_recorded(self):
        params = NodeActionParams(node_name='n1', command_type=NodeCommandType.Reboot)
        executor = self._executor()
        with patch('node_manager.run_command', return_value=(0, '', '')):
            executor.execute(NodeCommandType.Reboot, params)
            executor.execute(NodeCommandType.Reboot, params)
        assert executor.planned == []


class TestProviderEnvForNode:
    """Tests for resolving a node's env from site-config."""

    def test_resolves_zone_env(self, site_config_dir):
        env = provider_env_for_node('yb-node-1')
        assert env['KUBECONFIG'] == '/etc/kube/us-west1-a.conf'

    def test_unknown_node_empty(self, site_config_dir):
        assert provider_env_for_node('nowhere') == {}

    def test_skips_unrelated_broken_provider(self, site_config_dir):
        (site_config_dir / 'providers' / 'broken.yaml').write_text('code: openstack\n')
        env = provider_env_for_node('yb-node-1')
        assert env['KUBECONFIG'] == '/etc/kube/us-west1-a.conf'
