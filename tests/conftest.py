"""Shared pytest fixtures for node-commissioner tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from node_manager import ExecutionResult  # noqa: E402


class FakeExecutor:
    """Executor that fails the first `failures` calls, then succeeds."""

    def __init__(self, failures: int = 0, errors=None):
        self.failures = failures
        self.errors = errors or ['agent exited 1']
        self.calls = []

    def execute(self, command_type, params):
        self.calls.append((command_type, params))
        result = ExecutionResult(node_name=params.node_name, command_type=command_type)
        if len(self.calls) <= self.failures:
            for error in self.errors:
                result.add_error(error)
        return result


@pytest.fixture
def fake_executor():
    """Executor that always succeeds."""
    return FakeExecutor()


@pytest.fixture
def failing_executor():
    """Executor that fails every attempt."""
    return FakeExecutor(failures=10 ** 6)


@pytest.fixture
def site_config_dir(tmp_path, monkeypatch):
    """Create temporary site-config directory structure.

    Creates minimal site-config with:
    - site.yaml (defaults)
    - providers/k8s-west.yaml (kubernetes, with region/zone overrides)
    - providers/aws-east.yaml (aws, provider level only)
    """
    (tmp_path / 'providers').mkdir(parents=True, exist_ok=True)

    (tmp_path / 'site.yaml').write_text(f"""
defaults:
  node_agent: /opt/commissioner/bin/node-agent
  command_timeout: 120
  state_dir: {tmp_path / 'states'}
""")

    (tmp_path / 'providers' / 'k8s-west.yaml').write_text("""
code: kubernetes
config:
  KUBECONFIG_PROVIDER: gke
  KUBECONFIG_SERVICE_ACCOUNT: yugabyte-platform
  KUBECONFIG_IMAGE_REGISTRY: quay.io/yugabyte/yugabyte
  KUBECONFIG: /etc/kube/provider.conf
regions:
  us-west1:
    config:
      KUBECONFIG_STORAGE_CLASSES: standard
    zones:
      us-west1-a:
        config:
          KUBECONFIG: /etc/kube/us-west1-a.conf
      us-west1-b: {}
nodes:
  yb-node-1:
    region: us-west1
    zone: us-west1-a
  yb-node-2:
    region: us-west1
""")

    (tmp_path / 'providers' / 'aws-east.yaml').write_text("""
code: aws
config:
  AWS_ACCESS_KEY_ID: AKIAEXAMPLE
  AWS_SECRET_ACCESS_KEY: secret
nodes:
  yb-aws-1: {}
""")

    monkeypatch.setenv('COMMISSIONER_SITE_CONFIG', str(tmp_path))
    return tmp_path
