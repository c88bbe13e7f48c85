"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys
from unittest.mock import AsyncMock

import pytest

import devopsmate.redact as redact_module
from devopsmate.provisioning.types import InstanceConnection

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the devopsmate CLI as a subprocess."""

    def _run(*args, env=None):
        full_env = {k: v for k, v in os.environ.items() if k not in ("CIVO_API_KEY", "CIVO_TOKEN")}
        full_env.update(env or {})
        result = subprocess.run(
            [sys.executable, "-m", "devopsmate.devopsmate", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
            env=full_env,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture(autouse=True)
def _reset_redaction():
    """Keep runtime-registered secrets from leaking between tests."""
    redact_module._registered.clear()
    yield
    redact_module._registered.clear()


# ── Unit-test fixtures ──────────────────────────────────────────────


@pytest.fixture
def conn():
    """Connection details of an active instance."""
    return InstanceConnection(
        address="1.2.3.4",
        ssh_key="/home/test/.ssh/id_ed25519",
        password="pw123",
        username="civo",
        instance_id="inst-123",
    )


@pytest.fixture
def fake_client():
    """A CivoClient stand-in with AsyncMock API methods.

    ``get_instance`` keeps reporting PENDING until a test changes it.
    """
    client = AsyncMock()
    client.region = "LON1"
    client.dry_run = False
    client.new_instance_config.return_value = {
        "count": 1,
        "hostname": "test-host",
        "size": "g3.medium",
        "public_ip": "create",
        "network_id": "net-1",
        "template_id": "img-1",
        "initial_user": "civo",
    }
    client.create_instance.return_value = {"id": "inst-123", "status": "BUILDING"}
    client.get_instance.return_value = {"id": "inst-123", "status": "PENDING"}
    client.ensure_ssh_key.return_value = "key-1"
    return client
