"""Unit tests for create_compute_instance / install_software."""

from unittest.mock import AsyncMock, patch

import pytest

from devopsmate.config import Settings
from devopsmate.errors import CreateError, SSHUnavailableError
from devopsmate.orchestrate import create_compute_instance, install_software
from devopsmate.provisioning.types import InstanceConnection


@pytest.fixture
def settings():
    return Settings(region="LON1", ssh_key="/keys/id_ed25519", timeout=30, poll_interval=1)


async def test_connection_reaches_installer_unchanged(settings):
    conn = InstanceConnection(address="1.2.3.4", ssh_key="/keys/id_ed25519", password="pw123", instance_id="i-1")

    with (
        patch("devopsmate.orchestrate.provision", new_callable=AsyncMock, return_value=conn) as mock_provision,
        patch("devopsmate.orchestrate.wait_for_ssh", new_callable=AsyncMock, return_value=True),
        patch("devopsmate.orchestrate.run_all", new_callable=AsyncMock) as mock_run_all,
    ):
        result = await create_compute_instance(settings, "api-key")

    assert result is conn
    assert mock_run_all.call_args[0][1] is conn
    steps = mock_run_all.call_args[0][0]
    assert [s.name for s in steps] == ["Jenkins", "SonarQube", "Buildpack", "Civo Kubernetes"]
    assert mock_provision.call_args[0] == ("api-key", "LON1", "/keys/id_ed25519")
    assert mock_provision.call_args[1]["deadline"] == 30
    assert mock_provision.call_args[1]["interval"] == 1


async def test_provision_failure_installs_nothing(settings):
    with (
        patch("devopsmate.orchestrate.provision", new_callable=AsyncMock, side_effect=CreateError("boom")),
        patch("devopsmate.orchestrate.run_all", new_callable=AsyncMock) as mock_run_all,
    ):
        with pytest.raises(CreateError):
            await create_compute_instance(settings, "api-key")
    mock_run_all.assert_not_awaited()


async def test_no_install(settings, conn):
    settings.install = False
    with (
        patch("devopsmate.orchestrate.provision", new_callable=AsyncMock, return_value=conn),
        patch("devopsmate.orchestrate.wait_for_ssh", new_callable=AsyncMock) as mock_wait,
        patch("devopsmate.orchestrate.run_all", new_callable=AsyncMock) as mock_run_all,
    ):
        await create_compute_instance(settings, "api-key")
    mock_wait.assert_not_awaited()
    mock_run_all.assert_not_awaited()


async def test_ssh_unreachable(settings, conn):
    with (
        patch("devopsmate.orchestrate.provision", new_callable=AsyncMock, return_value=conn),
        patch("devopsmate.orchestrate.wait_for_ssh", new_callable=AsyncMock, return_value=False),
        patch("devopsmate.orchestrate.run_all", new_callable=AsyncMock) as mock_run_all,
    ):
        with pytest.raises(SSHUnavailableError):
            await create_compute_instance(settings, "api-key")
    mock_run_all.assert_not_awaited()


async def test_connection_info_logged(settings, conn, caplog):
    settings.install = False
    with patch("devopsmate.orchestrate.provision", new_callable=AsyncMock, return_value=conn):
        with caplog.at_level("INFO"):
            await create_compute_instance(settings, "api-key")
    assert "Public IP: 1.2.3.4" in caplog.text
    assert "Password:  pw123" in caplog.text
    assert "ssh -i /home/test/.ssh/id_ed25519 civo@1.2.3.4" in caplog.text


async def test_install_software_uses_settings(settings, conn):
    settings.cluster_name = "ci"
    settings.step_timeout = 99
    with patch("devopsmate.orchestrate.run_all", new_callable=AsyncMock) as mock_run_all:
        await install_software(settings, conn, "api-key", dry_run=True)

    steps = mock_run_all.call_args[0][0]
    assert steps[-1].cluster_name == "ci"
    assert steps[-1].api_key == "api-key"
    assert mock_run_all.call_args[1] == {"timeout": 99, "dry_run": True}
