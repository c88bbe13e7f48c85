"""Unit tests for provision(): create once, poll to ACTIVE, race the deadline."""

import asyncio
import time
from unittest.mock import patch

import httpx
import pytest

from devopsmate.errors import (
    ClientInitError,
    ConfigError,
    CreateError,
    PollError,
    ProvisionError,
    ProvisionTimeoutError,
)
from devopsmate.provisioning.provisioner import provision
from devopsmate.provisioning.types import InstanceConnection

KEY_PATH = "/home/test/.ssh/id_ed25519"
INTERVAL = 0.02


@pytest.fixture
def patched_client(fake_client):
    with patch("devopsmate.provisioning.provisioner.CivoClient", return_value=fake_client) as factory:
        yield factory


async def test_active_on_first_poll(fake_client, patched_client):
    fake_client.get_instance.return_value = {
        "id": "inst-123",
        "status": "ACTIVE",
        "public_ip": "1.2.3.4",
        "initial_password": "pw123",
        "initial_user": "civo",
    }

    conn = await provision("key", "LON1", KEY_PATH, deadline=5, interval=INTERVAL)

    assert conn == InstanceConnection(
        address="1.2.3.4", ssh_key=KEY_PATH, password="pw123", username="civo", instance_id="inst-123"
    )
    fake_client.create_instance.assert_awaited_once()
    fake_client.get_instance.assert_awaited_once_with("inst-123")
    patched_client.assert_called_once_with("key", "LON1", api_url="https://api.civo.com", dry_run=False)


async def test_polls_until_active(fake_client, patched_client):
    pending = {"id": "inst-123", "status": "BUILDING"}
    active = {"id": "inst-123", "status": "ACTIVE", "public_ip": "5.6.7.8", "initial_password": "pw"}
    fake_client.get_instance.side_effect = [pending, pending, active]

    conn = await provision("key", "LON1", KEY_PATH, deadline=5, interval=INTERVAL)

    assert conn.address == "5.6.7.8"
    assert fake_client.get_instance.await_count == 3


async def test_never_active_times_out(fake_client, patched_client):
    """Deadline of one poll interval while status stays PENDING."""
    start = time.monotonic()
    with pytest.raises(ProvisionTimeoutError):
        await provision("key", "LON1", KEY_PATH, deadline=INTERVAL, interval=INTERVAL)
    assert time.monotonic() - start < 1.0


async def test_timeout_is_builtin_timeout_error(patched_client):
    with pytest.raises(TimeoutError):
        await provision("key", "LON1", KEY_PATH, deadline=INTERVAL, interval=INTERVAL)


async def test_timeout_stops_poller(fake_client, patched_client):
    with pytest.raises(ProvisionTimeoutError):
        await provision("key", "LON1", KEY_PATH, deadline=0.1, interval=INTERVAL)

    calls = fake_client.get_instance.await_count
    await asyncio.sleep(INTERVAL * 5)
    assert fake_client.get_instance.await_count == calls


async def test_timeout_logs_leftover_instance(fake_client, patched_client, caplog):
    with caplog.at_level("WARNING"):
        with pytest.raises(ProvisionTimeoutError):
            await provision("key", "LON1", KEY_PATH, deadline=0.1, interval=INTERVAL)
    assert "inst-123" in caplog.text
    assert "PENDING" in caplog.text


async def test_active_after_deadline_is_not_returned(fake_client, patched_client, caplog):
    """A poll still in flight at the deadline is cancelled, never turned into a result."""
    active = {"id": "inst-123", "status": "ACTIVE", "public_ip": "1.2.3.4", "initial_password": "pw123"}

    async def slow_get_instance(instance_id):
        await asyncio.sleep(0.3)
        return active

    fake_client.get_instance.side_effect = slow_get_instance

    with caplog.at_level("WARNING"):
        with pytest.raises(ProvisionTimeoutError):
            await provision("key", "LON1", KEY_PATH, deadline=0.05, interval=INTERVAL)

    calls = fake_client.get_instance.await_count
    await asyncio.sleep(0.4)
    assert fake_client.get_instance.await_count == calls == 1
    assert "inst-123" in caplog.text
    assert "1.2.3.4" not in caplog.text


async def test_timeout_during_create_warns_instance_may_exist(fake_client, patched_client, caplog):
    async def slow_create(config):
        await asyncio.sleep(0.3)
        return {"id": "inst-123"}

    fake_client.create_instance.side_effect = slow_create

    with caplog.at_level("WARNING"):
        with pytest.raises(ProvisionTimeoutError):
            await provision("key", "LON1", KEY_PATH, deadline=0.05, interval=INTERVAL)

    assert "may exist in region LON1" in caplog.text
    fake_client.get_instance.assert_not_awaited()


async def test_create_failure_skips_polling(fake_client, patched_client):
    request = httpx.Request("POST", "https://api.civo.com/v2/instances")
    fake_client.create_instance.side_effect = httpx.HTTPStatusError(
        "quota exceeded", request=request, response=httpx.Response(403, request=request)
    )

    with pytest.raises(CreateError) as exc_info:
        await provision("key", "LON1", KEY_PATH, deadline=5, interval=INTERVAL)

    assert isinstance(exc_info.value, ProvisionError)
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)
    fake_client.get_instance.assert_not_awaited()


async def test_create_response_without_id(fake_client, patched_client):
    fake_client.create_instance.return_value = {"result": "failed"}
    with pytest.raises(CreateError):
        await provision("key", "LON1", KEY_PATH, deadline=5, interval=INTERVAL)
    fake_client.get_instance.assert_not_awaited()


async def test_config_failure(fake_client, patched_client):
    fake_client.new_instance_config.side_effect = LookupError("no default network in region LON1")

    with pytest.raises(ConfigError, match="no default network"):
        await provision("key", "LON1", KEY_PATH, deadline=5, interval=INTERVAL)

    fake_client.create_instance.assert_not_awaited()


async def test_poll_failure(fake_client, patched_client):
    fake_client.get_instance.side_effect = httpx.ConnectError("connection refused")

    with pytest.raises(PollError, match="connection refused"):
        await provision("key", "LON1", KEY_PATH, deadline=5, interval=INTERVAL)


async def test_client_init_failure():
    with pytest.raises(ClientInitError):
        await provision("", "LON1", KEY_PATH, deadline=5, interval=INTERVAL)


async def test_upload_key_attaches_key_id(fake_client, patched_client):
    fake_client.get_instance.return_value = {"id": "inst-123", "status": "ACTIVE", "public_ip": "1.2.3.4"}

    await provision("key", "LON1", KEY_PATH, deadline=5, interval=INTERVAL, upload_key=True, size="g3.large")

    fake_client.ensure_ssh_key.assert_awaited_once_with(f"{KEY_PATH}.pub")
    fake_client.new_instance_config.assert_awaited_once_with(ssh_key_id="key-1", size="g3.large")


async def test_caller_cancellation_stops_poller(fake_client, patched_client):
    task = asyncio.create_task(provision("key", "LON1", KEY_PATH, deadline=60, interval=INTERVAL))
    await asyncio.sleep(INTERVAL * 3)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    await asyncio.sleep(INTERVAL)
    calls = fake_client.get_instance.await_count
    await asyncio.sleep(INTERVAL * 5)
    assert fake_client.get_instance.await_count == calls


async def test_dry_run_returns_placeholder(caplog):
    with caplog.at_level("INFO"):
        conn = await provision("", "LON1", KEY_PATH, deadline=5, interval=INTERVAL, dry_run=True, hostname="ci-host")

    assert conn.address == "dry-run-host"
    assert conn.ssh_key == KEY_PATH
    assert "[dry-run] POST https://api.civo.com/v2/instances" in caplog.text
    assert "ci-host" in caplog.text
