"""Provisioner: create a Civo instance and wait for it to become active.

The create + poll work runs in one background task whose result (a
connection or an exception) is the only way back to the caller. The caller
races that task against the deadline. When the deadline wins, the task is
cancelled so the poller stops calling the API.
"""

import asyncio
import logging
from dataclasses import dataclass

import httpx

from devopsmate.errors import (
    ConfigError,
    CreateError,
    PollError,
    ProvisionTimeoutError,
)
from devopsmate.provisioning.civo import (
    ACTIVE_STATUS,
    DEFAULT_API_URL,
    CivoClient,
    extract_connection,
)
from devopsmate.provisioning.types import InstanceConnection

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE = 600  # 10 minutes
DEFAULT_POLL_INTERVAL = 5

# Failures of a provider call. Programming errors are not wrapped.
_API_ERRORS = (httpx.HTTPError, LookupError, OSError, ValueError)


@dataclass
class _PollState:
    """What the poller has seen so far, for the timeout report."""

    create_sent: bool = False
    instance_id: str | None = None
    status: str | None = None


async def _create_and_poll(client, ssh_key_path, interval, state, upload_key, instance_options):
    try:
        ssh_key_id = await client.ensure_ssh_key(f"{ssh_key_path}.pub") if upload_key else None
        config = await client.new_instance_config(ssh_key_id=ssh_key_id, **instance_options)
    except _API_ERRORS as e:
        raise ConfigError(f"Failed to create a new instance config: {e}") from e

    logger.info(f"Creating Civo instance (hostname={config['hostname']}, size={config['size']}, region={client.region})...")
    state.create_sent = True
    try:
        instance = await client.create_instance(config)
        if client.dry_run:
            instance = {"id": "dry-run-id"}
        instance_id = instance["id"]
    except _API_ERRORS as e:
        raise CreateError(f"Failed to create a new instance: {e}") from e
    state.instance_id = instance_id

    if client.dry_run:
        logger.info(f"[dry-run] Would poll every {interval}s for status '{ACTIVE_STATUS}'")
        return InstanceConnection(
            address="dry-run-host",
            ssh_key=ssh_key_path,
            password="dry-run-password",
            username=config["initial_user"],
            instance_id=instance_id,
        )

    logger.info(f"Instance created (id={instance_id}). Waiting for {ACTIVE_STATUS} status...")
    while True:
        try:
            info = await client.get_instance(instance_id)
        except _API_ERRORS as e:
            raise PollError(f"Error retrieving instance details: {e}") from e
        state.status = info.get("status")
        if state.status == ACTIVE_STATUS:
            return extract_connection(info, ssh_key_path)
        logger.debug(f"Instance {instance_id} status: {state.status}")
        await asyncio.sleep(interval)


async def provision(
    api_key,
    region,
    ssh_key_path,
    deadline=DEFAULT_DEADLINE,
    interval=DEFAULT_POLL_INTERVAL,
    upload_key=False,
    api_url=DEFAULT_API_URL,
    dry_run=False,
    **instance_options,
):
    """Create one instance and return its connection details once it is active.

    Args:
        ssh_key_path: path to the SSH private key; not checked here.
        deadline: seconds to wait for the instance to become active.
        interval: seconds between status polls.
        upload_key: register ``<ssh_key_path>.pub`` and attach it to the instance.
        instance_options: hostname, size, disk_image, initial_user.

    Raises:
        ProvisionError: client, config, create or poll failure (no retries).
        ProvisionTimeoutError: the deadline passed first.
    """
    state = _PollState()

    async def _run():
        client = CivoClient(api_key, region, api_url=api_url, dry_run=dry_run)
        return await _create_and_poll(client, ssh_key_path, interval, state, upload_key, instance_options)

    task = asyncio.create_task(_run())
    try:
        done, _ = await asyncio.wait({task}, timeout=deadline)
    finally:
        # Also covers the caller being cancelled while waiting
        if not task.done():
            task.cancel()

    if done:
        return task.result()

    # Let the cancellation land; the poller cannot produce a result after this
    await asyncio.wait({task})

    if state.instance_id:
        logger.warning(
            f"Instance {state.instance_id} was left in status '{state.status}'. "
            f"Delete it with: devopsmate vm delete civo --instance-id {state.instance_id} --region {region}"
        )
    elif state.create_sent:
        logger.warning(
            f"The create request was still in flight; an instance may exist in region {region}. "
            "Check the Civo dashboard or the instance list and delete it by hand."
        )
    raise ProvisionTimeoutError(f"Operation timed out after {deadline}s waiting for status '{ACTIVE_STATUS}'")
