"""Provision-then-install orchestration."""

import logging

from devopsmate.config import Settings, expand_path
from devopsmate.errors import SSHUnavailableError
from devopsmate.provisioning.installers import default_steps, run_all
from devopsmate.provisioning.provisioner import provision
from devopsmate.provisioning.ssh import wait_for_ssh
from devopsmate.provisioning.types import InstanceConnection

logger = logging.getLogger(__name__)


def log_connection_info(conn: InstanceConnection):
    """Log how to reach the instance."""
    logger.info(f"Instance:  {conn.instance_id}")
    logger.info(f"Public IP: {conn.address}")
    logger.info(f"User:      {conn.username}")
    logger.info(f"SSH key:   {conn.ssh_key}")
    logger.info(f"Password:  {conn.password}")
    logger.info(f"Connect:   ssh -i {conn.ssh_key} {conn.target}")


async def install_software(settings: Settings, conn: InstanceConnection, api_key, dry_run=False):
    """Run the fixed install sequence on an instance that is already up."""
    steps = default_steps(
        api_key,
        settings.region,
        cluster_name=settings.cluster_name,
        cluster_size=settings.cluster_size,
        cluster_nodes=settings.cluster_nodes,
    )
    await run_all(steps, conn, timeout=settings.step_timeout, dry_run=dry_run)
    logger.info("All software installed.")


async def create_compute_instance(settings: Settings, api_key, dry_run=False) -> InstanceConnection:
    """Provision an instance, then install the software sequence on it.

    Raises:
        ProvisionError, ProvisionTimeoutError: provisioning failed; nothing was installed.
        SSHUnavailableError: the instance never accepted SSH.
        InstallError: an install step failed; later steps did not run.
    """
    conn = await provision(
        api_key,
        settings.region,
        expand_path(settings.ssh_key),
        deadline=settings.timeout,
        interval=settings.poll_interval,
        upload_key=settings.upload_key,
        api_url=settings.api_url,
        dry_run=dry_run,
        hostname=settings.hostname,
        size=settings.size,
        disk_image=settings.disk_image,
    )
    logger.info("Instance is active.")
    log_connection_info(conn)

    if not settings.install:
        return conn

    if settings.wait_ssh:
        logger.info("Waiting for SSH connectivity...")
        if not await wait_for_ssh(conn, dry_run=dry_run):
            raise SSHUnavailableError(f"SSH did not become reachable on {conn.target}")

    await install_software(settings, conn, api_key, dry_run=dry_run)
    return conn
