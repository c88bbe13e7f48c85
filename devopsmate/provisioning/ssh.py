"""SSH readiness polling."""

import asyncio
import logging

from devopsmate.provisioning.shell import run_shell_cmd
from devopsmate.provisioning.ssh_transport import ssh_base_args

logger = logging.getLogger(__name__)


async def wait_for_ssh(conn, timeout=120, interval=5, dry_run=False):
    """Poll SSH connectivity until success or timeout.

    Returns:
        True if SSH connected, False on timeout.
    """
    args = ssh_base_args(conn.target, conn.ssh_key)
    # Add ConnectTimeout for fast failure during polling
    args.insert(-1, "-o")
    args.insert(-1, "ConnectTimeout=5")
    args.append("true")

    if dry_run:
        await run_shell_cmd(args, dry_run=True)
        return True

    # Bounded by wall time, time spent inside each attempt included
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        rc, _, _ = await run_shell_cmd(args, timeout=min(30, max(1, deadline - loop.time())))
        if rc == 0:
            return True
        await asyncio.sleep(min(interval, max(0, deadline - loop.time())))

    logger.error(f"Timeout after {timeout}s waiting for SSH connectivity to {conn.target}")
    return False
