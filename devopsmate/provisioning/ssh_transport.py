"""SSH transport: run scripts on remote hosts through the ssh client."""

import logging

from devopsmate.errors import RemoteCommandError
from devopsmate.provisioning.shell import run_shell_cmd

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20


def ssh_base_args(address, ssh_key, ssh_port=22, verbose=False):
    """Build base SSH arguments. Host key checking is disabled."""
    args = ["ssh"]
    if verbose:
        args.append("-v")
    args += [
        "-o", "StrictHostKeyChecking=no",
        "-o", "UserKnownHostsFile=/dev/null",
        "-o", "BatchMode=yes",
        "-o", "ServerAliveInterval=60",
        "-o", "ServerAliveCountMax=5",
    ]
    if ssh_key:
        args += ["-i", ssh_key]
    if ssh_port and ssh_port != 22:
        args += ["-p", str(ssh_port)]
    args.append(address)
    return args


def _stderr_tail(stderr):
    # ssh -v output is long; the failing command's own lines come last
    lines = [line for line in stderr.splitlines() if not line.startswith("debug1:")]
    return "\n".join(lines[-STDERR_TAIL_LINES:])


async def run_remote_script(conn, script, timeout=1800, dry_run=False):
    """Run a multi-line shell script on the instance, blocking until it exits.

    The script runs under ``set -e`` so any failing line fails the whole
    invocation.

    Raises:
        RemoteCommandError: the ssh invocation exited non-zero.
    """
    payload = "set -e\n" + script
    if dry_run:
        logger.info(f"[dry-run] ssh {conn.target}:")
        for line in script.strip().splitlines():
            logger.info(f"[dry-run]   {line}")
        return

    args = ssh_base_args(conn.target, conn.ssh_key, verbose=True)
    args.append(payload)
    rc, _, stderr = await run_shell_cmd(args, timeout=timeout, log_output=True)
    if rc != 0:
        raise RemoteCommandError(conn.target, rc, _stderr_tail(stderr))
