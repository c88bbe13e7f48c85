"""Shell command execution helper."""

import asyncio
import logging

logger = logging.getLogger(__name__)


async def _read_stream(pipe, lines, level):
    async for raw_line in pipe:
        line = raw_line.decode(errors="replace").rstrip("\n")
        logger.log(level, line)
        lines.append(line)


async def run_shell_cmd(command, dry_run=False, timeout=600, log_output=False):
    """Run a command and return (returncode, stdout, stderr).

    Args:
        command: list of command arguments
        dry_run: if True, log the command instead of executing
        timeout: maximum seconds to wait for the command
        log_output: if True, log stdout lines at INFO and stderr lines at
            DEBUG as they arrive

    Returns:
        (returncode, stdout, stderr) tuple. A timeout or a missing
        executable is reported as returncode 1.

    Cancelling the caller kills the child process.
    """
    if dry_run:
        logger.info(f"[dry-run] {' '.join(command)}")
        return 0, "", ""

    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        logger.error(f"Error: '{command[0]}' not found. Is it installed and on PATH?")
        return 1, "", f"'{command[0]}' not found"

    try:
        if log_output:
            stdout_lines, stderr_lines = [], []
            await asyncio.wait_for(
                asyncio.gather(
                    _read_stream(proc.stdout, stdout_lines, logging.INFO),
                    _read_stream(proc.stderr, stderr_lines, logging.DEBUG),
                    proc.wait(),
                ),
                timeout=timeout,
            )
            return proc.returncode, "\n".join(stdout_lines), "\n".join(stderr_lines)

        stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        stdout = stdout_bytes.decode(errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode(errors="replace") if stderr_bytes else ""
        return proc.returncode, stdout, stderr
    except TimeoutError:
        logger.error(f"Command timed out after {timeout}s: {command[0]}")
        proc.kill()
        await proc.wait()
        return 1, "", f"timed out after {timeout}s"
    except asyncio.CancelledError:
        proc.kill()
        await proc.wait()
        raise
