"""Error taxonomy for provisioning and remote installs.

Every error here is terminal: the CLI logs the message once and exits 1.
"""


class DevOpsMateError(Exception):
    """Base class for all devopsmate errors."""


class ProvisionError(DevOpsMateError):
    """Provisioning failed. The underlying cause is chained as ``__cause__``."""


class ClientInitError(ProvisionError):
    """The provider client could not be built (missing API key or region)."""


class ConfigError(ProvisionError):
    """The instance config could not be assembled from provider lookups."""


class CreateError(ProvisionError):
    """The create-instance request failed."""


class PollError(ProvisionError):
    """A status request failed while waiting for the instance."""


class ProvisionTimeoutError(DevOpsMateError, TimeoutError):
    """The provisioning deadline passed before the instance became active."""


class SSHUnavailableError(DevOpsMateError):
    """SSH never became reachable on the new instance."""


class RemoteCommandError(DevOpsMateError):
    """A remote command exited with a non-zero status."""

    def __init__(self, target, returncode, stderr=""):
        self.target = target
        self.returncode = returncode
        self.stderr = stderr
        message = f"remote command on {target} exited with status {returncode}"
        if stderr:
            message += f": {stderr}"
        super().__init__(message)


class InstallError(DevOpsMateError):
    """An install step failed; later steps were not run."""

    def __init__(self, step_index, step_name, cause=None):
        self.step_index = step_index
        self.step_name = step_name
        self.cause = cause
        message = f"install step {step_index} ({step_name}) failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
