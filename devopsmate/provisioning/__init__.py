"""Instance provisioning: provider client, polling, SSH helpers, installers."""

from devopsmate.provisioning.civo import CivoClient, extract_connection
from devopsmate.provisioning.installers import (
    BUILDPACK,
    JENKINS,
    SONARQUBE,
    CivoKubernetesInstaller,
    RemoteScriptInstaller,
    SoftwareInstaller,
    default_steps,
    run_all,
)
from devopsmate.provisioning.provisioner import provision
from devopsmate.provisioning.shell import run_shell_cmd
from devopsmate.provisioning.ssh import wait_for_ssh
from devopsmate.provisioning.ssh_transport import run_remote_script, ssh_base_args
from devopsmate.provisioning.types import InstanceConnection

__all__ = [
    "InstanceConnection",
    "CivoClient",
    "extract_connection",
    "provision",
    "run_shell_cmd",
    "wait_for_ssh",
    "ssh_base_args",
    "run_remote_script",
    "SoftwareInstaller",
    "RemoteScriptInstaller",
    "CivoKubernetesInstaller",
    "JENKINS",
    "SONARQUBE",
    "BUILDPACK",
    "default_steps",
    "run_all",
]
