"""Remote software installers and the ordered install sequence.

Each installer runs one shell payload on the instance over ssh. The
sequence is fixed: later payloads assume the earlier ones already ran
(package index refreshed, Docker present, ...).
"""

import logging
import shlex
import textwrap
from dataclasses import dataclass
from typing import Protocol

from devopsmate.errors import InstallError, RemoteCommandError
from devopsmate.provisioning.ssh_transport import run_remote_script
from devopsmate.provisioning.types import InstanceConnection

logger = logging.getLogger(__name__)

DEFAULT_STEP_TIMEOUT = 1800
PACK_VERSION = "0.36.0"


class SoftwareInstaller(Protocol):
    """One unit of remote software installation."""

    name: str

    async def install(self, conn: InstanceConnection, timeout: float = DEFAULT_STEP_TIMEOUT, dry_run: bool = False) -> None:
        """Run the install on the instance. Raises on failure."""
        ...


@dataclass(frozen=True)
class RemoteScriptInstaller:
    """Installer defined entirely by a static shell payload."""

    name: str
    script: str

    async def install(self, conn, timeout=DEFAULT_STEP_TIMEOUT, dry_run=False):
        await run_remote_script(conn, self.script, timeout=timeout, dry_run=dry_run)


JENKINS = RemoteScriptInstaller(
    name="Jenkins",
    script=textwrap.dedent(
        """\
        sudo apt-get update -y
        sudo apt-get install -y fontconfig openjdk-17-jre wget
        sudo wget -q -O /usr/share/keyrings/jenkins-keyring.asc https://pkg.jenkins.io/debian-stable/jenkins.io-2023.key
        echo "deb [signed-by=/usr/share/keyrings/jenkins-keyring.asc] https://pkg.jenkins.io/debian-stable binary/" | sudo tee /etc/apt/sources.list.d/jenkins.list > /dev/null
        sudo apt-get update -y
        sudo apt-get install -y jenkins
        sudo systemctl start jenkins
        """
    ),
)

SONARQUBE = RemoteScriptInstaller(
    name="SonarQube",
    script=textwrap.dedent(
        """\
        command -v docker > /dev/null || curl -fsSL https://get.docker.com | sudo sh
        sudo sysctl -w vm.max_map_count=524288
        sudo docker rm -f sonarqube > /dev/null 2>&1 || true
        sudo docker run -d --name sonarqube --restart unless-stopped -p 9000:9000 sonarqube:lts-community
        """
    ),
)

BUILDPACK = RemoteScriptInstaller(
    name="Buildpack",
    script=textwrap.dedent(
        f"""\
        curl -sSL https://github.com/buildpacks/pack/releases/download/v{PACK_VERSION}/pack-v{PACK_VERSION}-linux.tgz | sudo tar -C /usr/local/bin/ --no-same-owner -xz pack
        pack --version
        """
    ),
)


@dataclass(frozen=True)
class CivoKubernetesInstaller:
    """Install the Civo CLI on the instance and create a managed cluster from it.

    Blocks until the cluster reports ready (``--wait``).
    """

    api_key: str
    region: str
    cluster_name: str = "my-cluster"
    size: str = "g3.k3s.medium"
    nodes: int = 3
    name: str = "Civo Kubernetes"

    @property
    def script(self):
        env = f"CIVO_TOKEN={shlex.quote(self.api_key)}"
        cluster = shlex.quote(self.cluster_name)
        region = shlex.quote(self.region)
        return textwrap.dedent(
            f"""\
            curl -sL https://civo.com/get | sudo sh
            command -v kubectl > /dev/null || sudo snap install kubectl --classic
            mkdir -p ~/.kube
            {env} civo kubernetes create {cluster} --region {region} --size={shlex.quote(self.size)} --nodes={self.nodes} --wait
            {env} civo kubernetes config {cluster} --region {region} --save --local-path ~/.kube/config
            kubectl get nodes
            """
        )

    async def install(self, conn, timeout=DEFAULT_STEP_TIMEOUT, dry_run=False):
        await run_remote_script(conn, self.script, timeout=timeout, dry_run=dry_run)


def default_steps(api_key, region, cluster_name="my-cluster", cluster_size="g3.k3s.medium", cluster_nodes=3):
    """The fixed install sequence, in execution order."""
    return [
        JENKINS,
        SONARQUBE,
        BUILDPACK,
        CivoKubernetesInstaller(
            api_key=api_key,
            region=region,
            cluster_name=cluster_name,
            size=cluster_size,
            nodes=cluster_nodes,
        ),
    ]


async def run_all(steps, conn, timeout=DEFAULT_STEP_TIMEOUT, dry_run=False):
    """Run install steps strictly in order, stopping at the first failure.

    Earlier steps are not rolled back.

    Raises:
        InstallError: with the 1-based index of the failed step.
    """
    for index, step in enumerate(steps, start=1):
        logger.info(f"Installing {step.name}...")
        try:
            await step.install(conn, timeout=timeout, dry_run=dry_run)
        except (RemoteCommandError, OSError) as e:
            raise InstallError(index, step.name, e) from e
        logger.info(f"{step.name} installed.")
