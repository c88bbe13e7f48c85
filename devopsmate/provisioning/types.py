"""Shared data types for the provisioner and installers."""

from dataclasses import dataclass

DEFAULT_USERNAME = "civo"


@dataclass(frozen=True)
class InstanceConnection:
    """Connection details of a provisioned instance.

    Built once when the instance turns active and handed unchanged to
    every install step.
    """

    address: str  # public IP
    ssh_key: str  # path to SSH private key
    password: str = ""  # generated by the provider
    username: str = DEFAULT_USERNAME
    instance_id: str = ""

    @property
    def target(self) -> str:
        """SSH target string (user@host)."""
        return f"{self.username}@{self.address}" if self.username else self.address
