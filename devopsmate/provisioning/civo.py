"""Civo provider: create, inspect and delete compute instances via the Civo REST API."""

import json
import logging
import os
import uuid

import httpx

from devopsmate.errors import ClientInitError
from devopsmate.provisioning.types import DEFAULT_USERNAME, InstanceConnection

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.civo.com"
DEFAULT_SIZE = "g3.medium"
DEFAULT_DISK_IMAGE = "ubuntu-jammy"
ACTIVE_STATUS = "ACTIVE"


class CivoClient:
    """Thin async client for the Civo v2 API, scoped to one region."""

    def __init__(self, api_key, region, api_url=DEFAULT_API_URL, dry_run=False, transport=None):
        if not api_key and not dry_run:
            raise ClientInitError("Civo API key is empty")
        if not region:
            raise ClientInitError("Civo region is empty")
        self.api_key = api_key
        self.region = region
        self.api_url = api_url.rstrip("/")
        self.dry_run = dry_run
        self._transport = transport

    # ── API helpers ───────────────────────────────────────────────

    async def _request(self, method, path, data=None):
        """Make an authenticated Civo API request.

        The region goes into the query string for GET/DELETE and into the
        JSON body for POST.

        Returns:
            Parsed JSON response, or ``None`` in dry-run mode.
        """
        url = f"{self.api_url}{path}"
        params = None
        payload = None
        if method == "POST":
            payload = {**(data or {}), "region": self.region}
        else:
            params = {"region": self.region}

        if self.dry_run:
            logger.info(f"[dry-run] {method} {url}")
            if payload is not None:
                logger.info(f"[dry-run] payload: {json.dumps(payload, indent=2)}")
            return None

        headers = {"Authorization": f"bearer {self.api_key}", "Accept": "application/json"}
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.request(method, url, params=params, json=payload, headers=headers, timeout=60)
        resp.raise_for_status()
        return resp.json()

    async def list_networks(self):
        """GET /v2/networks"""
        return await self._request("GET", "/v2/networks")

    async def default_network(self):
        """Return the region's default network, or None in dry-run mode."""
        networks = await self.list_networks()
        if networks is None:
            return None
        for network in networks:
            if network.get("default"):
                return network
        raise LookupError(f"no default network in region {self.region}")

    async def list_disk_images(self):
        """GET /v2/disk_images"""
        return await self._request("GET", "/v2/disk_images")

    async def find_disk_image(self, name):
        """Find a disk image by exact name, falling back to a name prefix."""
        images = await self.list_disk_images()
        if images is None:
            return None
        for image in images:
            if image.get("name") == name:
                return image
        for image in images:
            if image.get("name", "").startswith(name):
                return image
        raise LookupError(f"disk image '{name}' not found in region {self.region}")

    async def list_ssh_keys(self):
        """GET /v2/sshkeys"""
        return await self._request("GET", "/v2/sshkeys")

    async def add_ssh_key(self, name, public_key):
        """POST /v2/sshkeys"""
        return await self._request("POST", "/v2/sshkeys", {"name": name, "public_key": public_key})

    async def ensure_ssh_key(self, public_key_path):
        """Ensure the SSH public key is registered on Civo.

        Matches existing keys by content (or by name when the listing has
        no key material) and registers the key if not found.

        Returns:
            The SSH key ID, or "dry-run-key-id" in dry-run mode.
        """
        public_key_path = os.path.expanduser(public_key_path)
        if self.dry_run and not os.path.exists(public_key_path):
            return "dry-run-key-id"
        with open(public_key_path) as f:
            public_key = f.read().strip()
        key_name = os.path.basename(public_key_path)

        keys = await self.list_ssh_keys()
        for key in keys or []:
            existing = key.get("public_key", "").strip()
            if existing == public_key or (not existing and key.get("name") == key_name):
                logger.info(f"SSH key already registered (id={key['id']}).")
                return key["id"]

        logger.info(f"Registering SSH key '{key_name}' on Civo...")
        result = await self.add_ssh_key(key_name, public_key)
        if result is None:
            return "dry-run-key-id"
        logger.info(f"SSH key registered (id={result['id']}).")
        return result["id"]

    async def new_instance_config(
        self,
        hostname=None,
        size=DEFAULT_SIZE,
        disk_image=DEFAULT_DISK_IMAGE,
        initial_user=DEFAULT_USERNAME,
        ssh_key_id=None,
    ):
        """Build the create-instance payload for a single instance with a public IP."""
        network = await self.default_network()
        image = await self.find_disk_image(disk_image)
        config = {
            "count": 1,
            "hostname": hostname or f"devopsmate-{uuid.uuid4().hex[:8]}",
            "size": size,
            "public_ip": "create",
            "network_id": network["id"] if network else "dry-run-network-id",
            "template_id": image["id"] if image else "dry-run-image-id",
            "initial_user": initial_user,
        }
        if ssh_key_id:
            config["ssh_key_id"] = ssh_key_id
        return config

    async def create_instance(self, config):
        """POST /v2/instances"""
        return await self._request("POST", "/v2/instances", config)

    async def get_instance(self, instance_id):
        """GET /v2/instances/{id}"""
        return await self._request("GET", f"/v2/instances/{instance_id}")

    async def delete_instance(self, instance_id):
        """DELETE /v2/instances/{id}"""
        return await self._request("DELETE", f"/v2/instances/{instance_id}")


def extract_connection(instance, ssh_key_path):
    """Build an InstanceConnection from an instance record and the caller's key path."""
    return InstanceConnection(
        address=instance.get("public_ip", ""),
        ssh_key=ssh_key_path,
        password=instance.get("initial_password", ""),
        username=instance.get("initial_user") or DEFAULT_USERNAME,
        instance_id=instance.get("id", ""),
    )
