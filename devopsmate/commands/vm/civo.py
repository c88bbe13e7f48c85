"""Civo provider CLI handlers."""

import asyncio
import logging
import sys

import httpx

from devopsmate.commands import require_api_key, require_region
from devopsmate.config import load_settings
from devopsmate.errors import DevOpsMateError
from devopsmate.orchestrate import create_compute_instance
from devopsmate.provisioning.civo import CivoClient

logger = logging.getLogger(__name__)


# ── CLI handlers ───────────────────────────────────────────────────


def handle_create(args):
    """CLI handler for 'vm create civo'."""
    settings = load_settings(args.config).with_overrides(
        region=args.region,
        ssh_key=args.ssh_key,
        size=args.size,
        disk_image=args.disk_image,
        hostname=args.hostname,
        api_url=args.api_url,
        timeout=args.timeout,
        poll_interval=args.poll_interval,
        upload_key=args.upload_key,
        wait_ssh=args.wait_ssh,
        install=args.install,
    )
    require_region(settings)
    api_key = require_api_key(args)
    try:
        asyncio.run(create_compute_instance(settings, api_key, dry_run=args.dry_run))
    except DevOpsMateError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


def handle_delete(args):
    """CLI handler for 'vm delete civo'."""
    settings = load_settings(args.config).with_overrides(region=args.region, api_url=args.api_url)
    require_region(settings)
    api_key = require_api_key(args)
    try:
        asyncio.run(_delete(settings, api_key, args.instance_id, args.dry_run))
    except (DevOpsMateError, httpx.HTTPError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


async def _delete(settings, api_key, instance_id, dry_run):
    client = CivoClient(api_key, settings.region, api_url=settings.api_url, dry_run=dry_run)
    logger.info(f"Deleting Civo instance '{instance_id}'...")
    await client.delete_instance(instance_id)
    if not dry_run:
        logger.info("Instance deleted.")


# ── Registration ───────────────────────────────────────────────────


def register_create_target(subparsers):
    """Register the civo provider under 'vm create'."""
    parser = subparsers.add_parser("civo", help="Create a Civo instance and install the toolchain on it")
    parser.add_argument("--region", default=None, help="Civo region code (e.g. LON1)")
    parser.add_argument("--ssh-key", default=None, help="Path to SSH private key (default: ~/.ssh/id_ed25519)")
    parser.add_argument("--api-key", default=None, help="Civo API key (fallback: CIVO_API_KEY or CIVO_TOKEN env var)")
    parser.add_argument("--size", default=None, help="Instance size (default: g3.medium)")
    parser.add_argument("--disk-image", default=None, help="Disk image name (default: ubuntu-jammy)")
    parser.add_argument("--hostname", default=None, help="Instance hostname (default: random)")
    parser.add_argument("--api-url", default=None, help="API base URL (default: https://api.civo.com)")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for ACTIVE status (default: 600)")
    parser.add_argument("--poll-interval", type=float, default=None, help="Seconds between status polls (default: 5)")
    parser.add_argument("--upload-key", action="store_true", default=None, help="Register <ssh-key>.pub on Civo and attach it")
    parser.add_argument("--no-wait-ssh", dest="wait_ssh", action="store_false", default=None, help="Skip the SSH readiness wait")
    parser.add_argument("--no-install", dest="install", action="store_false", default=None, help="Only provision, install nothing")
    parser.add_argument("--dry-run", action="store_true", help="Print requests and commands without executing")
    parser.set_defaults(func=handle_create)


def register_delete_target(subparsers):
    """Register the civo provider under 'vm delete'."""
    parser = subparsers.add_parser("civo", help="Delete a Civo instance")
    parser.add_argument("--instance-id", required=True, help="Civo instance ID")
    parser.add_argument("--region", default=None, help="Civo region code (e.g. LON1)")
    parser.add_argument("--api-key", default=None, help="Civo API key (fallback: CIVO_API_KEY or CIVO_TOKEN env var)")
    parser.add_argument("--api-url", default=None, help="API base URL (default: https://api.civo.com)")
    parser.add_argument("--dry-run", action="store_true", help="Print requests without executing")
    parser.set_defaults(func=handle_delete)
