"""Install command: run the install sequence on an existing host."""

import asyncio
import logging
import sys

from devopsmate.commands import require_api_key, require_region
from devopsmate.config import expand_path, load_settings
from devopsmate.errors import DevOpsMateError
from devopsmate.orchestrate import install_software
from devopsmate.provisioning.types import DEFAULT_USERNAME, InstanceConnection

logger = logging.getLogger(__name__)


def handle_install(args):
    """Handle the install command."""
    settings = load_settings(args.config).with_overrides(region=args.region, ssh_key=args.ssh_key)
    require_region(settings)
    api_key = require_api_key(args)
    conn = InstanceConnection(address=args.host, ssh_key=expand_path(settings.ssh_key), username=args.user)
    try:
        asyncio.run(install_software(settings, conn, api_key, dry_run=args.dry_run))
    except DevOpsMateError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


def register_install_command(subparsers):
    """Register the install subcommand."""
    parser = subparsers.add_parser("install", help="Install the toolchain on an existing host")
    parser.add_argument("--host", required=True, help="Host address (IP or DNS name)")
    parser.add_argument("--user", default=DEFAULT_USERNAME, help=f"SSH user (default: {DEFAULT_USERNAME})")
    parser.add_argument("--ssh-key", default=None, help="Path to SSH private key (default: ~/.ssh/id_ed25519)")
    parser.add_argument("--region", default=None, help="Civo region for the Kubernetes cluster")
    parser.add_argument("--api-key", default=None, help="Civo API key (fallback: CIVO_API_KEY or CIVO_TOKEN env var)")
    parser.add_argument("--dry-run", action="store_true", help="Print commands without executing")
    parser.set_defaults(func=handle_install)
