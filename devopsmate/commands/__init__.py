"""CLI commands and the argument checks they share."""

import logging
import sys

from devopsmate.config import resolve_api_key
from devopsmate.redact import register_secret

logger = logging.getLogger(__name__)


def require_api_key(args):
    """Return the Civo API key, exiting if none is set outside dry-run mode."""
    api_key = resolve_api_key(args.api_key)
    if not api_key and not args.dry_run:
        logger.error("Error: Civo API key required. Use --api-key or set CIVO_API_KEY.")
        sys.exit(1)
    register_secret(api_key)
    return api_key or ""


def require_region(settings):
    """Exit unless a region came from the flag or the config file."""
    if not settings.region:
        logger.error("Error: Civo region required. Use --region or set civo.region in the config file.")
        sys.exit(1)
