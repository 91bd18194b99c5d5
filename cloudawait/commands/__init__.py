"""Shared plumbing for the example commands: common flags, waits, error boundary."""

import asyncio
import logging
import sys

from libcloud.common.exceptions import BaseHTTPError
from libcloud.common.types import LibcloudError

from cloudawait.config import DEFAULT_POLICIES, ConfigError, poll_policy, resolve_credentials
from cloudawait.polling import ConfigurationError, PollTimeoutError, await_condition, require
from cloudawait.polling.predicates import SnapshotError
from cloudawait.providers.types import public_ip
from cloudawait.redact import register_secret

logger = logging.getLogger(__name__)

# Errors a handler turns into "Error: ..." plus exit code 1
HANDLED_ERRORS = (
    ConfigError,
    ConfigurationError,
    PollTimeoutError,
    SnapshotError,
    LookupError,
    LibcloudError,
    BaseHTTPError,
)


def load_policies(config: dict) -> dict:
    """Build every named PollPolicy from *config* (defaults for unset ones)."""
    return {name: poll_policy(config, name) for name in DEFAULT_POLICIES}


async def wait_until(predicate, value, policy, description, dry_run=False):
    """Block until *predicate* holds for *value*, or raise PollTimeoutError.

    Returns:
        *value* once the condition holds.
    """
    if dry_run:
        logger.info(f"[dry-run] Poll every {policy.period}s (up to {policy.max_wait}s) for {description}")
        return value
    outcome = await await_condition(predicate, value, policy)
    return require(outcome, f"Timeout waiting for {description}")


async def find_node(driver, node_id):
    """Refetch a node by id.

    Raises:
        LookupError: if the node is not listed.
    """
    for node in await asyncio.to_thread(driver.list_nodes):
        if node.id == node_id:
            return node
    raise LookupError(f"Node {node_id} not found")


def node_address(node):
    """Public IPv4 address of *node*.

    Raises:
        LookupError: if the node has no public address yet.
    """
    ip = public_ip(node)
    if ip is None:
        raise LookupError(f"Node {node.id} has no public IP address")
    return ip


def credentials_from_args(args, identity_env, credential_env):
    """Resolve credentials from --identity/--credential or the environment."""
    creds = resolve_credentials(args.identity, args.credential, identity_env, credential_env)
    register_secret(creds.identity)
    register_secret(creds.credential)
    return creds


def add_common_args(parser, identity_help, credential_help):
    """Flags shared by every example command."""
    parser.add_argument("--identity", "-i", default=None, help=identity_help)
    parser.add_argument("--credential", "-c", default=None, help=credential_help)
    parser.add_argument("--config", default=None, help="YAML settings file (default: ~/.cloudawait.yaml)")
    parser.add_argument("--dry-run", action="store_true", help="Log planned calls without contacting the provider")


def run_command(main, args):
    """Run an async handler, converting expected failures into exit code 1."""
    try:
        return asyncio.run(main(args))
    except HANDLED_ERRORS as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


def add_rackspace_args(parser):
    """Common flags with Rackspace credential help text."""
    add_common_args(
        parser,
        identity_help="Rackspace username (fallback: RACKSPACE_USERNAME env var)",
        credential_help="Rackspace API key (fallback: RACKSPACE_API_KEY env var)",
    )


def rackspace_credentials(args):
    return credentials_from_args(args, "RACKSPACE_USERNAME", "RACKSPACE_API_KEY")
