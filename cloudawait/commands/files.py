"""Rackspace Cloud Files example: list objects in a container."""

import asyncio
import logging

from cloudawait.commands import add_rackspace_args, rackspace_credentials, run_command
from cloudawait.config import DEFAULT_RACKSPACE_REGION, load_config, provider_setting
from cloudawait.providers.drivers import cloudfiles_driver

logger = logging.getLogger(__name__)

CONTAINER = "cloudawait-example"
DEFAULT_PREFIX = "createObjectFromString"


async def list_objects(driver, container_name, prefix=DEFAULT_PREFIX):
    """Log all objects in the container, then only those starting with *prefix*.

    Returns:
        (all_objects, filtered_objects) tuple of lists.
    """
    container = await asyncio.to_thread(driver.get_container, container_name)

    logger.info("List Objects")
    objects = await asyncio.to_thread(driver.list_container_objects, container)
    for obj in objects:
        logger.info(f"  {obj.name} ({obj.size} bytes)")

    logger.info("List Objects With Filtering")
    filtered = await asyncio.to_thread(driver.list_container_objects, container, prefix=prefix)
    for obj in filtered:
        logger.info(f"  {obj.name} ({obj.size} bytes)")

    return objects, filtered


def handle_list_objects(args):
    """CLI handler for 'files list-objects'."""
    run_command(_handle_list_objects, args)


async def _handle_list_objects(args):
    config = load_config(args.config)
    if args.dry_run:
        logger.info(f"[dry-run] list objects in container {args.container}")
        logger.info(f"[dry-run] list objects in container {args.container} with prefix '{args.prefix}'")
        return
    region = args.region or provider_setting(config, "rackspace", "region", DEFAULT_RACKSPACE_REGION)
    creds = rackspace_credentials(args)
    await list_objects(cloudfiles_driver(creds, region), args.container, args.prefix)


def register_files_command(subparsers):
    """Register the 'files' command with the list-objects action."""
    files_parser = subparsers.add_parser("files", help="Rackspace Cloud Files examples")
    actions = files_parser.add_subparsers(dest="action", required=True)

    listing = actions.add_parser("list-objects", help="List objects in a container")
    listing.add_argument("--container", default=CONTAINER, help=f"Container name (default: {CONTAINER})")
    listing.add_argument("--prefix", default=DEFAULT_PREFIX, help=f"Filter prefix (default: {DEFAULT_PREFIX})")
    listing.add_argument("--region", default=None, help=f"Rackspace region (default: {DEFAULT_RACKSPACE_REGION})")
    add_rackspace_args(listing)
    listing.set_defaults(func=handle_list_objects)
