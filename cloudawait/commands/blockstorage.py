"""Rackspace Cloud Block Storage examples: snapshot a volume, list snapshots."""

import asyncio
import logging

from cloudawait.commands import (
    add_rackspace_args,
    load_policies,
    rackspace_credentials,
    run_command,
    wait_until,
)
from cloudawait.config import (
    DEFAULT_RACKSPACE_REGION,
    DEFAULT_RACKSPACE_REGIONS,
    load_config,
    provider_list,
    provider_setting,
)
from cloudawait.polling.predicates import snapshot_available
from cloudawait.providers.drivers import rackspace_driver

logger = logging.getLogger(__name__)

VOLUME_NAME = "cloudawait-example"


async def find_volume(driver, name):
    """Return the first volume whose name starts with *name*.

    Raises:
        LookupError: if there is none.
    """
    for volume in await asyncio.to_thread(driver.list_volumes):
        if volume.name and volume.name.startswith(name):
            return volume
    raise LookupError(f"{name} not found. Create a volume named '{name}' first.")


async def create_snapshot(driver, name, policies, dry_run=False):
    """Snapshot the example volume and wait for the snapshot to become available.

    Returns:
        The VolumeSnapshot (None in dry-run mode).
    """
    logger.info("Create Snapshot")
    if dry_run:
        logger.info(f"[dry-run] snapshot first volume named {name}*")
        await wait_until(None, None, policies["snapshot_available"], "snapshot to become available", dry_run=True)
        return None

    volume = await find_volume(driver, name)
    snapshot = await asyncio.to_thread(
        driver.create_volume_snapshot, volume, name=name, ex_description=f"Snapshot of {volume.id}"
    )
    await wait_until(snapshot_available(driver), snapshot, policies["snapshot_available"], f"snapshot of volume: {volume.id}")
    logger.info(f"  {snapshot.name} ({snapshot.id})")
    return snapshot


async def list_snapshots(driver_for_region, regions):
    """Log every snapshot, grouped by region.

    Args:
        driver_for_region: callable returning a compute driver for a region name.
    """
    logger.info("List Snapshots")
    for region in regions:
        logger.info(f"  {region}")
        driver = driver_for_region(region)
        for snapshot in await asyncio.to_thread(driver.ex_list_snapshots):
            logger.info(f"    {snapshot.name} ({snapshot.id}) {snapshot.state} {snapshot.size} GB")


# ── CLI handlers ───────────────────────────────────────────────────


def handle_create_snapshot(args):
    """CLI handler for 'blockstorage create-snapshot'."""
    run_command(_handle_create_snapshot, args)


async def _handle_create_snapshot(args):
    config = load_config(args.config)
    driver = None
    if not args.dry_run:
        region = args.region or provider_setting(config, "rackspace", "region", DEFAULT_RACKSPACE_REGION)
        creds = rackspace_credentials(args)
        driver = rackspace_driver(creds, region)
    await create_snapshot(driver, args.name, load_policies(config), dry_run=args.dry_run)


def handle_list_snapshots(args):
    """CLI handler for 'blockstorage list-snapshots'."""
    run_command(_handle_list_snapshots, args)


async def _handle_list_snapshots(args):
    config = load_config(args.config)
    regions = args.region or provider_list(config, "rackspace", "regions", DEFAULT_RACKSPACE_REGIONS)
    if args.dry_run:
        for region in regions:
            logger.info(f"[dry-run] list snapshots in {region}")
        return
    creds = rackspace_credentials(args)
    await list_snapshots(lambda region: rackspace_driver(creds, region), regions)


# ── Registration ───────────────────────────────────────────────────


def register_blockstorage_command(subparsers):
    """Register the 'blockstorage' command with create-snapshot/list-snapshots actions."""
    bs_parser = subparsers.add_parser("blockstorage", help="Rackspace Cloud Block Storage examples")
    actions = bs_parser.add_subparsers(dest="action", required=True)

    create = actions.add_parser("create-snapshot", help="Snapshot the example volume")
    create.add_argument("--name", default=VOLUME_NAME, help=f"Volume name prefix and snapshot name (default: {VOLUME_NAME})")
    create.add_argument("--region", default=None, help=f"Rackspace region (default: {DEFAULT_RACKSPACE_REGION})")
    add_rackspace_args(create)
    create.set_defaults(func=handle_create_snapshot)

    listing = actions.add_parser("list-snapshots", help="List snapshots in every configured region")
    listing.add_argument(
        "--region",
        action="append",
        default=None,
        help="Region to list (repeatable; default: rackspace.regions from config)",
    )
    add_rackspace_args(listing)
    listing.set_defaults(func=handle_list_snapshots)
