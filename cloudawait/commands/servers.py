"""Rackspace Cloud Servers examples: create, delete, and publish a web page."""

import argparse
import asyncio
import logging
import sys

from cloudawait.commands import (
    add_rackspace_args,
    find_node,
    load_policies,
    node_address,
    rackspace_credentials,
    run_command,
    wait_until,
)
from cloudawait.config import DEFAULT_RACKSPACE_REGION, load_config, provider_setting
from cloudawait.polling.predicates import all_nodes_in_state, http_ok, nodes_gone, tcp_port_open
from cloudawait.providers.catalog import pick_image_by_name, pick_size_by_ram
from cloudawait.providers.cleanup import CleanupReport, run_step
from cloudawait.providers.drivers import rackspace_driver
from cloudawait.providers.types import ServerInfo

logger = logging.getLogger(__name__)

SERVER_NAME = "cloudawait-example"
PUBLISH_NAME = "cloudawait-example-publish"
DEFAULT_IMAGE = "Ubuntu 22.04 LTS (Jammy Jellyfish)"
DEFAULT_PUBLISH_IMAGE = "CentOS Stream 9"
DEFAULT_RAM_MB = 512
LOGIN_USER = "root"

WEBSERVER_USER_DATA = """#!/bin/bash
yum -y install httpd
/usr/sbin/apachectl start
iptables -I INPUT -p tcp --dport 80 -j ACCEPT
echo 'Hello Cloud Servers' > /var/www/html/index.html
"""


# ── Core logic ─────────────────────────────────────────────────────


async def create_servers(
    driver, name, policies, count=1, image_name=DEFAULT_IMAGE, ram_mb=DEFAULT_RAM_MB, user_data=None, dry_run=False
):
    """Create *count* servers and block until all of them are ACTIVE.

    Servers are named *name*, or ``name-1`` .. ``name-N`` when count > 1.

    Args:
        user_data: optional boot script, delivered through the config drive.

    Returns:
        list of ServerInfo with login IP and admin password, in creation order.
    """
    names = [name] if count == 1 else [f"{name}-{i}" for i in range(1, count + 1)]
    if dry_run:
        logger.info(f"[dry-run] select image '{image_name}' and a {ram_mb} MB flavor")
        for server_name in names:
            logger.info(f"[dry-run] create server {server_name}" + (" with user data" if user_data else ""))
        await wait_until(None, None, policies["server_active"], f"{count} server(s) to become ACTIVE", dry_run=True)
        return [
            ServerInfo(node_id="dry-run-id", host="dry-run-host", username=LOGIN_USER, password="dry-run-password")
            for _ in names
        ]

    logger.info("Images")
    image = pick_image_by_name(await asyncio.to_thread(driver.list_images), image_name)
    logger.info("Flavors")
    size = pick_size_by_ram(await asyncio.to_thread(driver.list_sizes), ram_mb)

    logger.info("Create Server")
    extra = {"ex_userdata": user_data, "ex_config_drive": True} if user_data else {}
    created = []
    for server_name in names:
        created.append(await asyncio.to_thread(driver.create_node, name=server_name, image=image, size=size, **extra))
    # Only the create response carries the admin password
    passwords = {node.id: node.extra.get("password") for node in created}

    ids = ", ".join(node.id for node in created)
    await wait_until(all_nodes_in_state(driver), created, policies["server_active"], f"servers to run: {ids}")

    infos = []
    for node in created:
        node = await find_node(driver, node.id)
        logger.info(f"  {node.name} ({node.id})")
        infos.append(ServerInfo(node_id=node.id, host=node_address(node), username=LOGIN_USER, password=passwords[node.id]))
    return infos


async def delete_servers(driver, name, policies, dry_run=False):
    """Destroy every server whose name starts with *name* and wait until they are gone.

    Returns:
        CleanupReport with one entry per server plus the final wait.
    """
    logger.info("Delete Server")
    report = CleanupReport()
    if dry_run:
        logger.info(f"[dry-run] destroy servers named {name}*")
        await wait_until(None, None, policies["nodes_deleted"], "servers to be deleted", dry_run=True)
        return report

    nodes = [n for n in await asyncio.to_thread(driver.list_nodes) if n.name.startswith(name)]
    if not nodes:
        logger.info(f"  No servers named {name}*")
        return report

    destroyed = []
    for node in nodes:
        logger.info(f"  {node.name} ({node.id})")

        async def destroy(node=node):
            await asyncio.to_thread(driver.destroy_node, node)
            destroyed.append(node)

        await run_step(report, f"destroy {node.id}", destroy)

    async def await_deleted():
        await wait_until(nodes_gone(driver), destroyed, policies["nodes_deleted"], f"servers to be deleted: {name}*")

    if destroyed:
        await run_step(report, "await deletion", await_deleted)
    logger.info(report.summary())
    return report


async def publish(driver, name, policies, image_name=DEFAULT_PUBLISH_IMAGE, ram_mb=DEFAULT_RAM_MB, dry_run=False):
    """Create a server that serves a static page, then wait until the page answers."""
    [info] = await create_servers(
        driver, name, policies, image_name=image_name, ram_mb=ram_mb, user_data=WEBSERVER_USER_DATA, dry_run=dry_run
    )

    logger.info("Configure And Start Webserver")
    probe = tcp_port_open()
    for port, service in ((22, "ssh"), (80, "http")):
        await wait_until(probe, (info.host, port), policies["port_open"], f"{service} on {info.host}", dry_run)

    url = f"http://{info.host}/"
    await wait_until(http_ok(), url, policies["http_ok"], f"web page at {url}", dry_run)
    return info


# ── CLI handlers ───────────────────────────────────────────────────


def _driver_for(args, config):
    if args.dry_run:
        return None
    region = args.region or provider_setting(config, "rackspace", "region", DEFAULT_RACKSPACE_REGION)
    creds = rackspace_credentials(args)
    return rackspace_driver(creds, region)


def _log_login(info):
    logger.info(f"  Login IP: {info.host} Username: {info.username} Password: {info.password}")


def handle_create(args):
    """CLI handler for 'servers create'."""
    run_command(_handle_create, args)


async def _handle_create(args):
    config = load_config(args.config)
    driver = _driver_for(args, config)
    infos = await create_servers(
        driver,
        args.name,
        load_policies(config),
        count=args.count,
        image_name=args.image,
        ram_mb=args.ram,
        dry_run=args.dry_run,
    )
    for info in infos:
        _log_login(info)


def handle_delete(args):
    """CLI handler for 'servers delete'."""
    run_command(_handle_delete, args)


async def _handle_delete(args):
    config = load_config(args.config)
    driver = _driver_for(args, config)
    report = await delete_servers(driver, args.name, load_policies(config), dry_run=args.dry_run)
    if not report.ok:
        sys.exit(1)


def handle_publish(args):
    """CLI handler for 'servers publish'."""
    run_command(_handle_publish, args)


async def _handle_publish(args):
    config = load_config(args.config)
    driver = _driver_for(args, config)
    info = await publish(driver, args.name, load_policies(config), args.image, args.ram, dry_run=args.dry_run)
    _log_login(info)
    logger.info(f"  Go to http://{info.host}")


# ── Registration ───────────────────────────────────────────────────


def _positive_int(value):
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {n}")
    return n


def _add_server_args(parser):
    add_rackspace_args(parser)
    parser.add_argument("--region", default=None, help=f"Rackspace region (default: {DEFAULT_RACKSPACE_REGION})")


def register_servers_command(subparsers):
    """Register the 'servers' command with create/delete/publish actions."""
    servers_parser = subparsers.add_parser("servers", help="Rackspace Cloud Servers examples")
    actions = servers_parser.add_subparsers(dest="action", required=True)

    create = actions.add_parser("create", help="Create a server and wait until it is ACTIVE")
    create.add_argument("--name", default=SERVER_NAME, help=f"Server name (default: {SERVER_NAME})")
    create.add_argument("--image", default=DEFAULT_IMAGE, help=f"Image name (default: {DEFAULT_IMAGE})")
    create.add_argument("--ram", type=int, default=DEFAULT_RAM_MB, help=f"Flavor RAM in MB (default: {DEFAULT_RAM_MB})")
    create.add_argument("--count", type=_positive_int, default=1, help="Number of servers to create (default: 1)")
    _add_server_args(create)
    create.set_defaults(func=handle_create)

    delete = actions.add_parser("delete", help="Delete all servers whose name starts with --name")
    delete.add_argument("--name", default=SERVER_NAME, help=f"Server name prefix (default: {SERVER_NAME})")
    _add_server_args(delete)
    delete.set_defaults(func=handle_delete)

    publish_parser = actions.add_parser("publish", help="Create a server running a web server and publish a page")
    publish_parser.add_argument("--name", default=PUBLISH_NAME, help=f"Server name (default: {PUBLISH_NAME})")
    publish_parser.add_argument(
        "--image", default=DEFAULT_PUBLISH_IMAGE, help=f"Image name (default: {DEFAULT_PUBLISH_IMAGE})"
    )
    publish_parser.add_argument(
        "--ram", type=int, default=DEFAULT_RAM_MB, help=f"Flavor RAM in MB (default: {DEFAULT_RAM_MB})"
    )
    _add_server_args(publish_parser)
    publish_parser.set_defaults(func=handle_publish)
