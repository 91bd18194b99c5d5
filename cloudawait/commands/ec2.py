"""EC2 examples: LAMP server create/destroy and a Windows instance launcher."""

import asyncio
import logging
import sys

from libcloud.compute.types import KeyPairDoesNotExistError, NodeState

from cloudawait.commands import (
    add_common_args,
    credentials_from_args,
    find_node,
    load_policies,
    node_address,
    run_command,
    wait_until,
)
from cloudawait.config import DEFAULT_EC2_REGION, load_config, provider_setting
from cloudawait.polling.predicates import node_in_state, nodes_gone, tcp_port_open
from cloudawait.providers.catalog import newest_matching_image, pick_size_by_id
from cloudawait.providers.cleanup import CleanupReport, ResourceNotFound, run_step
from cloudawait.providers.drivers import ec2_driver
from cloudawait.providers.types import ServerInfo

logger = logging.getLogger(__name__)

LAMP_PORTS = (80, 8080, 443, 22)
DEFAULT_LAMP_IMAGE = "ami-ccf615a5"
DEFAULT_INSTANCE_TYPE = "m1.small"
DEFAULT_WINDOWS_NAME = "cloudawait-example-windows"
DEFAULT_IMAGE_PATTERN = "Windows_Server-2008-R2_SP1-English-64Bit-Base-"
DEFAULT_AMI_OWNER = "801119661308"
RDP_PORT = 3389

LAMP_USER_DATA = """#!/bin/bash
apt-get -y update
apt-get -y install apache2 mysql-server php libapache2-mod-php openjdk-8-jdk-headless
systemctl enable --now apache2
"""


# ── Lookups ────────────────────────────────────────────────────────


async def find_instance_by_key_name(driver, key_name):
    """Return the first non-terminated instance launched with *key_name*.

    Raises:
        ResourceNotFound: if there is none.
    """
    for node in await asyncio.to_thread(driver.list_nodes):
        if node.extra.get("key_name") == key_name and node.state != NodeState.TERMINATED:
            return node
    raise ResourceNotFound(f"no running instance with key name '{key_name}'")


async def _await_ports(ip, services, policies, dry_run=False):
    """Wait for each (port, service) in *services* to accept TCP connections."""
    probe = tcp_port_open()
    for port, service in services:
        logger.info(f"{ip} awaiting {service} service to start")
        await wait_until(probe, (ip, port), policies["port_open"], f"{service} to start: {ip}", dry_run)
        logger.info(f"{ip} {service} service started")


# ── Core logic ─────────────────────────────────────────────────────


async def create_lamp(driver, name, policies, image_id=DEFAULT_LAMP_IMAGE, instance_type=DEFAULT_INSTANCE_TYPE, dry_run=False):
    """Create key pair, security group, and a LAMP instance, then wait for ssh and http.

    Returns:
        ServerInfo for the running instance (placeholder values in dry-run mode).
    """
    if dry_run:
        ports = ", ".join(str(p) for p in LAMP_PORTS)
        logger.info(f"[dry-run] create key pair {name}")
        logger.info(f"[dry-run] create security group {name} with tcp ports {ports} open to 0.0.0.0/0")
        logger.info(f"[dry-run] run instance image={image_id} type={instance_type} key={name}")
        await wait_until(None, None, policies["instance_running"], "instance to run", dry_run=True)
        await _await_ports("dry-run-host", ((22, "ssh"), (80, "http")), policies, dry_run=True)
        return ServerInfo(node_id="dry-run-id", host="dry-run-host", username="ubuntu")

    logger.info(f"creating keypair: {name}")
    key_pair = await asyncio.to_thread(driver.create_key_pair, name)
    logger.info(f"creating security group: {name}")
    group = await asyncio.to_thread(driver.ex_create_security_group, name, name)
    for port in LAMP_PORTS:
        await asyncio.to_thread(
            driver.ex_authorize_security_group_ingress, group["group_id"], port, port, cidr_ips=["0.0.0.0/0"]
        )

    size = pick_size_by_id(await asyncio.to_thread(driver.list_sizes), instance_type)
    image = await asyncio.to_thread(driver.get_image, image_id)

    logger.info("running instance")
    node = await asyncio.to_thread(
        driver.create_node,
        name=name,
        size=size,
        image=image,
        ex_keyname=name,
        ex_security_groups=[name],
        ex_userdata=LAMP_USER_DATA,
    )

    logger.info(f"{node.id} awaiting instance to run")
    await wait_until(node_in_state(driver), node, policies["instance_running"], f"instance to run: {node.id}")

    node = await find_node(driver, node.id)
    ip = node_address(node)
    await _await_ports(ip, ((22, "ssh"), (80, "http")), policies)

    return ServerInfo(
        node_id=node.id,
        host=ip,
        username="ubuntu",
        dns_name=node.extra.get("dns_name"),
        key_material=key_pair.private_key,
    )


async def destroy_lamp(driver, name, policies, dry_run=False):
    """Tear down everything create_lamp() made, best effort.

    Returns:
        CleanupReport with one entry per step.
    """
    report = CleanupReport()
    if dry_run:
        logger.info(f"[dry-run] terminate instance with key name {name}")
        logger.info(f"[dry-run] delete key pair {name}")
        logger.info(f"[dry-run] delete security group {name}")
        return report

    async def terminate_instance():
        node = await find_instance_by_key_name(driver, name)
        logger.info(f"{node.id} terminating instance")
        await asyncio.to_thread(driver.destroy_node, node)
        # The group cannot be deleted while an instance still uses it
        await wait_until(nodes_gone(driver), [node], policies["nodes_deleted"], f"instance to terminate: {node.id}")

    async def delete_key_pair():
        logger.info(f"{name} deleting keypair")
        try:
            key_pair = await asyncio.to_thread(driver.get_key_pair, name)
        except KeyPairDoesNotExistError:
            raise ResourceNotFound(f"no key pair named '{name}'") from None
        await asyncio.to_thread(driver.delete_key_pair, key_pair)

    async def delete_security_group():
        logger.info(f"{name} deleting group")
        await asyncio.to_thread(driver.ex_delete_security_group_by_name, name)

    await run_step(report, "terminate instance", terminate_instance)
    await run_step(report, "delete key pair", delete_key_pair)
    await run_step(report, "delete security group", delete_security_group)

    logger.info(report.summary())
    return report


async def launch_windows(
    driver,
    name,
    policies,
    image_pattern=DEFAULT_IMAGE_PATTERN,
    ami_owner=DEFAULT_AMI_OWNER,
    instance_type=DEFAULT_INSTANCE_TYPE,
    dry_run=False,
):
    """Launch the newest Windows AMI matching *image_pattern* and wait for RDP."""
    if dry_run:
        logger.info(f"[dry-run] select newest image owned by {ami_owner} matching '{image_pattern}'")
        logger.info(f"[dry-run] run instance {name} type={instance_type}")
        await wait_until(None, None, policies["instance_running"], "instance to run", dry_run=True)
        await _await_ports("dry-run-host", ((RDP_PORT, "rdp"),), policies, dry_run=True)
        return ServerInfo(node_id="dry-run-id", host="dry-run-host", username="Administrator")

    images = await asyncio.to_thread(driver.list_images, ex_owner=ami_owner)
    image = newest_matching_image(images, image_pattern)
    logger.info(f"Selected image {image.name} ({image.id})")
    size = pick_size_by_id(await asyncio.to_thread(driver.list_sizes), instance_type)

    node = await asyncio.to_thread(driver.create_node, name=name, size=size, image=image)
    logger.info(f"{node.id} awaiting instance to run")
    await wait_until(node_in_state(driver), node, policies["instance_running"], f"instance to run: {node.id}")

    node = await find_node(driver, node.id)
    ip = node_address(node)
    await _await_ports(ip, ((RDP_PORT, "rdp"),), policies)
    return ServerInfo(node_id=node.id, host=ip, username="Administrator", dns_name=node.extra.get("dns_name"))


# ── CLI handlers ───────────────────────────────────────────────────


def _driver_for(args, config):
    if args.dry_run:
        return None
    region = args.region or provider_setting(config, "ec2", "region", DEFAULT_EC2_REGION)
    creds = credentials_from_args(args, "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY")
    return ec2_driver(creds, region)


def handle_create(args):
    """CLI handler for 'ec2 create'."""
    run_command(_handle_create, args)


async def _handle_create(args):
    config = load_config(args.config)
    policies = load_policies(config)
    driver = _driver_for(args, config)
    info = await create_lamp(driver, args.name, policies, args.image, args.instance_type, dry_run=args.dry_run)
    logger.info(f"instance {info.node_id} ready")
    logger.info(f"ip address: {info.host}")
    logger.info(f"dns name: {info.dns_name}")
    if info.key_material:
        logger.info(f"login identity:\n{info.key_material}")


def handle_destroy(args):
    """CLI handler for 'ec2 destroy'."""
    run_command(_handle_destroy, args)


async def _handle_destroy(args):
    config = load_config(args.config)
    policies = load_policies(config)
    driver = _driver_for(args, config)
    report = await destroy_lamp(driver, args.name, policies, dry_run=args.dry_run)
    if not report.ok:
        sys.exit(1)


def handle_windows(args):
    """CLI handler for 'ec2 windows'."""
    run_command(_handle_windows, args)


async def _handle_windows(args):
    config = load_config(args.config)
    policies = load_policies(config)
    driver = _driver_for(args, config)
    info = await launch_windows(
        driver,
        args.name,
        policies,
        image_pattern=args.image_pattern,
        ami_owner=args.ami_owner,
        instance_type=args.instance_type,
        dry_run=args.dry_run,
    )
    logger.info(f"instance {info.node_id} ready")
    logger.info(f"RDP: {info.host}:{RDP_PORT} (user {info.username})")


# ── Registration ───────────────────────────────────────────────────


def _add_ec2_args(parser):
    add_common_args(
        parser,
        identity_help="AWS access key ID (fallback: AWS_ACCESS_KEY_ID env var)",
        credential_help="AWS secret access key (fallback: AWS_SECRET_ACCESS_KEY env var)",
    )
    parser.add_argument("--region", "-r", default=None, help=f"AWS region name (default: {DEFAULT_EC2_REGION})")
    parser.add_argument(
        "--instance-type", "-t", default=DEFAULT_INSTANCE_TYPE, help=f"Instance type (default: {DEFAULT_INSTANCE_TYPE})"
    )


def register_ec2_command(subparsers):
    """Register the 'ec2' command with create/destroy/windows actions."""
    ec2_parser = subparsers.add_parser("ec2", help="Amazon EC2 examples")
    actions = ec2_parser.add_subparsers(dest="action", required=True)

    create = actions.add_parser("create", help="Create a LAMP server and wait for ssh and http")
    create.add_argument("name", help="Name for the key pair, security group, and instance")
    create.add_argument("--image", default=DEFAULT_LAMP_IMAGE, help=f"AMI id (default: {DEFAULT_LAMP_IMAGE})")
    _add_ec2_args(create)
    create.set_defaults(func=handle_create)

    destroy = actions.add_parser("destroy", help="Terminate the instance and delete its key pair and group")
    destroy.add_argument("name", help="Name used with 'ec2 create'")
    _add_ec2_args(destroy)
    destroy.set_defaults(func=handle_destroy)

    windows = actions.add_parser("windows", help="Launch a Windows instance and wait for RDP")
    windows.add_argument("--name", default=DEFAULT_WINDOWS_NAME, help=f"Instance name (default: {DEFAULT_WINDOWS_NAME})")
    windows.add_argument(
        "--image-pattern",
        "-p",
        default=DEFAULT_IMAGE_PATTERN,
        help=f"Regular expression to select an AMI (default: {DEFAULT_IMAGE_PATTERN})",
    )
    windows.add_argument(
        "--ami-owner", "-o", default=DEFAULT_AMI_OWNER, help=f"AMI owner account ID (default: {DEFAULT_AMI_OWNER})"
    )
    _add_ec2_args(windows)
    windows.set_defaults(func=handle_windows)
