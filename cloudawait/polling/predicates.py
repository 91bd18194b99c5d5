"""Predicate factories for the poller.

Each factory returns a coroutine function of one argument. Libcloud calls are
blocking, so they run in a worker thread; network probes use asyncio and
httpx directly.
"""

import asyncio
import logging

import httpx
from libcloud.compute.types import NodeState, VolumeSnapshotState

logger = logging.getLogger(__name__)


class SnapshotError(RuntimeError):
    """Snapshot entered the ERROR state while being awaited."""


def _find_by_id(items, item_id):
    for item in items:
        if item.id == item_id:
            return item
    return None


def node_in_state(driver, state=NodeState.RUNNING):
    """Return a predicate that is true once the given node reaches *state*.

    Works with any node object carrying an ``id``; the node is refetched on
    every check so the caller can pass the object returned by create_node().
    """

    async def check(node):
        nodes = await asyncio.to_thread(driver.list_nodes)
        current = _find_by_id(nodes, node.id)
        current_state = current.state if current is not None else None
        logger.debug(f"looking for node: {node.id} state: {state} current: {current_state}")
        return current_state == state

    return check


def all_nodes_in_state(driver, state=NodeState.RUNNING):
    """Return a predicate that is true once every node in the input reaches *state*.

    Uses a single list_nodes() call per check.
    """

    async def check(nodes):
        by_id = {n.id: n for n in await asyncio.to_thread(driver.list_nodes)}
        for node in nodes:
            current = by_id.get(node.id)
            current_state = current.state if current is not None else None
            logger.debug(f"looking for node: {node.id} state: {state} current: {current_state}")
            if current_state != state:
                return False
        return True

    return check


def nodes_gone(driver):
    """Return a predicate that is true once none of the input nodes are alive."""

    async def check(nodes):
        by_id = {n.id: n for n in await asyncio.to_thread(driver.list_nodes)}
        remaining = [n.id for n in nodes if n.id in by_id and by_id[n.id].state != NodeState.TERMINATED]
        logger.debug(f"waiting for {len(remaining)} node(s) to go away: {remaining}")
        return not remaining

    return check


def snapshot_available(driver):
    """Return a predicate that is true once a volume snapshot is AVAILABLE.

    Raises:
        SnapshotError: if the snapshot reports the ERROR state.
    """

    async def check(snapshot):
        snapshots = await asyncio.to_thread(driver.ex_list_snapshots)
        current = _find_by_id(snapshots, snapshot.id)
        current_state = current.state if current is not None else None
        logger.debug(f"looking for snapshot: {snapshot.id} state: available current: {current_state}")
        if current_state == VolumeSnapshotState.ERROR:
            raise SnapshotError(f"Snapshot {snapshot.id} entered error state")
        return current_state == VolumeSnapshotState.AVAILABLE

    return check


def tcp_port_open(connect_timeout=5):
    """Return a predicate over ``(host, port)`` that is true once a TCP connect succeeds."""

    async def check(address):
        host, port = address
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=connect_timeout)
        except (OSError, TimeoutError) as e:
            logger.debug(f"{host}:{port} not reachable yet: {e}")
            return False
        writer.close()
        await writer.wait_closed()
        return True

    return check


def http_ok(timeout=5):
    """Return a predicate over a URL that is true once it answers with a 2xx status."""

    async def check(url):
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.get(url, timeout=timeout)
        except httpx.TransportError as e:
            logger.debug(f"{url} not reachable yet: {e}")
            return False
        logger.debug(f"{url} -> {resp.status_code}")
        return resp.is_success

    return check
