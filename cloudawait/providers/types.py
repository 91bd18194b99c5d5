"""Shared data types for provider call sites."""

from dataclasses import dataclass


@dataclass
class ServerInfo:
    """Connection summary printed once a server is up."""

    node_id: str
    host: str
    username: str = "root"
    password: str | None = None
    dns_name: str | None = None
    key_material: str | None = None

    @property
    def address(self) -> str:
        """Login address string (user@host)."""
        return f"{self.username}@{self.host}" if self.username else self.host


def public_ip(node) -> str | None:
    """First public IPv4 address of a Libcloud node, or None if not assigned yet."""
    ips = node.public_ips or []
    for ip in ips:
        if ":" not in ip:
            return ip
    return ips[0] if ips else None
