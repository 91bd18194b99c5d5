"""Provider call-site helpers: drivers, catalog lookups, teardown reporting."""

from cloudawait.providers.cleanup import CleanupReport, ResourceNotFound, run_step
from cloudawait.providers.types import ServerInfo, public_ip

__all__ = [
    "CleanupReport",
    "ResourceNotFound",
    "ServerInfo",
    "public_ip",
    "run_step",
]
