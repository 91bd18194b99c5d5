"""Libcloud driver construction from explicit credentials."""

import logging

from libcloud.compute.providers import get_driver as get_compute_driver
from libcloud.compute.types import Provider as ComputeProvider
from libcloud.storage.providers import get_driver as get_storage_driver
from libcloud.storage.types import Provider as StorageProvider

logger = logging.getLogger(__name__)


def ec2_driver(credentials, region):
    """Compute driver for Amazon EC2 in *region*."""
    logger.debug(f"Connecting to EC2 ({region})")
    cls = get_compute_driver(ComputeProvider.EC2)
    return cls(credentials.identity, credentials.credential, region=region)


def rackspace_driver(credentials, region):
    """Compute driver for Rackspace Cloud Servers (also serves block storage)."""
    logger.debug(f"Connecting to Rackspace Cloud Servers ({region})")
    cls = get_compute_driver(ComputeProvider.RACKSPACE)
    return cls(credentials.identity, credentials.credential, region=region)


def cloudfiles_driver(credentials, region):
    """Storage driver for Rackspace Cloud Files."""
    logger.debug(f"Connecting to Cloud Files ({region})")
    cls = get_storage_driver(StorageProvider.CLOUDFILES)
    return cls(credentials.identity, credentials.credential, region=region)
