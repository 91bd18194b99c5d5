"""Image and flavor selection from provider listings."""

import logging
import re

logger = logging.getLogger(__name__)


def pick_image_by_name(images, name):
    """Return the image named *name*, falling back to the first image.

    Raises:
        LookupError: if *images* is empty.
    """
    images = list(images)
    for image in images:
        logger.info(f"  {image.name} ({image.id})")
    for image in images:
        if image.name == name:
            return image
    if not images:
        raise LookupError("Provider returned no images")
    logger.warning(f"Image '{name}' not found. Using first image found.")
    return images[0]


def pick_size_by_ram(sizes, ram_mb):
    """Return the flavor with exactly *ram_mb* of RAM, falling back to the first flavor.

    Raises:
        LookupError: if *sizes* is empty.
    """
    sizes = list(sizes)
    for size in sizes:
        logger.info(f"  {size.name} ({size.id}, {size.ram} MB)")
    for size in sizes:
        if size.ram == ram_mb:
            return size
    if not sizes:
        raise LookupError("Provider returned no flavors")
    logger.warning(f"Flavor with {ram_mb} MB of RAM not found. Using first flavor found.")
    return sizes[0]


def pick_size_by_id(sizes, size_id):
    """Return the size whose id is *size_id*.

    Raises:
        LookupError: if no size matches.
    """
    for size in sizes:
        if size.id == size_id:
            return size
    raise LookupError(f"Instance type '{size_id}' not offered in this region")


def newest_matching_image(images, pattern):
    """Return the image whose name matches *pattern* and sorts last.

    AMI names carry a trailing date stamp, so the lexically greatest name is
    the most recent build.

    Raises:
        LookupError: if nothing matches.
    """
    regex = re.compile(pattern)
    matches = [i for i in images if i.name and regex.search(i.name)]
    if not matches:
        raise LookupError(f"No image name matches '{pattern}'")
    return max(matches, key=lambda i: i.name)
