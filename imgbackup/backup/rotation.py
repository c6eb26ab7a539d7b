# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Image Backup Rotation - Retention enforcement by generation count.

Images sharing the (Name, Service) fingerprint are ordered by their
effective creation time and the oldest ones beyond the generation count
are deregistered together with their snapshots.

Effective creation time:
- failed:  1970-01-01T00:00:00Z, so failed images are removed first
- pending: the moment of rotation, so in-flight images are kept
- other:   the reported creation date; an unparsable date sorts oldest
"""

from datetime import datetime, UTC
from typing import List, Sequence

import structlog

from imgbackup.gateway.base import ProviderGateway
from imgbackup.models import BackupRequest, Image, ImageState

logger = structlog.get_logger()

CREATION_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
ZERO_TIME = datetime.min.replace(tzinfo=UTC)


def parse_creation_date(value: str | None) -> datetime:
    """
    Parse a provider creation date such as 2006-01-02T15:04:05.000Z.

    Everything from the first '.' on is ignored. Dates that do not match
    YYYY-MM-DDTHH:MM:SS yield ZERO_TIME.
    """
    if not value:
        return ZERO_TIME
    try:
        parsed = datetime.strptime(value.split(".")[0], CREATION_DATE_FORMAT)
    except ValueError:
        return ZERO_TIME
    return parsed.replace(tzinfo=UTC)


def effective_creation_time(image: Image, now: datetime) -> datetime:
    """Return the instant used to order an image for rotation."""
    if image.state == ImageState.FAILED.value:
        return EPOCH
    if image.state == ImageState.PENDING.value:
        return now
    return parse_creation_date(image.creation_date)


def select_rotation_targets(
    images: Sequence[Image],
    generation: int,
    now: datetime,
) -> List[Image]:
    """
    Pick the images to remove, oldest first.

    Returns an empty list when there are no more than generation images.
    Ties keep the order of the input sequence.
    """
    if len(images) <= generation:
        return []

    ordered = sorted(images, key=lambda i: effective_creation_time(i, now))
    return ordered[: len(images) - generation]


async def rotate_images(
    gateway: ProviderGateway,
    request: BackupRequest,
    recent_image_id: str,
    now: datetime | None = None,
) -> List[str]:
    """
    Deregister images of this fingerprint beyond the generation count.

    The image created by this run is fetched by id when the tag-filtered
    listing does not include it yet, so it always counts towards the total.

    Args:
        gateway: Provider gateway
        request: Backup request for this run
        recent_image_id: Identifier of the image this run just created
        now: Rotation time given to pending images (default: UTC now)

    Returns:
        Identifiers of the rotated images, oldest first
    """
    now = now or datetime.now(UTC)

    images = list(await gateway.list_images(request.name, request.service))

    if not any(i.image_id == recent_image_id for i in images):
        logger.info("recent_image_not_listed", image_id=recent_image_id)
        images.append(await gateway.get_image(recent_image_id))

    targets = select_rotation_targets(images, request.generation, now)
    if not targets:
        logger.info(
            "rotation_not_needed",
            image_count=len(images),
            generation=request.generation,
        )
        return []

    await gateway.deregister_image_and_snapshots(targets)

    rotated = [i.image_id for i in targets]
    logger.info(
        "rotation_completed",
        image_count=len(images),
        generation=request.generation,
        rotated=rotated,
    )
    return rotated
