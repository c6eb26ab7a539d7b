# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Image Backup Creator - Image creation and tag propagation.

A new image is tagged with the provenance tag set, and the same set is then
pushed to every snapshot the image owns. Snapshot failures do not stop the
loop; they are collected and reported together once every snapshot has
been attempted.
"""

from datetime import datetime
from typing import List

import structlog

from imgbackup.exceptions import SnapshotTaggingError
from imgbackup.gateway.base import ProviderGateway
from imgbackup.models import BackupRequest
from imgbackup.tags import build_backup_tags

logger = structlog.get_logger()

# Minute resolution, e.g. 202610190512
IMAGE_TIMESTAMP_FORMAT = "%Y%m%d%H%M"


def format_image_timestamp(now: datetime) -> str:
    """Format the suffix appended to the image name."""
    return now.strftime(IMAGE_TIMESTAMP_FORMAT)


async def create_image_backup(
    gateway: ProviderGateway,
    request: BackupRequest,
    now: datetime | None = None,
) -> str:
    """
    Create an image of the requested instance and tag it and its snapshots.

    Args:
        gateway: Provider gateway
        request: Backup request for this run
        now: Wall-clock time used in the image name (default: local now)

    Returns:
        Identifier of the new image

    Raises:
        ProviderError: If image creation or image tagging fails
        SnapshotTaggingError: If tagging failed on one or more snapshots
    """
    timestamp = format_image_timestamp(now or datetime.now())

    image_id = await gateway.create_image(request.instance_id, request.name, timestamp)

    tags = build_backup_tags(request.name, request.service, request.custom_tags)
    await gateway.apply_tags(image_id, tags)
    logger.info("image_tagged", image_id=image_id, tag_count=len(tags))

    snapshot_ids = await gateway.list_snapshot_ids(image_id)

    errors: List[str] = []
    for snapshot_id in snapshot_ids:
        try:
            await gateway.apply_tags(snapshot_id, tags)
        except Exception as e:
            errors.append(str(e))
            logger.error(
                "snapshot_tagging_failed",
                image_id=image_id,
                snapshot_id=snapshot_id,
                error=str(e),
            )

    if errors:
        raise SnapshotTaggingError(
            ", ".join(errors),
            details={"image_id": image_id, "errors": errors},
        )

    logger.info(
        "image_backup_created",
        image_id=image_id,
        instance_id=request.instance_id,
        snapshots=len(snapshot_ids),
    )
    return image_id
