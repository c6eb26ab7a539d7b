# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Image Backup Core - Orchestrates one backup run.

A run resolves the instance identity, creates and tags a new image, then
rotates older images of the same fingerprint. Nothing is kept between
runs; every run queries the provider afresh.
"""

from datetime import datetime, UTC
from typing import Callable

import structlog
from ulid import ULID

from imgbackup.backup import create_image_backup, rotate_images
from imgbackup.config import BackupConfig
from imgbackup.gateway.base import ProviderGateway
from imgbackup.models import BackupRequest, BackupResult

logger = structlog.get_logger()


async def build_request(gateway: ProviderGateway, config: BackupConfig) -> BackupRequest:
    """
    Resolve the instance identity and display name into a BackupRequest.

    Raises:
        InstanceIdentityUnavailableError: If no instance id is configured and
            the process is not running on an instance
    """
    instance_id = config.instance_id
    if not instance_id:
        instance_id = await gateway.resolve_current_instance_identity()

    name = await gateway.resolve_instance_display_name(instance_id)

    return BackupRequest(
        instance_id=instance_id,
        name=name,
        service=config.service,
        generation=config.generation,
        custom_tags=tuple(config.custom_tags),
    )


async def run_backup(
    gateway: ProviderGateway,
    config: BackupConfig,
    on_image_created: Callable[[str], None] | None = None,
) -> BackupResult:
    """
    Run a complete backup: create, tag, rotate.

    Args:
        gateway: Provider gateway
        config: Backup configuration
        on_image_created: Called with the new image id before rotation starts

    Returns:
        BackupResult with the new image and the rotated images
    """
    run_id = str(ULID())
    start_time = datetime.now(UTC)
    log = logger.bind(run_id=run_id)

    log.info("backup_run_started", instance_id=config.instance_id)

    try:
        request = await build_request(gateway, config)
        log.info("backup_request_resolved", instance_id=request.instance_id, name=request.name)

        image_id = await create_image_backup(gateway, request)
        if on_image_created is not None:
            on_image_created(image_id)

        rotated = await rotate_images(gateway, request, image_id)

    except Exception as e:
        log.error("backup_run_failed", error=str(e))
        raise

    duration = (datetime.now(UTC) - start_time).total_seconds()
    log.info(
        "backup_run_completed",
        image_id=image_id,
        rotated=len(rotated),
        duration=duration,
    )

    return BackupResult(
        run_id=run_id,
        instance_id=request.instance_id,
        name=request.name,
        image_id=image_id,
        rotated_image_ids=rotated,
        duration_seconds=duration,
    )
