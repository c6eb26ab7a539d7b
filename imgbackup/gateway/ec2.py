# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
EC2 Gateway - Production ProviderGateway over an aiobotocore EC2 client.

Image creation blocks on the image_available waiter, and tag application
polls describe-tags until the submitted tags are visible, so callers can
treat both as synchronous operations.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Sequence

import structlog
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from imgbackup.config import BackupConfig
from imgbackup.errors import explain_metadata_unavailable
from imgbackup.exceptions import (
    ImageNotFoundError,
    ImageWaitTimeoutError,
    InstanceIdentityUnavailableError,
    ProviderError,
    TagApplyError,
)
from imgbackup.gateway.base import ProviderGateway
from imgbackup.gateway.metadata import InstanceMetadataClient
from imgbackup.models import Image, Tag
from imgbackup.tags import BACKUP_TYPE_AUTO, BACKUP_TYPE_KEY, NAME_KEY, SERVICE_KEY

logger = structlog.get_logger()

DEFAULT_REGION = "ap-northeast-1"
IMAGE_DESCRIPTION = "create by create-image-backup"


async def resolve_region(
    region: str | None,
    session: Any,
    metadata: InstanceMetadataClient | None,
) -> str:
    """
    Resolve the region to talk to.

    Order:
    1. Explicit region (command line or environment)
    2. Region loaded by the SDK (AWS_DEFAULT_REGION, ~/.aws/config, ...)
    3. Region of the current instance via instance metadata
    4. ap-northeast-1, kept for compatibility with earlier releases
    """
    if region:
        return region

    configured = session.get_config_variable("region")
    if configured:
        return configured

    if metadata is not None:
        try:
            return await metadata.get_region()
        except InstanceIdentityUnavailableError:
            logger.debug("region_metadata_unavailable")

    return DEFAULT_REGION


class EC2Gateway(ProviderGateway):
    """ProviderGateway backed by the EC2 API."""

    def __init__(
        self,
        client: Any,
        metadata: InstanceMetadataClient | None = None,
        *,
        wait_max_attempts: int = 120,
        wait_delay: int = 15,
        tag_check_attempts: int = 10,
        tag_check_delay: float = 1.0,
    ):
        self._client = client
        self._metadata = metadata
        self._wait_max_attempts = wait_max_attempts
        self._wait_delay = wait_delay
        self._tag_check_attempts = tag_check_attempts
        self._tag_check_delay = tag_check_delay

    async def resolve_current_instance_identity(self) -> str:
        if self._metadata is None:
            raise InstanceIdentityUnavailableError(explain_metadata_unavailable())
        return await self._metadata.get_instance_id()

    async def resolve_instance_display_name(self, instance_id: str) -> str:
        try:
            response = await self._client.describe_tags(
                Filters=[
                    {"Name": "resource-id", "Values": [instance_id]},
                    {"Name": "tag-key", "Values": [NAME_KEY]},
                ]
            )
        except ClientError as e:
            raise ProviderError(
                f"Failed to describe instance tags: {e}",
                details={"instance_id": instance_id},
            ) from e

        tags = response.get("Tags", [])
        if not tags or not tags[0].get("Value"):
            return instance_id
        return tags[0]["Value"]

    async def create_image(self, instance_id: str, name: str, timestamp: str) -> str:
        try:
            response = await self._client.create_image(
                InstanceId=instance_id,
                Name=f"{name}-{timestamp}",
                Description=IMAGE_DESCRIPTION,
                NoReboot=True,
            )
        except ClientError as e:
            raise ProviderError(
                f"Failed to create image: {e}",
                details={"instance_id": instance_id},
            ) from e

        image_id = response["ImageId"]
        logger.info("image_creation_started", image_id=image_id, instance_id=instance_id)

        waiter = self._client.get_waiter("image_available")
        try:
            await waiter.wait(
                ImageIds=[image_id],
                WaiterConfig={
                    "Delay": self._wait_delay,
                    "MaxAttempts": self._wait_max_attempts,
                },
            )
        except WaiterError as e:
            reason = e.kwargs.get("reason", "")
            if "Max attempts exceeded" in reason:
                raise ImageWaitTimeoutError(
                    f"Image {image_id} did not become available "
                    f"after {self._wait_max_attempts} attempts",
                    details={"image_id": image_id},
                ) from e
            raise ProviderError(
                f"Image {image_id} did not become available: {reason}",
                details={"image_id": image_id},
            ) from e

        logger.info("image_available", image_id=image_id)
        return image_id

    async def apply_tags(self, resource_id: str, tags: Sequence[Tag]) -> None:
        try:
            await self._client.create_tags(
                Resources=[resource_id],
                Tags=[t.to_aws() for t in tags],
            )
        except ClientError as e:
            raise ProviderError(
                f"Failed to create tags on {resource_id}: {e}",
                details={"resource_id": resource_id},
            ) from e

        # Later keys overwrite earlier ones on the resource.
        expected = {t.key: t.value for t in tags}

        for attempt in range(self._tag_check_attempts):
            try:
                current = await self._describe_resource_tags(resource_id)
            except ClientError as e:
                logger.debug("tag_check_failed", resource_id=resource_id, error=str(e))
            else:
                reflected = [k for k, v in expected.items() if current.get(k) == v]
                if len(reflected) == len(expected):
                    return
            await asyncio.sleep((attempt + 1) * self._tag_check_delay)

        raise TagApplyError(
            "create tag was not completed while check",
            details={"resource_id": resource_id},
        )

    async def _describe_resource_tags(self, resource_id: str) -> Dict[str, str]:
        tags: Dict[str, str] = {}
        paginator = self._client.get_paginator("describe_tags")
        async for page in paginator.paginate(
            Filters=[{"Name": "resource-id", "Values": [resource_id]}]
        ):
            for tag in page.get("Tags", []):
                tags[tag["Key"]] = tag.get("Value", "")
        return tags

    async def list_images(self, name: str, service: str) -> List[Image]:
        try:
            response = await self._client.describe_images(
                Filters=[
                    {"Name": f"tag:{BACKUP_TYPE_KEY}", "Values": [BACKUP_TYPE_AUTO]},
                    {"Name": f"tag:{NAME_KEY}", "Values": [name]},
                    {"Name": f"tag:{SERVICE_KEY}", "Values": [service]},
                ]
            )
        except ClientError as e:
            raise ProviderError(
                f"Failed to describe images: {e}",
                details={"name": name, "service": service},
            ) from e

        return [Image.from_aws_image(i) for i in response.get("Images", [])]

    async def get_image(self, image_id: str) -> Image:
        try:
            response = await self._client.describe_images(ImageIds=[image_id])
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code.startswith("InvalidAMIID"):
                raise ImageNotFoundError(
                    f"can't find image: {image_id}",
                    details={"image_id": image_id},
                ) from e
            raise ProviderError(
                f"Failed to describe image {image_id}: {e}",
                details={"image_id": image_id},
            ) from e

        images = response.get("Images", [])
        if not images:
            raise ImageNotFoundError(
                f"can't find image: {image_id}",
                details={"image_id": image_id},
            )
        return Image.from_aws_image(images[0])

    async def list_snapshot_ids(self, image_id: str) -> List[str]:
        image = await self.get_image(image_id)
        return image.snapshot_ids

    async def deregister_image_and_snapshots(self, images: Sequence[Image]) -> None:
        for image in images:
            try:
                await self._client.deregister_image(ImageId=image.image_id)
                logger.info("image_deregistered", image_id=image.image_id)
            except (ClientError, BotoCoreError) as e:
                logger.warning(
                    "image_deregister_failed",
                    image_id=image.image_id,
                    error=str(e),
                )

            for snapshot_id in image.snapshot_ids:
                try:
                    await self._client.delete_snapshot(SnapshotId=snapshot_id)
                    logger.info(
                        "snapshot_deleted",
                        snapshot_id=snapshot_id,
                        image_id=image.image_id,
                    )
                except (ClientError, BotoCoreError) as e:
                    logger.warning(
                        "snapshot_delete_failed",
                        snapshot_id=snapshot_id,
                        image_id=image.image_id,
                        error=str(e),
                    )


@asynccontextmanager
async def open_ec2_gateway(
    config: BackupConfig,
    *,
    session: Any = None,
    metadata: InstanceMetadataClient | None = None,
    endpoint_url: str | None = None,
) -> AsyncIterator[EC2Gateway]:
    """
    Open an EC2 client for the configured region and yield a gateway over it.

    Args:
        config: Backup configuration
        session: aiobotocore session (default: a new session)
        metadata: Instance metadata client (default: IMDS on the link-local address)
        endpoint_url: Override the EC2 endpoint (e.g. a local test server)
    """
    from aiobotocore.session import get_session

    if session is None:
        session = get_session()
    if metadata is None:
        metadata = InstanceMetadataClient()

    region = await resolve_region(config.region, session, metadata)
    logger.debug("region_resolved", region=region)

    async with session.create_client(
        "ec2",
        region_name=region,
        endpoint_url=endpoint_url,
    ) as client:
        yield EC2Gateway(
            client,
            metadata,
            wait_max_attempts=config.image_wait_max_attempts,
            wait_delay=config.image_wait_delay,
            tag_check_attempts=config.tag_check_attempts,
            tag_check_delay=config.tag_check_delay,
        )
