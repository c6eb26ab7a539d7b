# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Provider Gateway - The cloud capabilities the backup engine depends on.

The engine only talks to this interface; the EC2 adapter implements it for
production and the in-memory adapter for tests.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from imgbackup.models import Image, Tag


class ProviderGateway(ABC):
    """Instance, image and snapshot operations used by a backup run."""

    @abstractmethod
    async def resolve_current_instance_identity(self) -> str:
        """Return the id of the instance this process runs on.

        Raises:
            InstanceIdentityUnavailableError: When not running on an instance
        """
        ...

    @abstractmethod
    async def resolve_instance_display_name(self, instance_id: str) -> str:
        """Return the instance's Name tag, or instance_id when missing or empty."""
        ...

    @abstractmethod
    async def create_image(self, instance_id: str, name: str, timestamp: str) -> str:
        """Create an image named ``<name>-<timestamp>`` and wait until it is available.

        Raises:
            ImageWaitTimeoutError: When the attempt ceiling is exceeded
            ProviderError: When creation fails or the image enters a failed state
        """
        ...

    @abstractmethod
    async def apply_tags(self, resource_id: str, tags: Sequence[Tag]) -> None:
        """Apply tags and return only once a describe reflects the full set."""
        ...

    @abstractmethod
    async def list_images(self, name: str, service: str) -> List[Image]:
        """Return images tagged BackupType=auto, Name=name, Service=service."""
        ...

    @abstractmethod
    async def get_image(self, image_id: str) -> Image:
        """Return one image.

        Raises:
            ImageNotFoundError: When no image has this id
        """
        ...

    @abstractmethod
    async def list_snapshot_ids(self, image_id: str) -> List[str]:
        """Return the snapshot ids of the image's volume-backed mappings."""
        ...

    @abstractmethod
    async def deregister_image_and_snapshots(self, images: Sequence[Image]) -> None:
        """Deregister images and delete their snapshots, best effort per resource."""
        ...
