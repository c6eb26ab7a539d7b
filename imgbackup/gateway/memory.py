# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
In-memory ProviderGateway.

Keeps images, snapshots and tags in dictionaries and records every call, so
engine behaviour can be exercised without network access. Failure hooks
simulate the provider conditions the engine has to tolerate: tagging
failures, list-after-write lag and stuck deregistrations.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, UTC
from typing import Dict, List, Sequence, Set, Tuple

from imgbackup.errors import explain_metadata_unavailable
from imgbackup.exceptions import (
    ImageNotFoundError,
    InstanceIdentityUnavailableError,
    ProviderError,
)
from imgbackup.gateway.base import ProviderGateway
from imgbackup.models import BlockDeviceMapping, Image, ImageState, Tag
from imgbackup.tags import BACKUP_TYPE_AUTO, BACKUP_TYPE_KEY, NAME_KEY, SERVICE_KEY


@dataclass
class InMemoryGateway(ProviderGateway):
    """Fake gateway for tests and local dry runs."""

    # Instance this process "runs on" (None: metadata unavailable)
    current_instance_id: str | None = None

    # Instance id -> Name tag value
    instance_names: Dict[str, str] = field(default_factory=dict)

    # (device name, has volume) for every new image; no volume means ephemeral
    volume_devices: List[Tuple[str, bool]] = field(
        default_factory=lambda: [("/dev/xvda", True)]
    )

    images: Dict[str, Image] = field(default_factory=dict)
    tags: Dict[str, List[Tag]] = field(default_factory=dict)
    snapshots: Set[str] = field(default_factory=set)

    # Failure hooks
    fail_create_image: bool = False
    fail_tags_for: Set[str] = field(default_factory=set)
    hidden_from_listing: Set[str] = field(default_factory=set)
    fail_deregister_for: Set[str] = field(default_factory=set)

    # Call log: (operation, argument)
    calls: List[Tuple[str, object]] = field(default_factory=list)

    _counter: int = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter:017x}"

    def add_image(self, image: Image, tags: Sequence[Tag] = ()) -> Image:
        """Seed an existing image (and its snapshots)."""
        self.images[image.image_id] = image
        self.tags[image.image_id] = list(tags)
        self.snapshots.update(image.snapshot_ids)
        return image

    async def resolve_current_instance_identity(self) -> str:
        self.calls.append(("resolve_current_instance_identity", None))
        if self.current_instance_id is None:
            raise InstanceIdentityUnavailableError(explain_metadata_unavailable())
        return self.current_instance_id

    async def resolve_instance_display_name(self, instance_id: str) -> str:
        self.calls.append(("resolve_instance_display_name", instance_id))
        return self.instance_names.get(instance_id) or instance_id

    async def create_image(self, instance_id: str, name: str, timestamp: str) -> str:
        self.calls.append(("create_image", (instance_id, name, timestamp)))
        if self.fail_create_image:
            raise ProviderError(
                "Failed to create image: simulated failure",
                details={"instance_id": instance_id},
            )

        image_id = self._next_id("ami")
        mappings = []
        for device_name, has_volume in self.volume_devices:
            snapshot_id = self._next_id("snap") if has_volume else None
            if snapshot_id:
                self.snapshots.add(snapshot_id)
            mappings.append(BlockDeviceMapping(device_name, snapshot_id))

        self.images[image_id] = Image(
            image_id=image_id,
            state=ImageState.AVAILABLE.value,
            creation_date=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z"),
            name=f"{name}-{timestamp}",
            block_device_mappings=mappings,
        )
        self.tags[image_id] = []
        return image_id

    async def apply_tags(self, resource_id: str, tags: Sequence[Tag]) -> None:
        self.calls.append(("apply_tags", (resource_id, list(tags))))
        if resource_id in self.fail_tags_for:
            raise ProviderError(f"Failed to create tags on {resource_id}")
        self.tags.setdefault(resource_id, []).extend(tags)

    def _tag_value(self, resource_id: str, key: str) -> str | None:
        value = None
        for tag in self.tags.get(resource_id, []):
            if tag.key == key:
                value = tag.value
        return value

    async def list_images(self, name: str, service: str) -> List[Image]:
        self.calls.append(("list_images", (name, service)))
        wanted = {BACKUP_TYPE_KEY: BACKUP_TYPE_AUTO, NAME_KEY: name, SERVICE_KEY: service}
        return [
            replace(image, tags=list(self.tags.get(image_id, [])))
            for image_id, image in self.images.items()
            if image_id not in self.hidden_from_listing
            and all(self._tag_value(image_id, k) == v for k, v in wanted.items())
        ]

    async def get_image(self, image_id: str) -> Image:
        self.calls.append(("get_image", image_id))
        if image_id not in self.images:
            raise ImageNotFoundError(
                f"can't find image: {image_id}",
                details={"image_id": image_id},
            )
        return replace(self.images[image_id], tags=list(self.tags.get(image_id, [])))

    async def list_snapshot_ids(self, image_id: str) -> List[str]:
        self.calls.append(("list_snapshot_ids", image_id))
        image = await self.get_image(image_id)
        return image.snapshot_ids

    async def deregister_image_and_snapshots(self, images: Sequence[Image]) -> None:
        self.calls.append(("deregister_image_and_snapshots", [i.image_id for i in images]))
        for image in images:
            if image.image_id in self.fail_deregister_for:
                continue
            self.images.pop(image.image_id, None)
            self.tags.pop(image.image_id, None)
            for snapshot_id in image.snapshot_ids:
                self.snapshots.discard(snapshot_id)
                self.tags.pop(snapshot_id, None)

    def calls_to(self, operation: str) -> List[object]:
        """Return the arguments of every recorded call to operation."""
        return [arg for op, arg in self.calls if op == operation]
