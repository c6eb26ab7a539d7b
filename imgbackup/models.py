# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Image Backup Models - Data structures shared by the engine and the gateways.

Images and tags mirror the shapes returned by the EC2 API closely enough to
be built straight from describe-images records, but the engine only ever
works with these types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple


class ImageState(str, Enum):
    """Lifecycle state reported for a machine image."""

    PENDING = "pending"
    AVAILABLE = "available"
    FAILED = "failed"
    INVALID = "invalid"
    DEREGISTERED = "deregistered"
    TRANSIENT = "transient"
    ERROR = "error"


@dataclass(frozen=True)
class Tag:
    """A key/value pair attached to an image or snapshot."""

    key: str
    value: str

    def __str__(self) -> str:
        return f"{self.key}:{self.value}"

    def to_aws(self) -> Dict[str, str]:
        return {"Key": self.key, "Value": self.value}

    @classmethod
    def from_aws(cls, tag: Dict[str, Any]) -> "Tag":
        return cls(key=tag["Key"], value=tag.get("Value", ""))


@dataclass(frozen=True)
class BlockDeviceMapping:
    """
    A device attached to an image.

    snapshot_id is only set when the mapping carries a storage volume;
    ephemeral (instance-store) mappings have none.
    """

    device_name: str
    snapshot_id: str | None = None


@dataclass
class Image:
    """A point-in-time machine image of an instance."""

    image_id: str
    state: str
    creation_date: str | None = None
    name: str = ""
    block_device_mappings: List[BlockDeviceMapping] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)

    @property
    def snapshot_ids(self) -> List[str]:
        return [
            m.snapshot_id for m in self.block_device_mappings if m.snapshot_id
        ]

    @classmethod
    def from_aws_image(cls, image: Dict[str, Any]) -> "Image":
        """Create an Image from a describe-images record."""
        mappings = []
        for mapping in image.get("BlockDeviceMappings", []):
            ebs = mapping.get("Ebs")
            mappings.append(
                BlockDeviceMapping(
                    device_name=mapping.get("DeviceName", ""),
                    snapshot_id=ebs.get("SnapshotId") if ebs else None,
                )
            )

        return cls(
            image_id=image["ImageId"],
            state=image.get("State", ""),
            creation_date=image.get("CreationDate"),
            name=image.get("Name", ""),
            block_device_mappings=mappings,
            tags=[Tag.from_aws(t) for t in image.get("Tags", []) if t.get("Key")],
        )


@dataclass(frozen=True)
class BackupRequest:
    """
    Input bundle for one backup run.

    Constructed fresh per invocation and discarded when the run completes.
    """

    instance_id: str
    name: str
    service: str
    generation: int
    custom_tags: Tuple[Tag, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.generation, bool) or self.generation < 0:
            from imgbackup.errors import explain_invalid_generation
            from imgbackup.exceptions import ConfigurationError

            raise ConfigurationError(explain_invalid_generation(self.generation))


@dataclass
class BackupResult:
    """Result of a complete backup run."""

    run_id: str  # ULID
    instance_id: str
    name: str
    image_id: str
    rotated_image_ids: List[str]
    duration_seconds: float
