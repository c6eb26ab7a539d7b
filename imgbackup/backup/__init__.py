# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Engine - Image creation, tag propagation and rotation.
"""

from imgbackup.backup.creator import (
    create_image_backup,
    format_image_timestamp,
)

from imgbackup.backup.rotation import (
    effective_creation_time,
    parse_creation_date,
    rotate_images,
    select_rotation_targets,
)

__all__ = [
    # Creator
    "create_image_backup",
    "format_image_timestamp",
    # Rotation
    "effective_creation_time",
    "parse_creation_date",
    "rotate_images",
    "select_rotation_targets",
]
