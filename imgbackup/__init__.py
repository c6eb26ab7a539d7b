# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
EC2 Image Backup - Point-in-time machine image backups with generation rotation.

Creates an image of an instance, propagates provenance tags to the image and
its snapshots, and deregisters the oldest images of the same (Name, Service)
fingerprint once the generation count is exceeded. Package name: imgbackup.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from imgbackup.builder import create_config

# Core functions
from imgbackup.core import build_request, run_backup

# Engine
from imgbackup.backup import create_image_backup, rotate_images

# Environment-based configuration
from imgbackup.env import create_config_from_env

__all__ = [
    # Version
    "__version__",
    # Configuration creation
    "create_config",
    "create_config_from_env",
    # Orchestration
    "build_request",
    "run_backup",
    # Engine
    "create_image_backup",
    "rotate_images",
]
