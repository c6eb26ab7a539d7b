# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Image Backup Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation to prevent
accidental modification during a run.
"""

from dataclasses import dataclass, field
from typing import List
import re

from imgbackup.models import Tag

DEFAULT_GENERATION = 10
DEFAULT_MAIL_FROM = "create-image-backup@localhost.localdomain"
DEFAULT_MAIL_SERVER = "localhost"
DEFAULT_MAIL_PORT = 25
LOG_LEVELS = ("debug", "info", "warning", "error")


def _validate_instance_id(instance_id: str) -> bool:
    """Validate the i-xxxxxxxx instance id format."""
    return bool(re.match(r"^i-[0-9a-f]{8,17}$", instance_id))


@dataclass(frozen=True)
class BackupConfig:
    """
    Immutable configuration for a backup run.

    instance_id may be left unset when running on the instance itself;
    the run then resolves it through the instance metadata service.
    """

    # Instance to back up (None: resolve from instance metadata)
    instance_id: str | None = None

    # Number of images to keep for this instance/service fingerprint
    generation: int = DEFAULT_GENERATION

    # AWS region (None: SDK config, then instance metadata, then default)
    region: str | None = None

    # Value of the Service tag
    service: str = ""

    # Extra tags appended after the fingerprint tags
    custom_tags: List[Tag] = field(default_factory=list)

    # Failure notification (disabled when mail_to is unset)
    mail_to: str | None = None
    mail_from: str = DEFAULT_MAIL_FROM
    mail_server: str = DEFAULT_MAIL_SERVER
    mail_port: int = DEFAULT_MAIL_PORT

    # Image availability wait: attempts and seconds between polls
    image_wait_max_attempts: int = 120
    image_wait_delay: int = 15

    # Tag confirmation polling: attempts and base back-off in seconds
    tag_check_attempts: int = 10
    tag_check_delay: float = 1.0

    # structlog filtering level for command line runs
    log_level: str = "warning"

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        from imgbackup.errors import (
            explain_invalid_generation,
            explain_invalid_log_level,
            explain_invalid_mail_port,
        )

        errors: List[str] = []

        if self.instance_id is not None and not _validate_instance_id(self.instance_id):
            errors.append(f"Invalid instance id: {self.instance_id}")

        if isinstance(self.generation, bool) or self.generation < 0:
            errors.append(explain_invalid_generation(self.generation))

        if not 1 <= self.mail_port <= 65535:
            errors.append(explain_invalid_mail_port(self.mail_port))

        if self.image_wait_max_attempts < 1:
            errors.append(
                f"image_wait_max_attempts must be >= 1, got {self.image_wait_max_attempts}"
            )

        if self.image_wait_delay < 0:
            errors.append(f"image_wait_delay must be >= 0, got {self.image_wait_delay}")

        if self.tag_check_attempts < 1:
            errors.append(
                f"tag_check_attempts must be >= 1, got {self.tag_check_attempts}"
            )

        if self.log_level not in LOG_LEVELS:
            errors.append(explain_invalid_log_level(self.log_level))

        # Raise all errors at once
        if errors:
            from imgbackup.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    def with_updates(self, **kwargs) -> "BackupConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import fields

        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(kwargs)
        return BackupConfig(**current)
