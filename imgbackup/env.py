# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

These helpers are small wrappers around create_config(). The command line
starts from the environment and lets explicit flags override it, so a cron
entry or systemd unit can carry most of the settings.
"""

from __future__ import annotations

import os
from typing import List

from imgbackup.builder import create_config
from imgbackup.config import DEFAULT_GENERATION, DEFAULT_MAIL_PORT, LOG_LEVELS, BackupConfig
from imgbackup.errors import (
    explain_invalid_generation,
    explain_invalid_log_level,
    explain_invalid_mail_port,
)
from imgbackup.exceptions import ConfigurationError
from imgbackup.models import Tag
from imgbackup.tags import parse_custom_tags


def _parse_generation(value: str | None) -> int:
    if not value:
        return DEFAULT_GENERATION
    try:
        generation = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_generation(value)) from exc
    if generation < 0:
        raise ConfigurationError(explain_invalid_generation(value))
    return generation


def _parse_mail_port(value: str | None) -> int:
    if not value:
        return DEFAULT_MAIL_PORT
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_mail_port(value)) from exc


def _parse_custom_tags(value: str | None) -> List[Tag]:
    if not value:
        return []
    return parse_custom_tags(value)


def _parse_log_level(value: str | None) -> str:
    if not value:
        return "warning"
    level = value.lower()
    if level not in LOG_LEVELS:
        raise ConfigurationError(explain_invalid_log_level(value))
    return level


def create_config_from_env() -> BackupConfig:
    """
    Create a BackupConfig from environment variables.

    Optional environment variables:
        - IMGBACKUP_INSTANCE_ID: Instance to back up (default: instance metadata)
        - IMGBACKUP_GENERATION: Images to keep (default: 10)
        - AWS_REGION: AWS region (default: SDK config, metadata, ap-northeast-1)
        - IMGBACKUP_SERVICE: Service tag value
        - IMGBACKUP_CUSTOM_TAGS: Comma-separated key:value pairs
        - IMGBACKUP_MAIL_TO: Failure notification recipient
        - IMGBACKUP_MAIL_FROM: Notification sender
        - IMGBACKUP_MAIL_SERVER: SMTP host (default: localhost)
        - IMGBACKUP_MAIL_PORT: SMTP port (default: 25)
        - IMGBACKUP_LOG_LEVEL: 'debug' | 'info' | 'warning' | 'error'
    """

    kwargs = {}
    mail_from = os.getenv("IMGBACKUP_MAIL_FROM")
    if mail_from:
        kwargs["mail_from"] = mail_from
    mail_server = os.getenv("IMGBACKUP_MAIL_SERVER")
    if mail_server:
        kwargs["mail_server"] = mail_server

    return create_config(
        instance_id=os.getenv("IMGBACKUP_INSTANCE_ID") or None,
        generation=_parse_generation(os.getenv("IMGBACKUP_GENERATION")),
        region=os.getenv("AWS_REGION") or None,
        service=os.getenv("IMGBACKUP_SERVICE"),
        custom_tags=_parse_custom_tags(os.getenv("IMGBACKUP_CUSTOM_TAGS")),
        mail_to=os.getenv("IMGBACKUP_MAIL_TO") or None,
        mail_port=_parse_mail_port(os.getenv("IMGBACKUP_MAIL_PORT")),
        log_level=_parse_log_level(os.getenv("IMGBACKUP_LOG_LEVEL")),
        **kwargs,
    )
