# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Image Backup Builder - Functional builder pattern for configuration.

This module provides pure functions for building BackupConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from typing import Any, Callable, Dict, List

from imgbackup.config import (
    DEFAULT_GENERATION,
    DEFAULT_MAIL_FROM,
    DEFAULT_MAIL_PORT,
    DEFAULT_MAIL_SERVER,
    BackupConfig,
)
from imgbackup.models import Tag


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "instance_id": None,
        "generation": DEFAULT_GENERATION,
        "region": None,
        "service": "",
        "custom_tags": [],
        "mail_to": None,
        "mail_from": DEFAULT_MAIL_FROM,
        "mail_server": DEFAULT_MAIL_SERVER,
        "mail_port": DEFAULT_MAIL_PORT,
        "image_wait_max_attempts": 120,
        "image_wait_delay": 15,
        "tag_check_attempts": 10,
        "tag_check_delay": 1.0,
        "log_level": "warning",
    }


def with_instance_id(config: ConfigDict, instance_id: str) -> ConfigDict:
    """
    Set the instance to back up.

    Args:
        config: Current configuration dictionary
        instance_id: EC2 instance id (e.g., 'i-1234567890abcdef0')

    Returns:
        New configuration dictionary with instance id set
    """
    return {**config, "instance_id": instance_id}


def with_region(config: ConfigDict, region: str) -> ConfigDict:
    """
    Set the AWS region explicitly.

    Args:
        config: Current configuration dictionary
        region: AWS region (e.g., 'ap-northeast-1')

    Returns:
        New configuration dictionary with region set
    """
    return {**config, "region": region}


def keep_generations(config: ConfigDict, generation: int) -> ConfigDict:
    """
    Set how many images to keep before older ones are deregistered.

    Args:
        config: Current configuration dictionary
        generation: Number of images to retain

    Returns:
        New configuration dictionary with generation count set
    """
    if generation < 0:
        raise ValueError(f"generation must be >= 0, got {generation}")
    return {**config, "generation": generation}


def with_service(config: ConfigDict, service: str) -> ConfigDict:
    """
    Set the value of the Service tag.

    Args:
        config: Current configuration dictionary
        service: Service label

    Returns:
        New configuration dictionary with service set
    """
    return {**config, "service": service}


def with_custom_tags(config: ConfigDict, tags: List[Tag]) -> ConfigDict:
    """
    Append custom tags after the fingerprint tags.

    Args:
        config: Current configuration dictionary
        tags: Tags to append, in order

    Returns:
        New configuration dictionary with tags appended
    """
    return {**config, "custom_tags": list(config["custom_tags"]) + list(tags)}


def notify_by_mail(
    config: ConfigDict,
    mail_to: str,
    *,
    mail_from: str = DEFAULT_MAIL_FROM,
    server: str = DEFAULT_MAIL_SERVER,
    port: int = DEFAULT_MAIL_PORT,
) -> ConfigDict:
    """
    Enable failure notification by mail.

    Args:
        config: Current configuration dictionary
        mail_to: Recipient address
        mail_from: Sender address
        server: SMTP server host
        port: SMTP server port

    Returns:
        New configuration dictionary with notification enabled
    """
    return {
        **config,
        "mail_to": mail_to,
        "mail_from": mail_from,
        "mail_server": server,
        "mail_port": port,
    }


def build_config(config_dict: ConfigDict) -> BackupConfig:
    """
    Validate and build an immutable BackupConfig from a configuration dictionary.

    Raises:
        ConfigurationError: If validation fails
    """
    return BackupConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose multiple builder functions into a single function.

        config = pipe(
            lambda c: with_instance_id(c, "i-1234567890abcdef0"),
            lambda c: keep_generations(c, 3),
        )(create_empty_config())
    """

    def composed(config: ConfigDict) -> ConfigDict:
        result = config
        for func in funcs:
            result = func(result)
        return result

    return composed


def build_from_steps(*steps: BuilderFunc) -> BackupConfig:
    """
    Build config by applying a sequence of builder functions.

    This is a convenience function that combines pipe() and build_config().
    """
    return build_config(pipe(*steps)(create_empty_config()))


def create_config(
    *,
    instance_id: str | None = None,
    generation: int | None = None,
    region: str | None = None,
    service: str | None = None,
    custom_tags: List[Tag] | None = None,
    mail_to: str | None = None,
    **kwargs: Any,
) -> BackupConfig:
    """
    Create a validated BackupConfig.

    Args:
        instance_id: Instance to back up (optional, resolved from metadata)
        generation: Number of images to keep (default: 10)
        region: AWS region (optional)
        service: Service tag value (default: "")
        custom_tags: Extra tags (optional)
        mail_to: Failure notification recipient (optional)
        **kwargs: Additional configuration options

    Example:
        config = create_config(
            instance_id="i-1234567890abcdef0",
            generation=7,
            service="web",
            custom_tags=[Tag("env", "prod")],
        )
    """
    config_dict = create_empty_config()

    if instance_id:
        config_dict = with_instance_id(config_dict, instance_id)

    if generation is not None:
        config_dict = keep_generations(config_dict, generation)

    if region:
        config_dict = with_region(config_dict, region)

    if service:
        config_dict = with_service(config_dict, service)

    if custom_tags:
        config_dict = with_custom_tags(config_dict, custom_tags)

    if mail_to:
        config_dict = notify_by_mail(
            config_dict,
            mail_to,
            mail_from=kwargs.pop("mail_from", DEFAULT_MAIL_FROM),
            server=kwargs.pop("mail_server", DEFAULT_MAIL_SERVER),
            port=kwargs.pop("mail_port", DEFAULT_MAIL_PORT),
        )

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    return build_config(config_dict)
