# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Configuration Tests - tag parsing, config validation, builder and environment.
"""

import pytest

from imgbackup.builder import (
    build_from_steps,
    create_config,
    create_empty_config,
    keep_generations,
    notify_by_mail,
    pipe,
    with_custom_tags,
    with_instance_id,
    with_service,
)
from imgbackup.config import BackupConfig
from imgbackup.env import create_config_from_env
from imgbackup.exceptions import ConfigurationError, TagParseError
from imgbackup.models import BackupRequest, Tag
from imgbackup.tags import build_backup_tags, format_custom_tags, parse_custom_tags


# ============================================================================
# Custom tags
# ============================================================================

def test_parse_custom_tags():
    assert parse_custom_tags("env:prod,team:infra") == [
        Tag("env", "prod"),
        Tag("team", "infra"),
    ]


def test_parse_custom_tags_allows_empty_value():
    assert parse_custom_tags("owner:") == [Tag("owner", "")]


@pytest.mark.parametrize(
    "text",
    ["tag", "tag:val1:val2", ",tag:val", "tag:val,", "tag:val,tag", "", ":val"],
)
def test_parse_custom_tags_rejects_malformed(text):
    with pytest.raises(TagParseError):
        parse_custom_tags(text)


def test_tag_parse_error_is_configuration_error():
    with pytest.raises(ConfigurationError) as exc_info:
        parse_custom_tags("env:prod,broken")
    assert exc_info.value.details == {"entry": "broken"}


def test_format_custom_tags_renders_pairs():
    assert format_custom_tags([Tag("env", "prod"), Tag("team", "infra")]) == "env:prod,team:infra"


def test_build_backup_tags_order():
    tags = build_backup_tags("web", "shop", [Tag("env", "prod"), Tag("team", "infra")])
    assert [str(t) for t in tags] == [
        "BackupType:auto",
        "Name:web",
        "Service:shop",
        "env:prod",
        "team:infra",
    ]


# ============================================================================
# BackupConfig / BackupRequest validation
# ============================================================================

def test_config_defaults():
    config = BackupConfig()
    assert config.generation == 10
    assert config.region is None
    assert config.mail_server == "localhost"
    assert config.mail_port == 25
    assert config.image_wait_max_attempts == 120


def test_config_collects_every_error():
    with pytest.raises(ConfigurationError) as exc_info:
        BackupConfig(instance_id="web-1", generation=-1, mail_port=0, log_level="loud")

    assert len(exc_info.value.details["errors"]) == 4


def test_config_with_updates_keeps_tags():
    config = BackupConfig(custom_tags=[Tag("env", "prod")])
    updated = config.with_updates(generation=3)

    assert updated.generation == 3
    assert updated.custom_tags == [Tag("env", "prod")]
    assert config.generation == 10


def test_request_rejects_negative_generation():
    with pytest.raises(ConfigurationError):
        BackupRequest(instance_id="i-1234567890abcdef0", name="n", service="s", generation=-1)


# ============================================================================
# Builder
# ============================================================================

def test_build_from_steps():
    config = build_from_steps(
        lambda c: with_instance_id(c, "i-1234567890abcdef0"),
        lambda c: keep_generations(c, 3),
        lambda c: with_custom_tags(c, [Tag("env", "prod")]),
        lambda c: notify_by_mail(c, "ops@example.com", server="smtp.example.com"),
    )

    assert config.instance_id == "i-1234567890abcdef0"
    assert config.generation == 3
    assert config.custom_tags == [Tag("env", "prod")]
    assert config.mail_to == "ops@example.com"
    assert config.mail_server == "smtp.example.com"


def test_pipe_composes_steps_in_order():
    steps = pipe(
        lambda c: with_service(c, "web"),
        lambda c: with_custom_tags(c, [Tag("env", "prod")]),
        lambda c: with_custom_tags(c, [Tag("team", "infra")]),
    )

    start = create_empty_config()
    config = steps(start)

    assert config["service"] == "web"
    assert config["custom_tags"] == [Tag("env", "prod"), Tag("team", "infra")]
    assert start["custom_tags"] == []


def test_keep_generations_rejects_negative():
    with pytest.raises(ValueError):
        keep_generations({}, -1)


def test_create_config_passes_extra_options():
    config = create_config(service="web", image_wait_delay=1, mail_port=2525)
    assert config.service == "web"
    assert config.image_wait_delay == 1
    assert config.mail_port == 2525
    assert config.mail_to is None


# ============================================================================
# Environment
# ============================================================================

ENV_VARS = [
    "IMGBACKUP_INSTANCE_ID",
    "IMGBACKUP_GENERATION",
    "AWS_REGION",
    "IMGBACKUP_SERVICE",
    "IMGBACKUP_CUSTOM_TAGS",
    "IMGBACKUP_MAIL_TO",
    "IMGBACKUP_MAIL_FROM",
    "IMGBACKUP_MAIL_SERVER",
    "IMGBACKUP_MAIL_PORT",
    "IMGBACKUP_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_config_from_empty_env(clean_env):
    config = create_config_from_env()
    assert config == BackupConfig()


def test_config_from_env(clean_env):
    clean_env.setenv("IMGBACKUP_INSTANCE_ID", "i-0abcdef1234567890")
    clean_env.setenv("IMGBACKUP_GENERATION", "4")
    clean_env.setenv("AWS_REGION", "eu-west-1")
    clean_env.setenv("IMGBACKUP_SERVICE", "web")
    clean_env.setenv("IMGBACKUP_CUSTOM_TAGS", "env:prod")
    clean_env.setenv("IMGBACKUP_MAIL_TO", "ops@example.com")
    clean_env.setenv("IMGBACKUP_MAIL_FROM", "backup@example.com")
    clean_env.setenv("IMGBACKUP_MAIL_PORT", "2525")
    clean_env.setenv("IMGBACKUP_LOG_LEVEL", "INFO")

    config = create_config_from_env()

    assert config.instance_id == "i-0abcdef1234567890"
    assert config.generation == 4
    assert config.region == "eu-west-1"
    assert config.service == "web"
    assert config.custom_tags == [Tag("env", "prod")]
    assert config.mail_to == "ops@example.com"
    assert config.mail_from == "backup@example.com"
    assert config.mail_port == 2525
    assert config.log_level == "info"


@pytest.mark.parametrize(
    "name,value",
    [
        ("IMGBACKUP_GENERATION", "many"),
        ("IMGBACKUP_GENERATION", "-2"),
        ("IMGBACKUP_MAIL_PORT", "smtp"),
        ("IMGBACKUP_LOG_LEVEL", "verbose"),
        ("IMGBACKUP_CUSTOM_TAGS", "env"),
    ],
)
def test_config_from_env_rejects_invalid_values(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ConfigurationError):
        create_config_from_env()
