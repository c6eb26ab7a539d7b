# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for imgbackup tests.

Provides the in-memory gateway, image factories, and a local moto EC2
server for adapter tests.
"""

import socket
from typing import Generator

import pytest
import structlog

from imgbackup.gateway.memory import InMemoryGateway
from imgbackup.models import BackupRequest, BlockDeviceMapping, Image, Tag
from imgbackup.tags import build_backup_tags

INSTANCE_ID = "i-1234567890abcdef0"


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo logging configuration done by command line tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def gateway() -> InMemoryGateway:
    """In-memory gateway with one named instance."""
    return InMemoryGateway(
        current_instance_id=INSTANCE_ID,
        instance_names={INSTANCE_ID: "test"},
    )


@pytest.fixture
def backup_request() -> BackupRequest:
    """Request keeping three generations of test/service images."""
    return BackupRequest(
        instance_id=INSTANCE_ID,
        name="test",
        service="service",
        generation=3,
    )


def make_image(
    image_id: str,
    creation_date: str | None,
    state: str = "available",
    snapshot_ids: tuple = (),
) -> Image:
    """Build an image with one volume-backed mapping per snapshot id."""
    return Image(
        image_id=image_id,
        state=state,
        creation_date=creation_date,
        block_device_mappings=[
            BlockDeviceMapping(f"/dev/sd{chr(ord('a') + n)}", snap)
            for n, snap in enumerate(snapshot_ids)
        ],
    )


def seed_images(gateway: InMemoryGateway, images, name="test", service="service") -> None:
    """Register images in the gateway with the backup fingerprint tags."""
    for image in images:
        gateway.add_image(image, build_backup_tags(name, service))


def hourly_images(count: int = 5) -> list:
    """Available images one hour apart, oldest first."""
    return [
        make_image(
            f"ami-1234567890abcdef{n}",
            f"2006-01-02T{15 + n:02d}:04:05.000Z",
            snapshot_ids=(f"snap-1234567890abcdef{n}",),
        )
        for n in range(count)
    ]


def custom_tags() -> list:
    return [Tag("env", "prod"), Tag("team", "infra")]


# ============================================================================
# Local EC2 endpoint (moto server mode)
# ============================================================================

def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(scope="session")
def moto_endpoint() -> Generator[str, None, None]:
    """Start a moto server and yield its endpoint URL."""
    from moto.server import ThreadedMotoServer

    port = _free_port()
    server = ThreadedMotoServer(ip_address="127.0.0.1", port=port, verbose=False)
    server.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        server.stop()


@pytest.fixture
def aws_credentials(monkeypatch) -> None:
    """Dummy credentials so the SDK never looks for real ones."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
