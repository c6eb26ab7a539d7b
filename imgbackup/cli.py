# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Command line entry point: create-image-backup.

Creates an image of an instance, rotates older images and prints the
results one line each. Settings come from the environment (see
imgbackup.env) and are overridden by flags.

Exit codes:
    0   success
    10  invalid flags or configuration
    11  provider or engine failure
"""

import asyncio
import logging
import sys
from typing import List, Sequence

import click
import structlog
import typer
from botocore.exceptions import BotoCoreError, ClientError

from imgbackup import __version__
from imgbackup.config import BackupConfig
from imgbackup.core import run_backup
from imgbackup.env import create_config_from_env
from imgbackup.exceptions import ConfigurationError, ImageBackupError, TagParseError
from imgbackup.gateway.ec2 import open_ec2_gateway
from imgbackup.notify import send_failure_mail
from imgbackup.tags import parse_custom_tags

PROG_NAME = "create-image-backup"

EXIT_OK = 0
EXIT_FLAG_PARSE_ERROR = 10
EXIT_AWS_ERROR = 11

app = typer.Typer(add_completion=False, help="Back up an EC2 instance as a machine image.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{PROG_NAME} version {__version__}")
        raise typer.Exit()


INSTANCE_ID_OPTION = typer.Option(None, "--instance-id", "-i", help="instance id")
GENERATION_OPTION = typer.Option(
    None, "--backup-generation", "-g", min=0, help="number of backup generation"
)
REGION_OPTION = typer.Option(None, "--region", "-r", help="region")
SERVICE_OPTION = typer.Option(None, "--service-tag", "-s", help="value of Service tag")
CUSTOM_TAGS_OPTION = typer.Option(
    None, "--custom-tags", "-c", help="key-value of custom tags (key:value,key:value)"
)
MAIL_TO_OPTION = typer.Option(
    None, "--mail-to", "-t", help="to-address of email notification"
)
MAIL_FROM_OPTION = typer.Option(
    None, "--mail-from", "-f", help="from-address of email notification"
)
MAIL_SERVER_OPTION = typer.Option(
    None, "--mail-server", "-m", help="address of mail server"
)
MAIL_PORT_OPTION = typer.Option(
    None, "--mail-server-port", "-p", help="port number of mail server"
)
VERSION_OPTION = typer.Option(
    False,
    "--version",
    "-v",
    callback=_version_callback,
    is_eager=True,
    help="print version information",
)


def configure_logging(level: str) -> None:
    """Send structlog output to stderr so stdout stays line-oriented."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _load_config(**flags) -> BackupConfig:
    """Merge flags over the environment configuration."""
    try:
        config = create_config_from_env()

        custom_tags = flags.pop("custom_tags")
        updates = {k: v for k, v in flags.items() if v is not None}
        if custom_tags is not None:
            updates["custom_tags"] = parse_custom_tags(custom_tags)

        return config.with_updates(**updates)
    except TagParseError as e:
        raise typer.BadParameter(e.message, param_hint="'--custom-tags' / '-c'") from e
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e


async def _execute(config: BackupConfig) -> int:
    def print_created(image_id: str) -> None:
        typer.echo(f"create image: {image_id}")

    try:
        async with open_ec2_gateway(config) as gateway:
            result = await run_backup(gateway, config, on_image_created=print_created)
    except (ImageBackupError, BotoCoreError, ClientError) as e:
        message = f"failed to run backup: {e}"
        typer.echo(message, err=True)
        if config.mail_to:
            await _notify(config, message)
        return EXIT_AWS_ERROR

    typer.echo(f"deregister images: {', '.join(result.rotated_image_ids)}")
    return EXIT_OK


async def _notify(config: BackupConfig, body: str) -> None:
    try:
        await send_failure_mail(
            config.mail_from,
            config.mail_to,
            config.mail_server,
            config.mail_port,
            body,
        )
    except ImageBackupError as e:
        typer.echo(str(e), err=True)


@app.command()
def backup(
    instance_id: str | None = INSTANCE_ID_OPTION,
    generation: int | None = GENERATION_OPTION,
    region: str | None = REGION_OPTION,
    service: str | None = SERVICE_OPTION,
    custom_tags: str | None = CUSTOM_TAGS_OPTION,
    mail_to: str | None = MAIL_TO_OPTION,
    mail_from: str | None = MAIL_FROM_OPTION,
    mail_server: str | None = MAIL_SERVER_OPTION,
    mail_port: int | None = MAIL_PORT_OPTION,
    version: bool = VERSION_OPTION,
) -> int:
    """Create an image of the instance and deregister images beyond the generation."""
    config = _load_config(
        instance_id=instance_id,
        generation=generation,
        region=region,
        service=service,
        custom_tags=custom_tags,
        mail_to=mail_to,
        mail_from=mail_from,
        mail_server=mail_server,
        mail_port=mail_port,
    )
    configure_logging(config.log_level)
    return asyncio.run(_execute(config))


def run(argv: Sequence[str] | None = None) -> int:
    """
    Invoke the command with argv (without the program name) and return the exit code.
    """
    args: List[str] = list(sys.argv[1:] if argv is None else argv)
    command = typer.main.get_command(app)
    try:
        code = command.main(args=args, prog_name=PROG_NAME, standalone_mode=False)
    except click.UsageError as e:
        e.show()
        return EXIT_FLAG_PARSE_ERROR
    except click.Abort:
        typer.echo("Aborted!", err=True)
        return EXIT_AWS_ERROR
    return code if isinstance(code, int) else EXIT_OK


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
