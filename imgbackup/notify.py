# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Failure notification by mail.
"""

import asyncio
import smtplib
from email.message import EmailMessage

import structlog

from imgbackup.exceptions import NotificationError

logger = structlog.get_logger()

MAIL_SUBJECT = "Backup failed"


def build_failure_message(mail_from: str, mail_to: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = mail_from
    message["To"] = mail_to
    message["Subject"] = MAIL_SUBJECT
    message.set_content(body)
    return message


def _send(message: EmailMessage, server: str, port: int) -> None:
    with smtplib.SMTP(server, port, timeout=30) as smtp:
        smtp.send_message(message)


async def send_failure_mail(
    mail_from: str,
    mail_to: str,
    server: str,
    port: int,
    body: str,
) -> None:
    """
    Send a plain-text failure report.

    Raises:
        NotificationError: If the message cannot be delivered
    """
    message = build_failure_message(mail_from, mail_to, body)
    try:
        await asyncio.to_thread(_send, message, server, port)
    except (smtplib.SMTPException, OSError) as e:
        raise NotificationError(
            f"Failed to send failure mail: {e}",
            details={"server": server, "port": port, "to": mail_to},
        ) from e

    logger.info("failure_mail_sent", to=mail_to, server=server)
