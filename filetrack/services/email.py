"""
Plain-text email notifications for file events.
"""
import smtplib
from email.message import EmailMessage
from typing import Optional

import structlog

from ..config import settings
from ..models.models import File, Forward


log = structlog.get_logger(__name__)


def email_enabled() -> bool:
    return bool(settings.enable_email and settings.smtp_host and settings.mail_from)


def send_email(to: Optional[str], subject: str, body: str) -> bool:
    """Send one message. Returns False when email is disabled or there is no recipient."""
    if not to or not email_enabled():
        log.info("email_skipped", to=to, subject=subject)
        return False
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.mail_from
    msg["To"] = to
    msg.set_content(body)
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as s:
            if settings.smtp_tls:
                s.starttls()
            if settings.smtp_username and settings.smtp_password:
                s.login(settings.smtp_username, settings.smtp_password)
            s.send_message(msg)
    except Exception as e:
        log.warning("email_send_failed", to=to, subject=subject, error=str(e))
        raise
    log.info("email_sent", to=to, subject=subject)
    return True


def _file_link(file: File) -> str:
    return f"{settings.public_base_url}/files/code/{file.code}"


def send_file_forwarded(to: str, forward: Forward, file: File) -> bool:
    subject = f"File Forwarded: {file.code} - {file.title}"
    body = (
        f"A file has been forwarded to you for review.\n\n"
        f"File code: {file.code}\n"
        f"Title: {file.title}\n"
        f"From: {forward.sent_by}\n"
        f"Department: {forward.recipient_department}\n"
        f"Priority: {forward.priority}\n"
        f"Delivery method: {forward.sent_through or '-'}\n"
        f"Remarks: {forward.remarks or '-'}\n\n"
        f"{_file_link(file)}\n"
    )
    return send_email(to, subject, body)


def send_file_released(to: str, file: File, released_by: str, remarks: Optional[str] = None) -> bool:
    subject = f"File Released: {file.code} - {file.title}"
    body = (
        f"A file has been assigned to you.\n\n"
        f"File code: {file.code}\n"
        f"Title: {file.title}\n"
        f"Department: {file.department}\n"
        f"Released by: {released_by}\n"
        f"Priority: {file.priority}\n"
        f"Remarks: {remarks or '-'}\n\n"
        f"{_file_link(file)}\n"
    )
    return send_email(to, subject, body)


def send_file_received(to: str, forward: Forward, file: File) -> bool:
    subject = f"File Received: {file.code} - {file.title}"
    body = (
        f"{forward.distributed_to} has received the file.\n\n"
        f"File code: {file.code}\n"
        f"Title: {file.title}\n"
        f"Department: {forward.recipient_department}\n\n"
        f"{_file_link(file)}\n"
    )
    return send_email(to, subject, body)
