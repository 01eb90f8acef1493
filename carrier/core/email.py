from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Iterable, Mapping, Optional

from carrier.core.config import Settings, get_settings
from carrier.core.templating import templates

logger = logging.getLogger("carrier.email")

X_MAILER = "Carrier"


class EmailDeliveryError(Exception):
    """Raised when the SMTP server refuses or drops a message."""


def send_email(
    subject: str,
    body: str,
    to: Iterable[str],
    html_body: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> bool:
    """Send a plain-text email, optionally with an HTML alternative.

    Returns False without sending when SMTP is not configured or the
    application runs in dev mode.
    """
    settings = settings or get_settings()
    recipients = list(to)
    if not settings.smtp_host or not settings.smtp_sender:
        logger.warning("smtp_not_configured", extra={"subject": subject, "to": recipients})
        return False

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = f"{settings.project_name} <{settings.smtp_sender}>"
    msg["To"] = ", ".join(recipients)
    msg["X-Mailer"] = X_MAILER
    if settings.smtp_reply_to:
        msg["Reply-To"] = settings.smtp_reply_to
    msg.set_content(body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")

    if settings.dev_mode:
        logger.info("email_suppressed_dev_mode", extra={"subject": subject, "to": recipients})
        return False

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("smtp_send_failed", extra={"error": str(exc), "subject": subject})
        raise EmailDeliveryError(str(exc)) from exc

    logger.info("email_sent", extra={"subject": subject, "to": recipients})
    return True


def send_template_email(
    template: str,
    subject: str,
    to: Iterable[str],
    filling: Optional[Mapping[str, Any]] = None,
    settings: Optional[Settings] = None,
) -> bool:
    """Render ``email/<template>.html`` and its ``_plain.txt`` twin and send them."""
    settings = settings or get_settings()
    context = {"app_name": settings.project_name, "app_url": settings.url}
    context.update(filling or {})

    html_body = templates.get_template(f"email/{template}.html").render(**context)
    plain_body = templates.get_template(f"email/{template}_plain.txt").render(**context)
    return send_email(subject, plain_body, to, html_body=html_body, settings=settings)
