"""Email delivery of rendered reports."""

import logging
import mimetypes
import smtplib
from collections.abc import Callable
from email.message import EmailMessage
from pathlib import Path
from typing import Protocol

from rsc_report.config import EmailSettings
from rsc_report.errors import RSCReportError
from rsc_report.renderers.report_renderer import RenderedReport

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    """Anything that can deliver an HTML message with file attachments."""

    def send(self, subject: str, html_body: str, attachments: list[Path]) -> None: ...


class SMTPEmailSender:
    """Sends mail through a single SMTP relay."""

    def __init__(
        self,
        settings: EmailSettings,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ) -> None:
        if not settings.configured:
            raise RSCReportError(
                "Email is not configured: set RSC_SMTP_SERVER, RSC_SMTP_SENDER and RSC_SMTP_RECIPIENTS"
            )
        self.settings = settings
        self.smtp_factory = smtp_factory

    def build_message(self, subject: str, html_body: str, attachments: list[Path]) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.settings.sender
        msg["To"] = ", ".join(self.settings.recipients)
        msg.set_content("This report is best viewed in an HTML-capable mail client.")
        msg.add_alternative(html_body, subtype="html")

        for path in attachments:
            ctype, _ = mimetypes.guess_type(path.name)
            maintype, subtype = (ctype or "application/octet-stream").split("/", 1)
            msg.add_attachment(path.read_bytes(), maintype=maintype, subtype=subtype, filename=path.name)
        return msg

    def send(self, subject: str, html_body: str, attachments: list[Path]) -> None:
        msg = self.build_message(subject, html_body, attachments)
        s = self.settings
        try:
            with self.smtp_factory(s.server, s.port) as smtp:
                if s.use_tls:
                    smtp.starttls()
                if s.username and s.password:
                    smtp.login(s.username, s.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise RSCReportError(f"Failed to send email via {s.server}:{s.port}: {e}") from e
        logger.info(f"Emailed '{subject}' to {', '.join(s.recipients)}")


def email_report(sender: EmailSender, report: RenderedReport, subject: str | None = None) -> None:
    """Send the report's HTML document as the body with its CSV attached."""
    attachments = [report.csv_path] if report.csv_path else []
    sender.send(subject or report.name, report.html or "", attachments)
