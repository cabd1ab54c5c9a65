"""Approval notification adapters.

SmtpApprovalNotifier mails HR a summary of the approved applicant with signed
links to the documents. LoggingApprovalNotifier is used when no recipient is
configured (development, tests).
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

from config import Settings
from domain.applicants.ports import ApprovalNotice, NotificationPort
from domain.applicants.slots import DocumentSlot

logger = logging.getLogger(__name__)

SLOT_LABELS = {
    DocumentSlot.PRE_EMPLOYMENT.value: "Pre-Employment Form",
    DocumentSlot.POLICY_RULES.value: "Policy Rules",
}


def build_approval_message(notice: ApprovalNotice, sender: str, recipient: str) -> MIMEMultipart:
    """Build the multipart (text + HTML) approval email."""
    name = notice.display_name
    msg = MIMEMultipart("alternative")
    msg['From'] = sender
    msg['To'] = recipient
    msg['Subject'] = f"Onboarding Approved: {name}"

    text_lines = [
        f"An onboarding application for {name} has been approved.",
        "",
        f"Record: {notice.record_id}",
        f"User: {notice.user_id}",
        f"Approved at: {notice.approved_at.isoformat()}",
        "",
        "Signed documents (links expire):",
    ]
    html_links = []
    for slot, url in sorted(notice.document_urls.items()):
        label = SLOT_LABELS.get(slot, slot)
        text_lines.append(f"- {label}: {url}")
        html_links.append(f'<p><a href="{escape(url)}">View {escape(label)}</a></p>')
    if not notice.document_urls:
        text_lines.append("- (no document links available)")

    html = (
        "<div>"
        f"<p>An onboarding application for <strong>{escape(name)}</strong> has been approved.</p>"
        f"<p><strong>Record:</strong> {notice.record_id}</p>"
        "<h3>Signed Documents (PDF)</h3>"
        f"{''.join(html_links)}"
        "</div>"
    )

    msg.attach(MIMEText("\n".join(text_lines), 'plain'))
    msg.attach(MIMEText(html, 'html'))
    return msg


class SmtpApprovalNotifier(NotificationPort):
    """Send approval notices over SMTP with STARTTLS."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        recipient: str,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.recipient = recipient
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.timeout_seconds = timeout_seconds

    def send_approval(self, notice: ApprovalNotice) -> None:
        sender = self.smtp_user or f"onboarding@{self.smtp_host}"
        msg = build_approval_message(notice, sender=sender, recipient=self.recipient)

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout_seconds) as smtp:
            smtp.starttls()
            if self.smtp_user and self.smtp_password:
                smtp.login(self.smtp_user, self.smtp_password)
            smtp.send_message(msg)

        logger.info(
            f"Approval email sent to {self.recipient} via {self.smtp_host}:{self.smtp_port}",
            extra={"record_id": notice.record_id, "user_id": notice.user_id},
        )


class LoggingApprovalNotifier(NotificationPort):
    """Write approval notices to the log instead of sending them."""

    def send_approval(self, notice: ApprovalNotice) -> None:
        logger.info(
            f"Approval notice for {notice.display_name} "
            f"({len(notice.document_urls)} document links)",
            extra={"record_id": notice.record_id, "user_id": notice.user_id},
        )


def build_notifier(settings: Settings) -> NotificationPort:
    """SMTP notifier when a recipient is configured, logging notifier otherwise."""
    if not settings.APPROVAL_NOTIFY_RECIPIENT:
        return LoggingApprovalNotifier()
    return SmtpApprovalNotifier(
        smtp_host=settings.SMTP_HOST,
        smtp_port=settings.SMTP_PORT,
        recipient=settings.APPROVAL_NOTIFY_RECIPIENT,
        smtp_user=settings.SMTP_USER,
        smtp_password=settings.SMTP_PASSWORD,
    )
