"""SMTP email client built on aiosmtplib."""

from __future__ import annotations

import email.message
import email.utils
import logging
import ssl
from typing import TYPE_CHECKING

import aiosmtplib

from .schemas import EmailMessage, EmailPriority, EmailResult

if TYPE_CHECKING:
    from crane_crm.core.settings.email import EmailSettings

logger = logging.getLogger(__name__)

_X_PRIORITY = {EmailPriority.HIGH: "1", EmailPriority.LOW: "5"}


class SMTPClient:
    """Opens one SMTP connection per message.

    Delivery problems are returned as an ``EmailResult`` with an
    ``error_code`` (AUTH_FAILED, RECIPIENTS_REFUSED, SMTP_ERROR,
    UNEXPECTED_ERROR) and never raised.

    Example:
        client = SMTPClient(get_email_settings())
        result = await client.send(message)
    """

    def __init__(self, settings: EmailSettings) -> None:
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    async def send(self, message: EmailMessage) -> EmailResult:
        mime = self.build_mime(message)
        settings = self.settings

        try:
            smtp = aiosmtplib.SMTP(
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                use_tls=settings.use_ssl,
                start_tls=settings.use_tls,
                tls_context=self._tls_context(),
                timeout=settings.timeout,
            )
            async with smtp:
                if settings.requires_auth:
                    await smtp.login(settings.smtp_username, settings.smtp_password.get_secret_value())
                refused, _response = await smtp.send_message(mime)
        except aiosmtplib.SMTPAuthenticationError as e:
            logger.error("SMTP authentication failed", extra={"smtp_host": settings.smtp_host, "error": str(e)})
            return EmailResult.failure_result(str(e), "AUTH_FAILED")
        except aiosmtplib.SMTPRecipientsRefused as e:
            logger.warning("All recipients refused", extra={"error": str(e)})
            return EmailResult.failure_result(str(e), "RECIPIENTS_REFUSED")
        except aiosmtplib.SMTPException as e:
            logger.error("SMTP error", extra={"smtp_host": settings.smtp_host, "error": str(e)})
            return EmailResult.failure_result(str(e), "SMTP_ERROR")
        except Exception as e:
            logger.exception("Unexpected error sending email", extra={"smtp_host": settings.smtp_host})
            return EmailResult.failure_result(str(e), "UNEXPECTED_ERROR")

        rejected = list(refused or {})
        accepted = [r for r in message.to if r not in rejected]
        logger.info(
            "Email sent",
            extra={"message_id": mime["Message-ID"], "accepted": len(accepted), "rejected": len(rejected)},
        )
        return EmailResult(
            success=bool(accepted),
            message_id=mime["Message-ID"],
            recipients_accepted=accepted,
            recipients_rejected=rejected,
        )

    def build_mime(self, message: EmailMessage) -> email.message.EmailMessage:
        """RFC 5322 message; text and HTML bodies become multipart/alternative."""
        mime = email.message.EmailMessage()
        mime["From"] = email.utils.formataddr(
            (
                message.from_name or self.settings.default_from_name,
                message.from_email or self.settings.default_from_email,
            )
        )
        mime["To"] = ", ".join(message.to)
        mime["Subject"] = message.subject
        mime["Message-ID"] = email.utils.make_msgid(domain=self.settings.smtp_host)
        mime["Date"] = email.utils.formatdate(usegmt=True)
        if message.priority in _X_PRIORITY:
            mime["X-Priority"] = _X_PRIORITY[message.priority]

        if message.body_text is not None:
            mime.set_content(message.body_text)
            if message.body_html is not None:
                mime.add_alternative(message.body_html, subtype="html")
        else:
            mime.set_content(message.body_html, subtype="html")
        return mime

    def _tls_context(self) -> ssl.SSLContext | None:
        if not (self.settings.use_tls or self.settings.use_ssl):
            return None
        context = ssl.create_default_context()
        if not self.settings.validate_certs:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context


_client: SMTPClient | None = None


def get_email_client() -> SMTPClient:
    """Get or create the process-wide SMTP client."""
    global _client
    if _client is None:
        from crane_crm.core.settings import get_email_settings

        _client = SMTPClient(get_email_settings())
    return _client
