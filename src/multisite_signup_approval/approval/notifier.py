"""Email delivery for workflow notifications."""

from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText

from multisite_signup_approval.approval.config import ApprovalSettings
from multisite_signup_approval.approval.interfaces import Notifier, NotifyError

logger = logging.getLogger(__name__)


class LogNotifier:
    """Records emails in the log instead of sending them.

    Useful for local runs and as the default until SMTP is configured.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def send(self, *, to_address: str, subject: str, body: str) -> None:
        self.sent.append((to_address, subject, body))
        logger.info("Email (not sent)", extra={"to": to_address, "subject": subject, "body": body})


class SmtpNotifier:
    """Plain text email over SMTP (implicit TLS or STARTTLS)."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        user: str = "",
        password: str = "",
        sender: str = "",
        use_ssl: bool = True,
        timeout: float = 30.0,
    ) -> None:
        if not host:
            raise ValueError("SMTP host is required")
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._sender = sender or user
        self._use_ssl = use_ssl
        self._timeout = timeout
        if not self._sender:
            raise ValueError("SMTP sender address is required (SMTP_FROM or SMTP_USER)")

    def _connect(self) -> smtplib.SMTP:
        if self._use_ssl:
            return smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout)
        server = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
        server.starttls()
        return server

    def send(self, *, to_address: str, subject: str, body: str) -> None:
        msg = MIMEText(body, "plain", "utf-8")
        msg["From"] = self._sender
        msg["To"] = to_address
        msg["Subject"] = subject

        try:
            with self._connect() as server:
                if self._user and self._password:
                    server.login(self._user, self._password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotifyError(f"Email to {to_address} failed: {e}") from e

        logger.info("Email sent", extra={"to": to_address, "subject": subject})


class NotifierFactory:
    """Factory for creating notifier instances."""

    @staticmethod
    def create(settings: ApprovalSettings) -> Notifier:
        """Create a notifier based on configuration.

        Raises:
            ValueError: If the notifier type is not supported or SMTP is
                selected without a host.
        """
        logger.info(f"Creating notifier: {settings.notifier}")

        if settings.notifier == "log":
            return LogNotifier()
        elif settings.notifier == "smtp":
            return SmtpNotifier(
                host=settings.smtp_host,
                port=settings.smtp_port,
                user=settings.smtp_user,
                password=settings.smtp_password,
                sender=settings.smtp_from,
                use_ssl=settings.smtp_use_ssl,
            )
        else:
            raise ValueError(f"Unsupported notifier: {settings.notifier}")
