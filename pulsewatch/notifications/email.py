"""SMTP email sender for PulseWatch.

Uses the Python standard-library ``smtplib`` executed in a thread-pool
executor so the asyncio event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import smtplib
import ssl
from collections.abc import Sequence
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import structlog

_log = structlog.get_logger(component="notifications.email")


class SMTPConfig:
    """SMTP connection parameters.

    Args:
        host:       SMTP server hostname.
        port:       SMTP server port (587 for STARTTLS, 465 for SSL).
        username:   SMTP authentication username.
        password:   SMTP authentication password.
        use_tls:    If True, use SMTP_SSL (port 465). Defaults to False
                    (STARTTLS on port 587).
        from_addr:  Sender email address.
        timeout:    Socket timeout in seconds. Defaults to 10.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_addr: str,
        use_tls: bool = False,
        timeout: float = 10.0,
    ) -> None:
        if not host:
            raise ValueError("SMTP host must not be empty")
        if not from_addr:
            raise ValueError("SMTP from_addr must not be empty")
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_addr = from_addr
        self.use_tls = use_tls
        self.timeout = timeout


class SmtpEmailSender:
    """Implements the EmailSender contract over SMTP."""

    def __init__(self, smtp_config: SMTPConfig) -> None:
        self._smtp = smtp_config

    async def send(self, to: Sequence[str], subject: str, body: str, text: str | None = None) -> bool:
        """Send an HTML email to every address in *to*.

        When *text* is given the message is multipart/alternative with
        *text* as the plain part.

        Returns True on successful hand-off to the SMTP server.
        """
        if not to:
            return False
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_sync, list(to), subject, body, text)
            return True
        except smtplib.SMTPException as exc:
            _log.warning("email_smtp_error", error=str(exc), recipients=len(to))
            return False
        except OSError as exc:
            _log.warning("email_connection_error", error=str(exc), recipients=len(to))
            return False

    def _send_sync(self, to: list[str], subject: str, body: str, text: str | None) -> None:
        """Blocking SMTP delivery; runs inside a thread executor."""
        msg = self._build_message(to, subject, body, text)
        context = ssl.create_default_context()

        if self._smtp.use_tls:
            with smtplib.SMTP_SSL(
                self._smtp.host,
                self._smtp.port,
                context=context,
                timeout=self._smtp.timeout,
            ) as server:
                if self._smtp.username:
                    server.login(self._smtp.username, self._smtp.password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(
                self._smtp.host,
                self._smtp.port,
                timeout=self._smtp.timeout,
            ) as server:
                server.ehlo()
                server.starttls(context=context)
                server.ehlo()
                if self._smtp.username:
                    server.login(self._smtp.username, self._smtp.password)
                server.send_message(msg)

    def _build_message(self, to: list[str], subject: str, body: str, text: str | None) -> MIMEMultipart | MIMEText:
        if text is None:
            msg: MIMEMultipart | MIMEText = MIMEText(body, "html", "utf-8")
        else:
            msg = MIMEMultipart("alternative")
            msg.attach(MIMEText(text, "plain", "utf-8"))
            msg.attach(MIMEText(body, "html", "utf-8"))
        msg["Subject"] = subject
        msg["From"] = self._smtp.from_addr
        msg["To"] = ", ".join(to)
        return msg
