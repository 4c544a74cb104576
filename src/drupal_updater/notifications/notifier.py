"""Run-log delivery by email."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..config.settings import Settings
from ..errors import ToolUnavailable
from ..tools.runner import CommandRunner

logger = logging.getLogger(__name__)


class EventType(Enum):
    """How a run ended."""

    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"
    RUN_INTERRUPTED = "run_interrupted"


@dataclass
class NotificationEvent:
    """A finished run, ready to be mailed."""

    event_type: EventType
    site_name: str
    message: str
    body: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    details: dict = field(default_factory=dict)
    dry_run: bool = False

    @property
    def subject(self) -> str:
        prefix = "[drupal-updater] "
        if self.dry_run:
            prefix += "[DRY RUN] "
        return f"{prefix}{self.site_name}: {self.message}"

    def format_text(self) -> str:
        lines = [
            f"Site: {self.site_name}",
            f"Event: {self.event_type.value}",
            f"Message: {self.message}",
            f"Time: {self.timestamp.isoformat()}",
        ]
        for key, value in self.details.items():
            lines.append(f"{key.replace('_', ' ').title()}: {value}")
        if self.body:
            lines.extend(["", self.body])
        return "\n".join(lines)


class NotificationChannel(ABC):
    """Base class for notification channels."""

    @abstractmethod
    def send(self, event: NotificationEvent) -> bool:
        """Send a notification.

        Args:
            event: The notification event

        Returns:
            True if sent successfully
        """
        pass

    @abstractmethod
    def name(self) -> str:
        """Get channel name."""
        pass


class MailCommandChannel(NotificationChannel):
    """Pipe the run log into a local mail command (``mail -s <subject> <to>``)."""

    def __init__(
        self,
        to_addrs: list[str],
        command: Optional[list[str]] = None,
        runner: Optional[CommandRunner] = None,
    ):
        self.to_addrs = list(to_addrs)
        self.command = command or ["mail"]
        self.runner = runner or CommandRunner()

    def name(self) -> str:
        return "mail"

    def send(self, event: NotificationEvent) -> bool:
        if not self.to_addrs:
            logger.warning("Mail channel has no recipients configured")
            return False
        cmd = [*self.command, "-s", event.subject, *self.to_addrs]
        try:
            result = self.runner.run(cmd, input=event.format_text())
        except ToolUnavailable as e:
            logger.error(f"Mail notification failed: {e}")
            return False
        if not result.success:
            logger.error(f"Mail notification failed: {result.output.strip()}")
        return result.success


class EmailChannel(NotificationChannel):
    """Send notifications via SMTP email."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int = 587,
        username: str | None = None,
        password: str | None = None,
        from_addr: str = "drupal-updater@localhost",
        to_addrs: list[str] | None = None,
        use_tls: bool = True,
    ):
        """Initialize email channel.

        Args:
            smtp_host: SMTP server hostname
            smtp_port: SMTP server port (default 587 for TLS)
            username: SMTP username (optional)
            password: SMTP password (optional)
            from_addr: From email address
            to_addrs: List of recipient email addresses
            use_tls: Whether to use TLS (default True)
        """
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.from_addr = from_addr
        self.to_addrs = to_addrs or []
        self.use_tls = use_tls

    def name(self) -> str:
        return "email"

    def send(self, event: NotificationEvent) -> bool:
        """Send notification via email."""
        import smtplib
        from email.mime.text import MIMEText

        if not self.to_addrs:
            logger.warning("Email channel has no recipients configured")
            return False

        try:
            msg = MIMEText(event.format_text(), "plain", "utf-8")
            msg["Subject"] = event.subject
            msg["From"] = self.from_addr
            msg["To"] = ", ".join(self.to_addrs)

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.sendmail(self.from_addr, self.to_addrs, msg.as_string())

            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email notification failed: {e}")
            return False


class Notifier:
    """Sends a run's outcome to every configured channel.

    Usage:
        notifier = Notifier()
        notifier.add_channel(MailCommandChannel(["ops@example.com"]))
        notifier.notify(NotificationEvent(
            event_type=EventType.RUN_COMPLETED,
            site_name="example.com",
            message="3 updates applied",
            body=run_log_text,
        ))
    """

    def __init__(self):
        self._channels: list[NotificationChannel] = []

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    def add_channel(self, channel: NotificationChannel) -> None:
        """Add a notification channel."""
        self._channels.append(channel)
        logger.info(f"Added notification channel: {channel.name()}")

    def notify(self, event: NotificationEvent) -> dict[str, bool]:
        """Send notification to all channels.

        A failing channel never stops the others.

        Returns:
            Dict of channel_name -> success status
        """
        results = {}
        for channel in self._channels:
            try:
                results[channel.name()] = channel.send(event)
            except Exception as e:
                logger.error(f"Notification channel {channel.name()} raised: {e}")
                results[channel.name()] = False
        return results


def build_notifier(
    settings: Settings,
    recipients: list[str] | tuple[str, ...],
    runner: Optional[CommandRunner] = None,
) -> Notifier:
    """Notifier for ``recipients``: SMTP when configured, else the mail command."""
    notifier = Notifier()
    if not recipients:
        return notifier
    if settings.smtp_host:
        notifier.add_channel(
            EmailChannel(
                smtp_host=settings.smtp_host,
                smtp_port=settings.smtp_port,
                username=settings.smtp_username,
                password=settings.smtp_password,
                from_addr=settings.mail_from,
                to_addrs=list(recipients),
                use_tls=settings.smtp_use_tls,
            )
        )
    else:
        notifier.add_channel(
            MailCommandChannel(
                to_addrs=list(recipients),
                command=settings.mail_command_args,
                runner=runner,
            )
        )
    return notifier
