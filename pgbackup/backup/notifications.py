"""
Email notifications for backup runs.

Supports:
- MailCommandTransport: pipe the message into the system mail command
- SMTPTransport: send through an SMTP server
"""

import ssl
import logging
import smtplib
import subprocess
from email.mime.text import MIMEText

from pgbackup import tail_log


logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when an email cannot be handed to the transport."""
    pass


class MailCommandTransport:
    """Send mail with `mail -s <subject> -r <sender> <recipient>`."""

    def __init__(self, command: str = 'mail'):
        self.command = command

    def send(self, subject: str, body: str, sender: str, recipient: str):
        cmd = [self.command, '-s', subject, '-r', sender, recipient]

        try:
            completed = subprocess.run(cmd, input=body, capture_output=True, text=True)
        except FileNotFoundError:
            raise NotificationError(f"Command not found: {self.command}")
        except OSError as e:
            raise NotificationError(f"Failed to run {self.command}: {e}")

        if completed.returncode != 0:
            detail = (completed.stderr or '').strip()
            raise NotificationError(
                f"{self.command} exited with status {completed.returncode}"
                + (f": {detail}" if detail else '')
            )


class SMTPTransport:
    """Send mail through an SMTP server (plain, STARTTLS or implicit SSL)."""

    def __init__(self, host: str, port: int = 587, user: str = '', password: str = '',
                 use_tls: bool = True, use_ssl: bool = False, timeout: int = 30):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.timeout = timeout

    def send(self, subject: str, body: str, sender: str, recipient: str):
        msg = MIMEText(body, 'plain', 'utf-8')
        msg['Subject'] = subject
        msg['From'] = sender
        msg['To'] = recipient

        try:
            if self.use_ssl:
                server = smtplib.SMTP_SSL(
                    self.host, self.port, timeout=self.timeout,
                    context=ssl.create_default_context()
                )
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)

            with server:
                if not self.use_ssl and self.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(sender, [recipient], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP send failed: {e}")


class Notifier:
    """
    Sends success and failure reports for a backup run.

    Sending is fire-and-forget: transport errors are logged and never raised.
    """

    def __init__(self, transport, sender: str, recipient: str, log_file: str, tail_lines: int = 15):
        """
        Initialize notifier.

        Args:
            transport: Object with send(subject, body, sender, recipient)
            sender: From address
            recipient: Alert address
            log_file: Backup log, tailed into failure reports
            tail_lines: Number of log lines to include in failure reports
        """
        self.transport = transport
        self.sender = sender
        self.recipient = recipient
        self.log_file = log_file
        self.tail_lines = tail_lines

    def notify_failure(self, subject: str, body: str) -> bool:
        log_tail = tail_log(self.log_file, self.tail_lines)
        email_body = (
            f"{body}\n\n"
            f"=== Last {self.tail_lines} lines from backup log ===\n"
            f"{log_tail}"
        )
        return self._send(subject, email_body, 'Failure')

    def notify_success(self, subject: str, body: str) -> bool:
        return self._send(subject, body, 'Success')

    def _send(self, subject: str, body: str, label: str) -> bool:
        try:
            self.transport.send(subject, body, self.sender, self.recipient)
        except NotificationError as e:
            logger.error(f"ERROR: Failed to send {label.lower()} notification to {self.recipient}: {e}")
            return False

        logger.info(f"{label} notification sent to {self.recipient}")
        return True


def create_notifier(config) -> Notifier:
    """Build a Notifier using SMTP when SMTP_HOST is set, else the mail command."""
    if config.SMTP_HOST:
        transport = SMTPTransport(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            user=config.SMTP_USER,
            password=config.SMTP_PASSWORD,
            use_tls=config.SMTP_USE_TLS,
            use_ssl=config.SMTP_USE_SSL,
        )
    else:
        transport = MailCommandTransport(config.MAIL_COMMAND)

    return Notifier(
        transport,
        sender=config.FROM_EMAIL,
        recipient=config.ALERT_EMAIL,
        log_file=config.LOG_FILE,
        tail_lines=config.LOG_TAIL_LINES,
    )
