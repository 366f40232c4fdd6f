"""
Email delivery of the run report.

Delivery failures are logged and never abort the run.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from .config import EmailConfig

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Sends plain-text reports over SMTP with STARTTLS."""

    def __init__(self, config: EmailConfig, timeout: float = 30.0):
        self.config = config
        self.timeout = timeout

    def build_message(self, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.config.sender
        msg["To"] = ", ".join(self.config.recipient_list)
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send(self, subject: str, body: str) -> bool:
        """
        Send a report.

        Returns:
            True if delivered, False if disabled, unconfigured or failed
        """
        if not self.config.enabled:
            return False

        if not self.config.recipient_list:
            logger.warning("Email enabled but no recipients configured")
            return False

        msg = self.build_message(subject, body)
        try:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                if self.config.user:
                    smtp.login(self.config.user, self.config.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"Report email failed: {e}")
            return False

        logger.info(f"Report emailed to {len(self.config.recipient_list)} recipients")
        return True


def report_subject(strategy_name: str, as_of: Optional[object]) -> str:
    """Subject line, e.g. 'simple_momentum Report [2020-12-31]'."""
    day = f"{as_of:%Y-%m-%d}" if as_of is not None else "n/a"
    return f"{strategy_name} Report [{day}]"


def report_body(positions_text: str, statistics_text: str) -> str:
    return f"Positions & Signals\n{positions_text}\n\nStatistics\n{statistics_text}"
