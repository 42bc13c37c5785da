"""Email dispatch through the Resend API."""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import resend

from evalent.libs.config_loader import ConfigType, get_config, get_secret

LOG = logging.getLogger(__name__)

DEFAULT_FROM = "Evalent <reports@evalent.io>"


@dataclass
class EmailResult:
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> EmailResult:
        ...


class ResendMailer:
    """Send HTML email via Resend. Never raises; failures come back as EmailResult."""

    def __init__(self, configs: ConfigType, from_address: Optional[str] = None):
        self.api_key = get_secret("email.resend_api_key", "RESEND_API_KEY", configs)
        self.from_address = from_address or get_config("email.from_address", configs, default=DEFAULT_FROM)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, subject: str, html: str) -> EmailResult:
        if not self.api_key:
            LOG.error("RESEND_API_KEY not set")
            return EmailResult(success=False, error="RESEND_API_KEY not configured")

        resend.api_key = self.api_key
        params = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        try:
            response = resend.Emails.send(params)
        except Exception as e:  # pylint: disable=broad-except
            LOG.error("Email send to %s failed: %s", to, e)
            return EmailResult(success=False, error=str(e))

        email_id = response.get("id") if response else None
        if not email_id:
            LOG.error("Email send to %s returned no id", to)
            return EmailResult(success=False, error="No response id")

        LOG.info("Sent email to %s, id: %s", to, email_id)
        return EmailResult(success=True, id=email_id)
