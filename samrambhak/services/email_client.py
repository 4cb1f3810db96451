"""
Email Client - transactional mail through the Resend HTTP API.

Only used for email verification links today. The client is a thin wrapper
so the route code never deals with HTTP details and tests can swap it out.
"""

import logging
from typing import Optional

import requests

from samrambhak.core.config import get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Provider rejected the message or could not be reached."""


class EmailClient:
    """
    Wrapper for the Resend API.
    """

    def __init__(self):
        settings = get_settings()
        self.api_key = settings.resend_api_key
        self.api_url = settings.resend_api_url
        self.sender = settings.email_from

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def send(self, to: str, subject: str, html: str) -> Optional[str]:
        """
        Send one message. Returns the provider's message id.

        Raises:
            EmailDeliveryError on any HTTP/transport failure
        """
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        try:
            response = requests.post(self.api_url, headers=self._headers(), json=payload, timeout=10)
            response.raise_for_status()
        except requests.RequestException as e:
            body = e.response.text if e.response is not None else ""
            logger.error("Resend API error: %s %s", e, body)
            raise EmailDeliveryError(str(e)) from e
        return response.json().get("id")

    def send_verification_email(self, to: str, full_name: Optional[str], link: str) -> Optional[str]:
        name = full_name or "there"
        html = (
            f"<p>Hi {name},</p>"
            f"<p>Please confirm your email address for Samrambhak by clicking the link below:</p>"
            f'<p><a href="{link}">Verify my email</a></p>'
            f"<p>If you did not request this, you can ignore this email.</p>"
        )
        return self.send(to, "Verify your email address", html)


# Singleton instance
_email_client: Optional[EmailClient] = None


def get_email_client() -> EmailClient:
    """Get or create email client (singleton pattern)"""
    global _email_client
    if _email_client is None:
        _email_client = EmailClient()
    return _email_client
