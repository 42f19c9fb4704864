"""Approval email delivery.

Sends the "application approved" email carrying the phase 2 onboarding
link through the Resend HTTP API. Delivery is best-effort: every outcome,
including a missing recipient or a missing API key, comes back as an
``EmailStatus`` rather than an exception.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Dict, Any

import httpx
from jinja2 import Environment, select_autoescape

from marketplace.core.config import Settings, get_settings
from marketplace.core.logger import redact_token
from marketplace.db.models import BusinessProfile, BusinessMember, User

logger = logging.getLogger(__name__)

APPROVED_SUBJECT = "Application Approved - Complete Your Setup"

_jinja = Environment(autoescape=select_autoescape(default_for_string=True))

APPROVED_HTML = _jinja.from_string("""
<h1>Congratulations! Your Application Has Been Approved!</h1>
<p>Hi {{ first_name }},</p>
<p>Great news! Your provider application for <strong>{{ business_name }}</strong> has been approved.
You're now ready to complete the final setup steps.</p>

<div style="text-align: center; margin: 30px 0;">
  <a href="{{ phase2_link }}" class="button">Complete Phase 2 Setup</a>
</div>

<p><strong>Important:</strong> This link is secure and will expire in {{ ttl_days }} days.
Please complete your setup as soon as possible.</p>

<p>If you have any questions or need assistance, please contact us at
<a href="mailto:{{ support_email }}">{{ support_email }}</a></p>
""")

TEST_MODE_WARNING = (
    "Resend is in test mode. Email can only be sent to {allowed}. "
    "To send to other recipients, verify a domain at resend.com/domains"
)

APPROVED_TEXT = (
    "Congratulations {first_name}! Your provider application has been approved. "
    "Complete your setup at: {phase2_link} (this link expires in {ttl_days} days)"
)


@dataclass
class EmailStatus:
    """Outcome of a best-effort email attempt."""

    sent: bool
    warning: Optional[str] = None
    error: Optional[str] = None
    recipient: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"sent": self.sent}
        if self.warning:
            data["warning"] = self.warning
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class Recipient:
    email: Optional[str]
    first_name: str


def resolve_recipient(
    business: BusinessProfile,
    owner: Optional[BusinessMember],
    owner_user: Optional[User],
) -> Recipient:
    """
    Pick the address and display name for the approval email.

    Email priority: owner's on-file email, business contact email,
    identity-provider email. Name priority: owner member first name,
    identity-provider first name, business name, "Provider".
    """
    email = (
        (owner.email if owner else None)
        or business.contact_email
        or (owner_user.email if owner_user else None)
    )
    first_name = (
        (owner.first_name if owner else None)
        or (owner_user.first_name if owner_user else None)
        or business.business_name
        or "Provider"
    )
    return Recipient(email=email, first_name=first_name)


def parse_test_mode_refusal(response: httpx.Response, to_email: str) -> Optional[EmailStatus]:
    """
    Recognise Resend's test-mode refusal.

    An account without a verified domain may only mail its own address;
    Resend answers other recipients with a ``validation_error`` naming that
    address in parentheses.
    """
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None

    message = str(body.get("message") or "")
    if body.get("name") != "validation_error" or "testing emails" not in message:
        return None

    match = re.search(r"\(([^)]+)\)", message)
    allowed = match.group(1) if match else "the account owner's address"
    logger.warning(
        "Resend is in test mode; can only send to %s, attempted %s", allowed, to_email
    )
    return EmailStatus(
        sent=False,
        warning=TEST_MODE_WARNING.format(allowed=allowed),
        error=message,
        recipient=to_email,
    )


class ApprovalNotifier:
    """Sends approval emails through Resend."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.resend_api_key)

    def render(self, first_name: str, business_name: str, phase2_link: str) -> Dict[str, str]:
        context = {
            "first_name": first_name,
            "business_name": business_name,
            "phase2_link": phase2_link,
            "ttl_days": self.settings.approval_token_ttl_days,
            "support_email": self.settings.support_email,
        }
        return {
            "subject": APPROVED_SUBJECT,
            "html": APPROVED_HTML.render(**context),
            "text": APPROVED_TEXT.format(**context),
        }

    async def send_approval_email(
        self,
        recipient: Recipient,
        business_name: str,
        phase2_link: Optional[str],
    ) -> EmailStatus:
        """Send the approval email, reporting every failure as a status."""
        if not phase2_link:
            return EmailStatus(
                sent=False,
                warning="No approval link available; approval email not sent",
            )

        if not recipient.email:
            logger.warning("No email address found for owner of %s", business_name)
            return EmailStatus(sent=False, warning="No email address found for business owner")

        if not self.is_configured:
            logger.warning("Resend not configured, skipping approval email")
            return EmailStatus(
                sent=False,
                warning="Resend not configured; approval email not sent",
                recipient=recipient.email,
            )

        content = self.render(recipient.first_name, business_name, phase2_link)
        try:
            message_id = await self._deliver(recipient.email, content)
        except httpx.HTTPStatusError as e:
            logger.error(
                "Resend rejected approval email to %s: %s", recipient.email, e.response.status_code
            )
            test_mode = parse_test_mode_refusal(e.response, recipient.email)
            if test_mode is not None:
                return test_mode
            return EmailStatus(
                sent=False,
                error=f"Email provider returned {e.response.status_code}: {e.response.text}",
                recipient=recipient.email,
            )
        except httpx.HTTPError as e:
            logger.error("Failed to send approval email to %s: %s", recipient.email, e)
            return EmailStatus(
                sent=False,
                error=f"Email delivery failed: {e.__class__.__name__}: {e}",
                recipient=recipient.email,
            )

        logger.info(
            "Approval email %s sent to %s with link %s",
            message_id, recipient.email, redact_token(phase2_link),
        )
        return EmailStatus(sent=True, recipient=recipient.email)

    async def _deliver(self, to_email: str, content: Dict[str, str]) -> Optional[str]:
        """POST the message to Resend; returns the provider message id."""
        payload = {
            "from": f"{self.settings.email_from_name} <{self.settings.email_from_address}>",
            "to": [to_email],
            "subject": content["subject"],
            "html": content["html"],
            "text": content["text"],
        }
        headers = {
            "Authorization": f"Bearer {self.settings.resend_api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(
            timeout=self.settings.email_timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(self.settings.resend_api_url, json=payload, headers=headers)
            response.raise_for_status()

        try:
            return response.json().get("id")
        except ValueError:
            return None
