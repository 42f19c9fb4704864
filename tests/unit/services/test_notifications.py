"""Tests for approval email delivery."""

import asyncio
import json

import httpx
import pytest

from marketplace.core.config import Settings
from marketplace.db.models import BusinessMember, BusinessProfile, User
from marketplace.services.notifications import (
    APPROVED_SUBJECT,
    ApprovalNotifier,
    EmailStatus,
    Recipient,
    resolve_recipient,
)

LINK = "https://providers.example.test/provider-onboarding/phase2?token=abc"


def _send(notifier, recipient, link=LINK):
    return asyncio.run(notifier.send_approval_email(recipient, "Glow Spa", link))


class TestResolveRecipient:
    """Test recipient address and name priority."""

    def test_owner_email_first(self):
        business = BusinessProfile(business_name="Glow Spa", contact_email="contact@glow.test")
        owner = BusinessMember(email="owner@glow.test", first_name="Dana")
        user = User(email="dana@idp.test", first_name="D")

        recipient = resolve_recipient(business, owner, user)
        assert recipient == Recipient(email="owner@glow.test", first_name="Dana")

    def test_contact_email_before_identity_email(self):
        business = BusinessProfile(business_name="Glow Spa", contact_email="contact@glow.test")
        owner = BusinessMember(email=None, first_name=None)
        user = User(email="dana@idp.test", first_name="Dana")

        recipient = resolve_recipient(business, owner, user)
        assert recipient.email == "contact@glow.test"
        assert recipient.first_name == "Dana"

    def test_identity_email_last(self):
        business = BusinessProfile(business_name="Glow Spa")
        owner = BusinessMember()
        user = User(email="dana@idp.test")

        recipient = resolve_recipient(business, owner, user)
        assert recipient.email == "dana@idp.test"
        assert recipient.first_name == "Glow Spa"

    def test_no_owner(self):
        recipient = resolve_recipient(BusinessProfile(business_name=""), None, None)
        assert recipient.email is None
        assert recipient.first_name == "Provider"


class TestApprovalNotifier:
    """Test delivery outcomes."""

    def test_sends_through_provider(self, notifier, sent_emails):
        status = _send(notifier, Recipient(email="owner@glow.test", first_name="Dana"))

        assert status == EmailStatus(sent=True, recipient="owner@glow.test")
        assert status.to_dict() == {"sent": True}

        payload = sent_emails[0]
        assert payload["to"] == ["owner@glow.test"]
        assert payload["subject"] == APPROVED_SUBJECT
        assert LINK in payload["html"]
        assert LINK in payload["text"]
        assert "Hi Dana" in payload["html"]

    def test_authorization_header(self, email_settings):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["authorization"]
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"id": "email_1"})

        notifier = ApprovalNotifier(email_settings, transport=httpx.MockTransport(handler))
        _send(notifier, Recipient(email="owner@glow.test", first_name="Dana"))

        assert seen["auth"] == "Bearer re_test_key"
        assert seen["url"] == email_settings.resend_api_url

    def test_not_configured(self, email_transport, sent_emails):
        notifier = ApprovalNotifier(
            Settings(_env_file=None, resend_api_key=None), transport=email_transport,
        )
        status = _send(notifier, Recipient(email="owner@glow.test", first_name="Dana"))

        assert status.sent is False
        assert status.warning == "Resend not configured; approval email not sent"
        assert sent_emails == []

    def test_no_recipient(self, notifier, sent_emails):
        status = _send(notifier, Recipient(email=None, first_name="Provider"))
        assert status.to_dict() == {
            "sent": False,
            "warning": "No email address found for business owner",
        }
        assert sent_emails == []

    def test_no_link(self, notifier, sent_emails):
        status = _send(notifier, Recipient(email="owner@glow.test", first_name="Dana"), link=None)
        assert status.warning == "No approval link available; approval email not sent"
        assert sent_emails == []

    def test_provider_error(self, email_settings):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="upstream down"))
        notifier = ApprovalNotifier(email_settings, transport=transport)

        status = _send(notifier, Recipient(email="owner@glow.test", first_name="Dana"))
        assert status.sent is False
        assert status.error == "Email provider returned 500: upstream down"

    def test_transport_error(self, email_settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        notifier = ApprovalNotifier(email_settings, transport=httpx.MockTransport(handler))

        status = _send(notifier, Recipient(email="owner@glow.test", first_name="Dana"))
        assert status.sent is False
        assert status.error.startswith("Email delivery failed: ConnectError")

    def test_html_is_escaped(self, email_settings):
        notifier = ApprovalNotifier(email_settings)
        content = notifier.render("<b>Dana</b>", "Glow & Co", LINK)
        assert "&lt;b&gt;Dana&lt;/b&gt;" in content["html"]
        assert "Glow &amp; Co" in content["html"]
        assert "7 days" in content["html"]


class TestResendTestMode:
    """Resend accounts without a verified domain only mail their own address."""

    TEST_MODE_MESSAGE = (
        "You can only send testing emails to your own email address (ops@roam.test). "
        "To send emails to other recipients, please verify a domain."
    )

    def _notifier(self, email_settings, status_code, body):
        transport = httpx.MockTransport(lambda request: httpx.Response(status_code, json=body))
        return ApprovalNotifier(email_settings, transport=transport)

    def test_test_mode_refusal_is_a_warning(self, email_settings):
        notifier = self._notifier(email_settings, 403, {
            "statusCode": 403,
            "name": "validation_error",
            "message": self.TEST_MODE_MESSAGE,
        })

        status = _send(notifier, Recipient(email="owner@glow.test", first_name="Dana"))

        assert status.sent is False
        assert status.warning.startswith("Resend is in test mode. Email can only be sent to ops@roam.test.")
        assert "resend.com/domains" in status.warning
        assert status.error == self.TEST_MODE_MESSAGE

    def test_other_validation_errors_stay_errors(self, email_settings):
        notifier = self._notifier(email_settings, 422, {
            "statusCode": 422,
            "name": "validation_error",
            "message": "Invalid `to` field.",
        })

        status = _send(notifier, Recipient(email="owner@glow.test", first_name="Dana"))

        assert status.warning is None
        assert status.error.startswith("Email provider returned 422:")
