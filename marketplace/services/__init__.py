"""Services for the marketplace admin API."""

from marketplace.services.notifications import ApprovalNotifier, EmailStatus, Recipient, resolve_recipient

__all__ = [
    "ApprovalNotifier",
    "EmailStatus",
    "Recipient",
    "resolve_recipient",
]
