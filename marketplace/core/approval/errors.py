"""Error taxonomy for business approval.

Every error that can end an approval request carries the HTTP status it is
rendered with. ``MissingOwnerError`` and ``TokenIssuanceError`` are the exceptions:
they describe a partial success (the business is already approved) and are
reported inside the aggregated result instead of as HTTP errors.
"""

from typing import Optional


class ApprovalError(Exception):
    """Base class for approval errors surfaced to the caller."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ApprovalError):
    """Required input is missing or malformed."""

    status_code = 400


class AuthorizationError(ApprovalError):
    """The acting admin could not be resolved or is not allowed to approve."""

    status_code = 403


class NotFoundError(ApprovalError):
    """The target business does not exist."""

    status_code = 404


class StateConflictError(ApprovalError):
    """The business is not in a state that can move to the requested one."""

    status_code = 400

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        *,
        current_status: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.current_status = current_status

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.current_status:
            body["currentStatus"] = self.current_status
        return body


class DependencyError(ApprovalError):
    """The store failed for a reason other than the activation precondition."""

    status_code = 500


class MissingOwnerError(ApprovalError):
    """Activation committed but the business has no owner-role member."""

    status_code = 200


class TokenIssuanceError(ApprovalError):
    """Activation committed and the owner resolved, but signing the link failed."""

    status_code = 200
