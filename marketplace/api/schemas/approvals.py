"""Request and response schemas for approval and token endpoints."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ApproveApplicationRequest(BaseModel):
    """Approval trigger body. Required fields are validated by the orchestrator."""
    model_config = ConfigDict(populate_by_name=True)

    business_id: Optional[str] = Field(None, alias="businessId")
    admin_user_id: Optional[str] = Field(None, alias="adminUserId")
    approval_notes: Optional[str] = Field(None, alias="approvalNotes")
    send_email: bool = Field(True, alias="sendEmail")


class EmailStatusResponse(BaseModel):
    sent: bool
    warning: Optional[str] = None
    error: Optional[str] = None


class StepErrorResponse(BaseModel):
    type: str
    message: str


class StepResponse(BaseModel):
    name: str
    ok: bool
    skipped: Optional[bool] = None
    reason: Optional[str] = None
    error: Optional[StepErrorResponse] = None


class TokenErrorResponse(BaseModel):
    type: str
    message: str
    details: Optional[str] = None


class ApproveApplicationResponse(BaseModel):
    success: bool = True
    message: str
    approvalToken: Optional[str] = None
    approvalUrl: Optional[str] = None
    activation: Dict[str, Any]
    emailStatus: EmailStatusResponse
    approvedAt: str
    approvedBy: str
    steps: List[StepResponse] = []
    tokenError: Optional[TokenErrorResponse] = None


class ValidateTokenRequest(BaseModel):
    token: Optional[str] = None


class ValidateTokenResponse(BaseModel):
    success: bool = True
    can_access_phase2: bool = True
    business_id: str
    user_id: str
    application_id: str
    issued_at: int
    expires_at: int
    phase: str
    step: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    details: Optional[str] = None
    code: Optional[str] = None
