"""Phase 2 token validation endpoint.

Lets the onboarding flow check a capability token before trusting it to
resume a step. Read-only: nothing is written and nothing is consumed.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from marketplace.api.deps import get_token_codec
from marketplace.api.schemas.approvals import (
    ErrorResponse,
    ValidateTokenRequest,
    ValidateTokenResponse,
)
from marketplace.core.tokens import CapabilityTokenCodec, TokenError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@router.post(
    "/validate-phase2-token",
    response_model=ValidateTokenResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}},
)
async def validate_phase2_token(
    body: ValidateTokenRequest,
    codec: CapabilityTokenCodec = Depends(get_token_codec),
):
    """Return the decoded claims of a valid phase 2 token."""
    if not body.token:
        return JSONResponse(status_code=400, content={"error": "Token required"})

    try:
        claims = codec.verify(body.token)
    except TokenError as e:
        logger.info("Phase 2 token rejected: %s", e.code)
        return JSONResponse(status_code=400, content=e.to_dict())

    logger.info("Phase 2 token accepted for business %s", claims.business_id)
    return {"success": True, "can_access_phase2": True, **claims.to_payload()}
