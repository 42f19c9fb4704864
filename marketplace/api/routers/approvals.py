"""Business approval endpoint."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from marketplace.api.deps import get_orchestrator
from marketplace.api.schemas.approvals import (
    ApproveApplicationRequest,
    ApproveApplicationResponse,
    ErrorResponse,
)
from marketplace.core.approval import ApprovalCommand, ApprovalError, ApprovalOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["approvals"])


@router.post(
    "/approve-application",
    response_model=ApproveApplicationResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def approve_application(
    body: ApproveApplicationRequest,
    orchestrator: ApprovalOrchestrator = Depends(get_orchestrator),
):
    """Approve a pending or suspended business and issue its phase 2 link."""
    command = ApprovalCommand(
        business_id=body.business_id,
        admin_user_id=body.admin_user_id,
        approval_notes=body.approval_notes,
        send_email=body.send_email,
    )
    logger.info(
        "Approval requested for business %s by %s (send_email=%s)",
        command.business_id, command.admin_user_id, command.send_email,
    )

    try:
        outcome = await orchestrator.approve(command)
    except ApprovalError as e:
        logger.warning("Approval of %s refused: %s", command.business_id, e.message)
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    except Exception as e:
        logger.exception("Application approval error")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(e)},
        )

    return outcome.to_response()
