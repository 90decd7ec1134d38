from fastapi import APIRouter
from pydantic import BaseModel, Field

from codeassess.core.modules.invitation.models import InvitationView
from codeassess.web.deps import AppDep, SessionAuthDep
from codeassess.web.openapi import ErrorResponse

router = APIRouter(tags=["invitations"])


class CreateInvitationRequest(BaseModel):
    """Request to invite a candidate."""

    email: str = Field(..., min_length=1, description="Candidate email address")


@router.post(
    "/invitations",
    summary="Invite candidate",
    description="Email a one-time magic link to a candidate. Admin only.",
    operation_id="createInvitation",
    status_code=201,
    responses={
        201: {"description": "Invitation sent"},
        400: {"model": ErrorResponse, "description": "Invalid email address"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
    },
)
async def create_invitation(request: CreateInvitationRequest, app: AppDep, auth: SessionAuthDep) -> InvitationView:
    return await app.create_invitation(auth, request.email)
