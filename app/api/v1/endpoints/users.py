"""User administration endpoints."""

import logging
from uuid import UUID
from fastapi import APIRouter, Depends

from app.core.deps import get_auth_service, require_admin
from app.models.user import User
from app.schemas.base import MessageResponse
from app.services.auth import AuthService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: UUID,
    current_user: User = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    """Soft-delete a user. The account can come back through a new invitation."""
    await auth.soft_delete_user(user_id, current_user)
    return {"message": "User deleted."}
