"""
User profile API endpoints
"""
from fastapi import APIRouter
import logging

from coursequiz.schemas.quiz import UserXPResponse
from coursequiz.services.xp_service import xp_service, difficulty_for_xp

router = APIRouter(prefix="/api/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/{user_id}/xp", response_model=UserXPResponse)
async def get_user_xp(user_id: str):
    """Current xp and the difficulty tier it maps to"""
    xp = xp_service.get_xp(user_id)
    return UserXPResponse(user_id=user_id, xp=xp, difficulty=difficulty_for_xp(xp))
