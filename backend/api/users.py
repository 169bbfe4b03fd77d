"""User profile API endpoint."""

from fastapi import APIRouter, Depends

from api.helpers import get_current_user
from models import User
from schemas.user import UserResponse

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/profile", response_model=UserResponse)
def get_profile(user: User = Depends(get_current_user)):
    """Get the calling user."""
    return user
