from fastapi import APIRouter, Depends
from schemas.user import UserOut
from models.user import User
from api.deps import get_current_user

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserOut)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return UserOut.model_validate(current_user)
