"""Authentication API endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from nursery.audit import log_action
from nursery.auth import authenticate, create_access_token, get_current_user, hash_password, verify_password
from nursery.database import get_db
from nursery.models import User
from nursery.schemas import ApiResponse, LoginRequest, PasswordChange, ProfileUpdate, TokenResponse, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=ApiResponse[TokenResponse])
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Login and get access token."""
    user = authenticate(db, data.email, data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    token = create_access_token(user)
    return ApiResponse[TokenResponse](
        data=TokenResponse(access_token=token, role=user.role.value),
        message="Login successful",
    )


@router.get("/me", response_model=ApiResponse[UserOut])
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return ApiResponse[UserOut](data=UserOut.model_validate(current_user))


@router.put("/profile", response_model=ApiResponse[UserOut])
def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update the caller's own name."""
    before = {"first_name": current_user.first_name, "last_name": current_user.last_name}
    if data.first_name is not None:
        current_user.first_name = data.first_name
    if data.last_name is not None:
        current_user.last_name = data.last_name
    db.commit()
    db.refresh(current_user)
    after = {"first_name": current_user.first_name, "last_name": current_user.last_name}
    log_action(db, current_user, "PROFILE_UPDATED", before=before, after=after)
    return ApiResponse[UserOut](data=UserOut.model_validate(current_user), message="Profile updated successfully")


@router.post("/change-password", response_model=ApiResponse[None])
def change_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(data.current_password, current_user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    current_user.password_hash = hash_password(data.new_password)
    db.commit()
    log_action(db, current_user, "PASSWORD_CHANGED")
    return ApiResponse[None](data=None, message="Password changed successfully")
