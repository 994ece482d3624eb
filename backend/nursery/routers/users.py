"""User administration endpoints.

Managers may read the user list; only SUPER_ADMIN creates, edits or deletes.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from nursery.auth import hash_password, require_admin, require_manager
from nursery.database import get_db
from nursery.models import Batch, Measurement, Role, User
from nursery.schemas import ApiResponse, UserCreate, UserOut, UserStats, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])


def _role(value: str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid role: {value}")


@router.get("", response_model=ApiResponse[List[UserOut]])
def list_users(db: Session = Depends(get_db), _: User = Depends(require_manager)):
    users = db.query(User).order_by(User.created_at.desc(), User.email).all()
    return ApiResponse[List[UserOut]](data=[UserOut.model_validate(u) for u in users])


@router.get("/stats", response_model=ApiResponse[UserStats])
def user_stats(db: Session = Depends(get_db), _: User = Depends(require_manager)):
    by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    return ApiResponse[UserStats](data=UserStats(
        total_users=db.query(User).count(),
        active_users=db.query(User).filter(User.is_active.is_(True)).count(),
        users_by_role={role.value: by_role.get(role, 0) for role in Role},
    ))


@router.get("/{user_id}", response_model=ApiResponse[UserOut])
def get_user(user_id: UUID, db: Session = Depends(get_db), _: User = Depends(require_manager)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return ApiResponse[UserOut](data=UserOut.model_validate(user))


@router.post("", response_model=ApiResponse[UserOut], status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    email = payload.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Email already registered")
    user = User(
        email=email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        password_hash=hash_password(payload.password),
        role=_role(payload.role),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return ApiResponse[UserOut](data=UserOut.model_validate(user), message="User created successfully")


@router.patch("/{user_id}", response_model=ApiResponse[UserOut])
def update_user(
    user_id: UUID,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if payload.first_name is not None:
        user.first_name = payload.first_name
    if payload.last_name is not None:
        user.last_name = payload.last_name
    if payload.role is not None:
        user.role = _role(payload.role)
    if payload.is_active is not None:
        user.is_active = payload.is_active
    db.commit()
    db.refresh(user)
    return ApiResponse[UserOut](data=UserOut.model_validate(user), message="User updated successfully")


@router.delete("/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Delete a user who never recorded any work; others are deactivated instead."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    has_batches = db.query(Batch.id).filter(Batch.created_by_id == user.id).first() is not None
    has_measurements = db.query(Measurement.id).filter(Measurement.user_id == user.id).first() is not None
    if has_batches or has_measurements:
        raise HTTPException(
            status_code=409,
            detail="Cannot delete user with associated batches or measurements. Please deactivate the user instead.",
        )
    db.delete(user)
    db.commit()
    return ApiResponse[None](data=None, message="User deleted successfully")
