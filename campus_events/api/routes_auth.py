"""
Authentication routes
"""

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from campus_events.core.db import get_db
from campus_events.core.deadline import Deadline
from campus_events.models import User
from campus_events.schemas.auth import ChangePasswordRequest, LoginRequest, TokenResponse, UserResponse
from campus_events.services.user_service import UserService
from campus_events.utils.responses import success_response
from campus_events.utils.security import (
    create_access_token, enforce_rate_limit, get_current_user, get_deadline,
    get_user_allow_password_change,
)

router = APIRouter()


@router.post("/login", dependencies=[Depends(enforce_rate_limit)])
async def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    user = await run_in_threadpool(UserService.authenticate, db, str(credentials.email), credentials.password)
    token = create_access_token(user)
    return success_response(
        message="Login successful",
        data=TokenResponse(
            access_token=token,
            must_change_password=user.must_change_password,
        ).to_api(),
    )


@router.post("/change-password")
async def change_password(
    passwords: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_user_allow_password_change),
    deadline: Deadline = Depends(get_deadline),
):
    await run_in_threadpool(
        UserService.change_password, db, user, passwords.current_password, passwords.new_password, deadline,
    )
    return success_response(message="Password changed successfully")


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return success_response(message="Current user", data=UserResponse.model_validate(user).to_api())
