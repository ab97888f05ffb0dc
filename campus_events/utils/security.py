"""
Security utilities and authentication
"""

import time
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from sqlalchemy.orm import Session

from campus_events.core.config import settings
from campus_events.core.db import get_db
from campus_events.core.deadline import Deadline
from campus_events.core.errors import Forbidden, RateLimited, Unauthenticated
from campus_events.models import User
from campus_events.models.enums import UserRole
from campus_events.services.repositories import UserRepo

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

security = HTTPBearer(auto_error=False)


def create_access_token(user: User, ttl_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes or settings.ACCESS_TOKEN_TTL_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except InvalidTokenError:
        raise Unauthenticated("Invalid token")


def campus_today():
    return datetime.now(ZoneInfo(settings.CAMPUS_TIMEZONE)).date()


def get_user_allow_password_change(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user; a pending password change is allowed"""
    if credentials is None:
        raise Unauthenticated()
    payload = decode_access_token(credentials.credentials)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid token")

    user = UserRepo.get(db, user_id)
    if user is None:
        raise Unauthenticated("Invalid token")
    if user.role == UserRole.GUEST:
        raise Forbidden("Your access has been revoked.")
    if user.access_expired(campus_today()):
        raise Forbidden("Your access has expired.")
    return user


def get_current_user(user: User = Depends(get_user_allow_password_change)) -> User:
    if user.must_change_password:
        raise Forbidden("Password change required")
    return user


def require_roles(*roles: UserRole):
    """Dependency factory admitting only the given roles"""

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise Forbidden("You do not have permission to perform this action.")
        return user

    return dependency


def get_deadline() -> Deadline:
    """Per-request deadline"""
    return Deadline(settings.REQUEST_TIMEOUT_SECONDS)


def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    # Clean old requests
    rate_limiter[client_ip] = [
        req_time for req_time in rate_limiter[client_ip]
        if req_time > minute_ago
    ]

    if len(rate_limiter[client_ip]) >= limit:
        return False

    rate_limiter[client_ip].append(current_time)
    return True


def get_client_ip(request: Request) -> str:
    """Extract client IP from request"""
    # Forwarded IP first, for reverse proxy setups
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def enforce_rate_limit(request: Request) -> None:
    """Dependency for public write endpoints"""
    if not rate_limit_check(get_client_ip(request)):
        raise RateLimited()
