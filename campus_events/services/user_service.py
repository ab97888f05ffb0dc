"""
Accounts: sign-in, password changes and admin user management
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from campus_events.core.db import atomic
from campus_events.core.deadline import Deadline
from campus_events.core.errors import Forbidden, NotFound, Unauthenticated, ValidationFailed
from campus_events.models import User
from campus_events.models.enums import UserRole
from campus_events.services.credentials import hash_password, verify_password
from campus_events.services.repositories import UserRepo

logger = logging.getLogger(__name__)

ADMIN_ROLES = (UserRole.EVENT_ADMIN, UserRole.ACADEMIC_ADMIN)


class UserService:
    """Service for account operations"""

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> User:
        user = UserRepo.get_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed sign-in for %s", email)
            raise Unauthenticated("Invalid email or password")
        return user

    @staticmethod
    def change_password(db: Session, user: User, current_password: str, new_password: str, deadline: Optional[Deadline] = None) -> User:
        if not verify_password(current_password, user.password_hash):
            raise Unauthenticated("Current password is incorrect")
        if current_password == new_password:
            raise ValidationFailed("The new password must differ from the current one.")

        with atomic(db, deadline):
            user.password_hash = hash_password(new_password)
            user.must_change_password = False

        logger.info("Password changed for %s", user.email)
        return user

    @staticmethod
    def list_users(db: Session) -> List[User]:
        return UserRepo.list_non_admins(db)

    @staticmethod
    def set_role(db: Session, actor: User, user_id: int, role: UserRole, deadline: Optional[Deadline] = None) -> User:
        """Change a non-admin user's role; demoting to Guest also clears the quota"""
        if role in ADMIN_ROLES:
            raise Forbidden("Admin roles cannot be granted here.")

        with atomic(db, deadline):
            user = UserRepo.get(db, user_id, lock=True)
            if user is None:
                raise NotFound.of("User")
            if user.role in ADMIN_ROLES:
                raise Forbidden("Admin accounts cannot be changed here.")
            if role == UserRole.GUEST:
                UserRepo.revoke(db, user)
            else:
                user.role = role

        logger.info("Role of %s set to %s by %s", user.email, role.value, actor.email)
        return user

    @staticmethod
    def ensure_admin(db: Session, email: str, role: UserRole, password: str) -> bool:
        """Create an admin account unless the email is taken; returns whether one was created"""
        if role not in ADMIN_ROLES:
            raise ValidationFailed(f"{role.value} is not an admin role.")
        if UserRepo.get_by_email(db, email) is not None:
            return False
        with atomic(db):
            db.add(User(
                email=email.lower(),
                password_hash=hash_password(password),
                role=role,
                event_creation_limit=0,
                must_change_password=True,
            ))
        logger.info("Created %s account %s", role.value, email)
        return True
