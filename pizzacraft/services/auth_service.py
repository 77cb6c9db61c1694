import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from tortoise.exceptions import IntegrityError

from pizzacraft.core.config import PASSWORD_RESET_MINUTES
from pizzacraft.core.exceptions import AuthenticationError, NotFoundError, ValidationError
from pizzacraft.core.security import (
    create_access_token,
    generate_one_time_token,
    hash_password,
    verify_password,
)
from pizzacraft.models.user import User, UserRole
from pizzacraft.schemas.auth import RegisterRequest

log = logging.getLogger(__name__)


async def register(data: RegisterRequest, role: UserRole = UserRole.CUSTOMER) -> Tuple[User, str]:
    """Creates the account with a pending email verification. Returns the user and a bearer token."""
    if await User.exists(email=data.email):
        raise ValidationError("User with this email already exists")

    try:
        user = await User.create(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            phone=data.phone,
            password_hash=hash_password(data.password),
            role=role,
            email_verification_token=generate_one_time_token(),
        )
    except IntegrityError:
        raise ValidationError("User with this email already exists")

    log.info(f"User registered: {user.id} ({user.role.value})")
    return user, create_access_token(user.id)


async def login(email: str, password: str) -> Tuple[User, str]:
    user = await User.get_or_none(email=email.strip().lower())
    if not user or not verify_password(user.password_hash, password):
        log.info(f"Failed login attempt for {email}")
        raise AuthenticationError("Invalid email or password")
    return user, create_access_token(user.id)


async def verify_email(token: str) -> User:
    user = await User.get_or_none(email_verification_token=token)
    if not user:
        raise ValidationError("Invalid or expired verification token")

    user.is_email_verified = True
    user.email_verification_token = None
    await user.save()
    log.info(f"Email verified for user {user.id}")
    return user


async def forgot_password(email: str, now: Optional[datetime] = None) -> Optional[User]:
    """
    Issues a short-lived reset token. Returns the user to notify, or None when
    the email is unknown; callers respond identically in both cases.
    """
    user = await User.get_or_none(email=email.strip().lower())
    if not user:
        return None

    now = now or datetime.now(timezone.utc)
    user.password_reset_token = generate_one_time_token()
    user.password_reset_expires = now + timedelta(minutes=PASSWORD_RESET_MINUTES)
    await user.save()
    log.info(f"Password reset requested for user {user.id}")
    return user


async def reset_password(token: str, password: str, now: Optional[datetime] = None) -> User:
    now = now or datetime.now(timezone.utc)
    user = await User.get_or_none(password_reset_token=token, password_reset_expires__gt=now)
    if not user:
        raise ValidationError("Invalid or expired reset token")

    user.password_hash = hash_password(password)
    user.password_reset_token = None
    user.password_reset_expires = None
    await user.save()
    log.info(f"Password reset for user {user.id}")
    return user


async def get_profile(user_id) -> User:
    user = await User.get_or_none(id=user_id)
    if not user:
        raise NotFoundError("User not found")
    return user
