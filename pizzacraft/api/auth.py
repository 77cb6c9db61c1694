import logging
from fastapi import APIRouter, BackgroundTasks, Depends, status

from pizzacraft.api.deps import get_current_user, get_notifier
from pizzacraft.models.user import User
from pizzacraft.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from pizzacraft.schemas.response import SuccessResponse
from pizzacraft.services import auth_service
from pizzacraft.services.notifications import EmailNotifier

router = APIRouter()
log = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account with that email exists, we have sent a password reset link."


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def register_endpoint(payload: RegisterRequest, background_tasks: BackgroundTasks,
                            notifier: EmailNotifier = Depends(get_notifier)):
    user, token = await auth_service.register(payload)
    log.info(f"User {user.id} registered, verification email queued")
    background_tasks.add_task(notifier.send_email_verification, user)
    return SuccessResponse(
        message="User registered successfully. Please check your email for verification.",
        data={"user": UserResponse.from_user(user).model_dump(), "token": token},
    )


@router.post("/login", response_model=SuccessResponse)
async def login_endpoint(payload: LoginRequest):
    user, token = await auth_service.login(payload.email, payload.password)
    return SuccessResponse(
        message="Login successful",
        data={"user": UserResponse.from_user(user).model_dump(), "token": token},
    )


@router.get("/verify-email/{token}", response_model=SuccessResponse)
async def verify_email_endpoint(token: str):
    await auth_service.verify_email(token)
    return SuccessResponse(message="Email verified successfully")


@router.post("/forgot-password", response_model=SuccessResponse)
async def forgot_password_endpoint(payload: ForgotPasswordRequest, background_tasks: BackgroundTasks,
                                   notifier: EmailNotifier = Depends(get_notifier)):
    """Same response whether or not the account exists."""
    user = await auth_service.forgot_password(payload.email)
    if user is not None:
        background_tasks.add_task(notifier.send_password_reset, user)
    return SuccessResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password/{token}", response_model=SuccessResponse)
async def reset_password_endpoint(token: str, payload: ResetPasswordRequest):
    await auth_service.reset_password(token, payload.password)
    return SuccessResponse(message="Password reset successfully")


@router.get("/profile", response_model=SuccessResponse)
async def profile_endpoint(current_user: User = Depends(get_current_user)):
    user = await auth_service.get_profile(current_user.id)
    return SuccessResponse(data={"user": UserResponse.from_user(user).model_dump()})
