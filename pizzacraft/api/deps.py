from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pizzacraft.core.exceptions import AuthenticationError, PermissionDeniedError
from pizzacraft.core.security import decode_access_token
from pizzacraft.models.user import User
from pizzacraft.services.notifications import EmailNotifier
from pizzacraft.services.stock_monitor import StockMonitor

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """Resolves the bearer token to a user."""
    if credentials is None:
        raise AuthenticationError("Access token required")

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise PermissionDeniedError("Invalid or expired token")

    user = await User.get_or_none(id=user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise PermissionDeniedError("Admin access required")
    return user


def get_notifier(request: Request) -> EmailNotifier:
    return request.app.state.notifier


def get_stock_monitor(request: Request) -> StockMonitor:
    return request.app.state.stock_monitor
