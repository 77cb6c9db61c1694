import secrets
from typing import Optional

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from werkzeug.security import generate_password_hash, check_password_hash

from pizzacraft.core.config import SECRET_KEY, TOKEN_MAX_AGE_SECONDS

_serializer = URLSafeTimedSerializer(SECRET_KEY, salt="pizzacraft-auth")


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(user_id: str) -> str:
    """Signed bearer token carrying the user id."""
    return _serializer.dumps({"uid": str(user_id)})


def decode_access_token(token: str, max_age: int = TOKEN_MAX_AGE_SECONDS) -> Optional[str]:
    """Returns the user id, or None when the token is invalid or expired."""
    try:
        payload = _serializer.loads(token, max_age=max_age)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(payload, dict):
        return None
    return payload.get("uid")


def generate_one_time_token() -> str:
    """Random token for email verification and password reset links."""
    return secrets.token_hex(32)
