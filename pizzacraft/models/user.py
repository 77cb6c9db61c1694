from enum import Enum
from tortoise import fields, models
import uuid


class UserRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class User(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    first_name = fields.CharField(max_length=100)
    last_name = fields.CharField(max_length=100)
    email = fields.CharField(max_length=255, unique=True)  # Stored lower-cased
    phone = fields.CharField(max_length=32)
    password_hash = fields.CharField(max_length=255)
    role = fields.CharEnumField(UserRole, default=UserRole.CUSTOMER)
    is_email_verified = fields.BooleanField(default=False)
    email_verification_token = fields.CharField(max_length=128, null=True)
    password_reset_token = fields.CharField(max_length=128, null=True)
    password_reset_expires = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "users"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
