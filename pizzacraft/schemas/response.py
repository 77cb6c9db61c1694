from pydantic import BaseModel, Field
from typing import Any, Optional
import uuid


def _rid():
    return uuid.uuid4().hex

class SuccessResponse(BaseModel):
    """Response envelope shared by every endpoint: success, message, data and request_id"""
    success: bool = Field(default=True)
    message: Optional[str] = None
    data: Optional[Any] = None
    request_id: str = Field(default_factory=_rid)
