from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class TokenClaims(BaseModel):
    """Identity payload embedded in a signed session token."""
    user_id: int
    username: str
    role: Optional[str] = None
    permissions: list[str] = []
    issued_at: Optional[datetime] = None
    # Filled in by validation
    expires_at: Optional[datetime] = None
    issuer: Optional[str] = None


class SessionStatistics(BaseModel):
    total: int
    by_role: dict[str, int]
    last_hour: int


class AuthenticationResult(BaseModel):
    identity: dict
    token: str
    permissions: list[str]
    created_at: datetime
    expires_in: int


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str
