"""
tesland/schemas/principal.py
Principal (authenticated identity) and Session models.
"""
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field


class Principal(BaseModel):
    uid: str = Field(..., description="Firebase UID")
    email: Optional[str] = Field(None, description="E-mail (if any)")
    is_admin: bool = Field(False, description="True only when a user_roles row with role='admin' exists")


class Session(BaseModel):
    """Token pair bound to one principal, as persisted by the identity client."""
    id_token: str
    refresh_token: str
    expires_at: datetime
    uid: str
    email: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at
