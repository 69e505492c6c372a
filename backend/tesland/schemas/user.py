"""
tesland/schemas/user.py
Auth request/response models for the /auth router.
"""
from pydantic import BaseModel


class LoginResponse(BaseModel):
    id_token: str
    refresh_token: str
    expires_in: int
    user_id: str


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    id_token: str = ""
    refresh_token: str = ""
    expires_in: int = 3600
