"""
tesland/schemas/push.py
Push-notification subscription models (customer devices per appointment, admin devices).
"""
from typing import Literal
from pydantic import BaseModel, Field

Platform = Literal["ios", "android", "web"]


class PushSubscriptionCreate(BaseModel):
    appointment_id: str = Field(..., min_length=1)
    device_token: str = Field(..., min_length=1)
    platform: Platform


class AdminPushSubscriptionCreate(BaseModel):
    device_token: str = Field(..., min_length=1)
    platform: Platform


class PushSubscriptionOut(BaseModel):
    id: str
    device_token: str
    platform: Platform
