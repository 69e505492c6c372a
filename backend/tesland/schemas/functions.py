"""
# `tesland/schemas/functions.py` — Request bodies of the serverless handlers

| Model            | Endpoint                                   | Notes |
|------------------|--------------------------------------------|-------|
| `ChatRequest`    | `POST /functions/appointment-assistant`    | ≤ 50 messages, content ≤ 10 000 chars |
| `ArrivalRequest` | `POST /functions/notify-customer-arrival`  | `reservation_id` required |
| `PartnerRequest` | `POST /functions/tesla-register-partner`   | optional `region` (`eu` default) |
| `TeslaAuthRequest` | `POST /functions/tesla-auth`             | `action` plus `code` / `redirect_uri` as the action needs |
"""
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

MAX_MESSAGES = 50
MAX_CONTENT_LENGTH = 10_000

FLEET_API_REGIONS = {
    "eu": "https://fleet-api.prd.eu.vn.cloud.tesla.com",
    "na": "https://fleet-api.prd.na.vn.cloud.tesla.com",
    "cn": "https://fleet-api.prd.cn.vn.cloud.tesla.cn",
}
DEFAULT_REGION = "eu"


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str = Field(..., max_length=MAX_CONTENT_LENGTH)


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., max_length=MAX_MESSAGES)
    language: Optional[str] = None


class ArrivalRequest(BaseModel):
    reservation_id: Union[str, int]
    arrival_type: Optional[str] = None
    language: Optional[str] = None

    @field_validator("reservation_id")
    @classmethod
    def _not_blank(cls, v):
        if isinstance(v, str) and not v.strip():
            raise ValueError("reservation_id is required")
        return v


class PartnerRequest(BaseModel):
    region: Optional[str] = None
    language: Optional[str] = None

    @property
    def resolved_region(self) -> str:
        region = (self.region or "").lower()
        return region if region in FLEET_API_REGIONS else DEFAULT_REGION


class TeslaAuthRequest(BaseModel):
    action: str
    code: Optional[str] = None
    redirect_uri: Optional[str] = None
    language: Optional[str] = None
