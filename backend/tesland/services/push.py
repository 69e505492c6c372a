"""
tesland/services/push.py - Best-effort FCM fan-out.

One message per device, all sent concurrently. A failing device is logged and recorded,
never allowed to stop the others (settle-all join, no retries).
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from firebase_admin import messaging

from tesland.config import get_firebase_app

logger = logging.getLogger("tesland.push")


@dataclass
class DeliveryResult:
    device_token: str
    platform: Optional[str]
    success: bool
    error: Optional[str] = None


def _send_one(token: str, title: str, body: str, data: Dict[str, str]) -> str:
    message = messaging.Message(
        token=token,
        notification=messaging.Notification(title=title, body=body),
        data=data,
    )
    return messaging.send(message, app=get_firebase_app())


async def fan_out(subscriptions: List[dict], title: str, body: str, data: Dict[str, str]) -> List[DeliveryResult]:
    """Send the same notification to every subscription; returns one result per attempt."""
    targets = [s for s in subscriptions if s.get("device_token")]
    outcomes = await asyncio.gather(
        *(asyncio.to_thread(_send_one, s["device_token"], title, body, data) for s in targets),
        return_exceptions=True,
    )
    results = []
    for sub, outcome in zip(targets, outcomes):
        if isinstance(outcome, BaseException):
            logger.error("Push to %s device %s... failed: %s",
                         sub.get("platform"), sub["device_token"][:10], outcome)
            results.append(DeliveryResult(sub["device_token"], sub.get("platform"), False, str(outcome)))
        else:
            results.append(DeliveryResult(sub["device_token"], sub.get("platform"), True))
    return results
