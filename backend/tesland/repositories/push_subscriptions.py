"""
tesland/repositories/push_subscriptions.py - Device tokens used as push fan-out addresses.

`push_subscriptions` holds customer devices per appointment,
`admin_push_subscriptions` holds admin devices.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List

COL = "push_subscriptions"
ADMIN_COL = "admin_push_subscriptions"


def _rows(docs) -> List[Dict[str, Any]]:
    out = []
    for doc in docs:
        d = doc.to_dict() or {}
        d["id"] = doc.id
        out.append(d)
    return out


def register_for_appointment(db, appointment_id: str, device_token: str, platform: str) -> Dict[str, Any]:
    data = {
        "appointment_id": appointment_id,
        "device_token": device_token,
        "platform": platform,
        "created_at": datetime.now(timezone.utc),
    }
    ref = db.collection(COL).document()
    ref.set(data)
    return {**data, "id": ref.id}


def register_admin_device(db, user_id: str, device_token: str, platform: str) -> Dict[str, Any]:
    # One document per token, so re-registering the same device is idempotent
    data = {
        "user_id": user_id,
        "device_token": device_token,
        "platform": platform,
        "created_at": datetime.now(timezone.utc),
    }
    db.collection(ADMIN_COL).document(device_token).set(data)
    return {**data, "id": device_token}


def list_for_appointment(db, appointment_id: str) -> List[Dict[str, Any]]:
    return _rows(db.collection(COL).where("appointment_id", "==", appointment_id).stream())


def list_admin_devices(db) -> List[Dict[str, Any]]:
    return _rows(db.collection(ADMIN_COL).stream())
