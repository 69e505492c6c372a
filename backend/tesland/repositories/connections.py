"""
tesland/repositories/connections.py - Stored third-party (Tesla) OAuth tokens per user.

One document per user in `tesla_connections/{uid}`; cached vehicles live in `tesla_vehicles`
with a `user_id` field and go away with the connection.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

COL = "tesla_connections"
VEHICLES_COL = "tesla_vehicles"


def get_tesla_connection(db, uid: str) -> Optional[Dict[str, Any]]:
    doc = db.collection(COL).document(uid).get()
    if not doc.exists:
        return None
    data = doc.to_dict() or {}
    return data if data.get("access_token") else None


def save_tesla_connection(db, uid: str, access_token: str, refresh_token: Optional[str],
                          expires_in: int) -> Dict[str, Any]:
    """Upsert: a second connect replaces the stored tokens."""
    now = datetime.now(timezone.utc)
    record = {
        "user_id": uid,
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_at": (now + timedelta(seconds=int(expires_in))).isoformat(),
        "updated_at": now,
    }
    db.collection(COL).document(uid).set(record)
    return record


def delete_tesla_connection(db, uid: str) -> int:
    """Removes the tokens and the cached vehicles; returns how many vehicle documents were dropped."""
    db.collection(COL).document(uid).delete()
    removed = 0
    for doc in db.collection(VEHICLES_COL).where("user_id", "==", uid).stream():
        db.collection(VEHICLES_COL).document(doc.id).delete()
        removed += 1
    return removed
