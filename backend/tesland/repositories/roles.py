"""
tesland/repositories/roles.py - Role lookups against the `user_roles` collection.
"""
import logging

logger = logging.getLogger("tesland.roles")

COL = "user_roles"
ADMIN_ROLE = "admin"


def is_admin(db, uid: str) -> bool:
    """True only if a `user_roles` row with role='admin' exists for uid. Any error means False."""
    if not uid:
        return False
    try:
        docs = db.collection(COL).where("user_id", "==", uid).where("role", "==", ADMIN_ROLE).limit(1).stream()
        return any(True for _ in docs)
    except Exception as exc:
        logger.warning("Role lookup failed for %s, treating as non-admin: %s", uid, exc)
        return False


def grant_admin(db, uid: str) -> str:
    """Adds the admin row for uid unless it is already there. Returns the document id."""
    for doc in db.collection(COL).where("user_id", "==", uid).where("role", "==", ADMIN_ROLE).limit(1).stream():
        return doc.id
    ref = db.collection(COL).document()
    ref.set({"user_id": uid, "role": ADMIN_ROLE})
    logger.info("Granted admin role to %s", uid)
    return ref.id
