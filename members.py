"""
Member removal cascade.

Local consistency (user document and that user's bookings) is the hard
guarantee. The identity provider is cleaned up best-effort: a failed lookup
or deletion there is recorded as a warning on the ``Outcome`` and logged,
never raised.
"""
import logging
from typing import Optional

from pymongo.errors import PyMongoError

from database import RecordStore, now_iso, to_object_id
from errors import DependencyError, NotFoundError
from identity import IdentityProvider
from results import Outcome

logger = logging.getLogger(__name__)


def _lookup_uid(identity: IdentityProvider, email: str, outcome: Outcome) -> Optional[str]:
    try:
        uid = identity.get_uid_by_email(email)
    except Exception as e:
        outcome.advise(logger, "Identity lookup for %s failed, skipping identity deletion", email, exc=e)
        return None
    if uid is None:
        outcome.advise(logger, "No identity found for %s, skipping identity deletion", email)
    return uid


def remove_member(store: RecordStore, identity: IdentityProvider, user_id: str) -> Outcome[int]:
    """Delete a user's bookings, the user and (best-effort) their identity.

    Returns an ``Outcome`` whose value is the number of bookings removed.
    """
    _id = to_object_id(user_id, "user id")
    try:
        user = store.users.find_one({"_id": _id})
    except PyMongoError:
        logger.exception("Error loading user %s", user_id)
        raise DependencyError("Failed to delete member and bookings")
    if not user:
        raise NotFoundError("User not found")

    email = user.get("email")
    outcome: Outcome[int] = Outcome(value=0)
    uid = _lookup_uid(identity, email, outcome) if email else None

    # Marked first, deleted last: a user still carrying `removing` has an
    # unfinished cascade, and running removal again completes it.
    try:
        store.users.update_one({"_id": _id}, {"$set": {"removing": now_iso()}})
        deleted = store.bookings.delete_many({"email": email}).deleted_count if email else 0
        store.users.delete_one({"_id": _id})
    except PyMongoError:
        logger.exception("Error removing user %s (%s); rerun removal to finish", user_id, email)
        raise DependencyError("Failed to delete member and bookings")
    outcome.value = deleted
    logger.info("Removed user %s and %d bookings", user_id, deleted)

    if uid:
        try:
            identity.delete_user(uid)
        except Exception as e:
            outcome.advise(logger, "Failed to delete identity %s", uid, exc=e)
    return outcome
