"""
Booking lifecycle: pending -> approved -> confirmed.

Approval is coupled to membership: approving a booking promotes its user to
``member`` the first time. The booking write and the promotion are separate
store calls and are not atomic.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from database import RecordStore, now_iso, to_object_id
from errors import ClientError, DependencyError, NotFoundError

logger = logging.getLogger(__name__)

PENDING = "pending"
APPROVED = "approved"
CONFIRMED = "confirmed"

TRANSITIONS = {
    PENDING: {APPROVED, CONFIRMED},
    APPROVED: {CONFIRMED},
    CONFIRMED: set(),
}


def check_transition(current: str, new: str) -> None:
    if new not in TRANSITIONS:
        raise ClientError(f"Unknown booking status: {new}")
    if new not in TRANSITIONS.get(current, set()):
        raise ClientError(f"Cannot move booking from {current} to {new}")


@dataclass
class ApprovalResult:
    booking_updated: bool
    user_found: bool
    user_promoted: bool

    @property
    def message(self) -> str:
        if not self.user_found:
            return "Booking approved. No user record to promote."
        if self.user_promoted:
            return "Booking approved and user promoted to member."
        return "Booking approved. User already a member."


def approve_booking(
    store: RecordStore,
    booking_id: str,
    new_status: str,
    approved_at: Optional[str],
    user_email: Optional[str],
) -> ApprovalResult:
    _id = to_object_id(booking_id, "booking id")
    try:
        booking = store.bookings.find_one({"_id": _id})
        if not booking:
            raise NotFoundError("Booking not found or not updated.")
        # bookings stored without a status are pending
        current = booking.get("status") or PENDING
        status_filter: Any = booking["status"] if "status" in booking else {"$exists": False}
        check_transition(current, new_status)

        # Filter on the observed status so a concurrent approval that already
        # moved the booking is reported instead of silently overwritten.
        fields: Dict[str, Any] = {"status": new_status}
        if approved_at:
            fields["approvedAt"] = approved_at
        updated = store.bookings.update_one({"_id": _id, "status": status_filter}, {"$set": fields})
    except PyMongoError:
        logger.exception("Error approving booking %s", booking_id)
        raise DependencyError("Failed to approve booking.")
    if updated.modified_count != 1:
        raise NotFoundError("Booking not found or not updated.")
    logger.info("Booking %s moved %s -> %s", booking_id, current, new_status)

    if not user_email:
        return ApprovalResult(booking_updated=True, user_found=False, user_promoted=False)
    try:
        user = store.users.find_one({"email": user_email})
        if user is None:
            logger.warning("No user %s to promote for booking %s", user_email, booking_id)
            return ApprovalResult(booking_updated=True, user_found=False, user_promoted=False)
        if user.get("role") == "member":
            return ApprovalResult(booking_updated=True, user_found=True, user_promoted=False)
        promoted = store.users.update_one(
            {"_id": user["_id"], "role": {"$ne": "member"}},
            {"$set": {"role": "member", "approvedAt": approved_at or now_iso()}},
        )
    except PyMongoError:
        logger.exception("Booking %s updated but promotion of %s failed", booking_id, user_email)
        raise DependencyError("Failed to approve booking.")
    if promoted.modified_count == 1:
        logger.info("User %s promoted to member", user_email)
    return ApprovalResult(booking_updated=True, user_found=True, user_promoted=promoted.modified_count == 1)


def list_bookings(store: RecordStore, status: str, email: Optional[str] = None,
                  newest_first: bool = True) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"status": status}
    if email is not None:
        query["email"] = email
    try:
        return store.get_documents("bookings", query, newest_first=newest_first)
    except PyMongoError:
        logger.exception("Error fetching %s bookings", status)
        raise DependencyError(f"Failed to fetch {status} bookings.")


def create_booking(store: RecordStore, owner_email: str, data: Dict[str, Any]) -> str:
    doc = dict(data)
    doc.pop("_id", None)
    doc["status"] = PENDING
    doc.setdefault("email", owner_email)
    try:
        return store.create_document("bookings", doc)
    except PyMongoError:
        logger.exception("Error booking courts")
        raise DependencyError("Failed to book courts.")


def delete_booking(store: RecordStore, booking_id: str) -> None:
    try:
        deleted = store.delete_document("bookings", booking_id)
    except PyMongoError:
        logger.exception("Error deleting booking %s", booking_id)
        raise DependencyError("Failed to delete booking")
    if deleted != 1:
        raise NotFoundError("Booking not found")
