"""
Payment settlement.

Settling inserts a payment and confirms its booking. The two writes hit
different collections without a transaction, so every payment carries a
``bookingConfirmed`` flag that is only set once the booking write went
through. ``reconcile_payments`` replays the confirmation for payments whose
flag is still false.
"""
import logging
from typing import Any, Dict, List, Tuple

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from bookings import CONFIRMED
from database import RecordStore, now_iso, serialize, to_object_id
from errors import ClientError, DependencyError
from schemas import PaymentIn

logger = logging.getLogger(__name__)


def _confirm_booking(store: RecordStore, payment_id, booking_oid, paid_at: str) -> None:
    # No check on the booking's prior status: payment always wins.
    store.bookings.update_one(
        {"_id": booking_oid},
        {"$set": {"status": CONFIRMED, "paidAt": paid_at}},
    )
    store.payments.update_one({"_id": payment_id}, {"$set": {"bookingConfirmed": True}})


def settle_payment(store: RecordStore, payment: PaymentIn) -> str:
    if not payment.bookingId or not payment.email or payment.price is None:
        raise ClientError("Missing required payment data")
    booking_oid = to_object_id(payment.bookingId, "booking id")

    doc: Dict[str, Any] = payment.model_dump()
    doc.pop("_id", None)
    doc["createdAt"] = now_iso()
    doc["bookingConfirmed"] = False
    try:
        inserted = store.payments.insert_one(doc)
    except PyMongoError:
        logger.exception("Error saving payment for booking %s", payment.bookingId)
        raise DependencyError("Failed to save payment")

    try:
        _confirm_booking(store, inserted.inserted_id, booking_oid, now_iso())
    except PyMongoError:
        logger.exception(
            "Payment %s saved but booking %s was not confirmed; left for reconciliation",
            inserted.inserted_id, payment.bookingId,
        )
        raise DependencyError("Failed to save payment")
    logger.info("Payment %s settled booking %s", inserted.inserted_id, payment.bookingId)
    return str(inserted.inserted_id)


def list_payments(store: RecordStore, email: str) -> List[Dict[str, Any]]:
    try:
        cursor = store.payments.find({"email": email}).sort("createdAt", DESCENDING)
        return [serialize(p) for p in cursor]
    except PyMongoError:
        logger.exception("Error fetching payments")
        raise DependencyError("Internal server error")


def reconcile_payments(store: RecordStore) -> Tuple[int, int]:
    """Confirm bookings for payments left unconfirmed; returns (reconciled, failed)."""
    try:
        pending = list(store.payments.find({"bookingConfirmed": False}))
    except PyMongoError:
        logger.exception("Error loading unreconciled payments")
        raise DependencyError("Failed to reconcile payments")
    reconciled = failed = 0
    for p in pending:
        try:
            _confirm_booking(store, p["_id"], to_object_id(p.get("bookingId"), "booking id"),
                             p.get("createdAt") or now_iso())
            reconciled += 1
        except (PyMongoError, ClientError) as e:
            logger.error("Could not reconcile payment %s: %s", p["_id"], e)
            failed += 1
    if pending:
        logger.info("[RECONCILE] %d payments reconciled, %d failed", reconciled, failed)
    return reconciled, failed
