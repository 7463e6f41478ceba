import logging
import math
import re
from typing import Any, Dict, List, Union

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from database import RecordStore, now_iso, serialize, to_object_id
from errors import ClientError, DependencyError, NotFoundError
from schemas import CouponIn, CouponValidation

logger = logging.getLogger(__name__)


def normalize_discount(raw: Any) -> Union[int, float]:
    """Coerce a stored discount ("15", 15, 12.5) to a number.

    Booleans and non-numeric strings are rejected with ValueError.
    """
    if isinstance(raw, bool) or raw is None:
        raise ValueError(f"not a numeric discount: {raw!r}")
    try:
        value = float(raw.strip()) if isinstance(raw, str) else float(raw)
    except TypeError:
        raise ValueError(f"not a numeric discount: {raw!r}")
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"not a numeric discount: {raw!r}")
    return int(value) if value.is_integer() else value


def validate_coupon(store: RecordStore, code: str) -> CouponValidation:
    if not code:
        raise ClientError("Coupon code is required")
    # anchored and escaped: "SAVE1" must not match "SAVE10"
    query = {"coupon": {"$regex": f"^{re.escape(code)}$", "$options": "i"}}
    try:
        coupon = store.coupons.find_one(query)
    except PyMongoError:
        logger.exception("Error validating coupon %s", code)
        raise DependencyError("Internal server error")
    if not coupon:
        raise NotFoundError("Coupon not found")
    try:
        discount = normalize_discount(coupon.get("discount"))
    except ValueError:
        logger.error("Coupon %s has a non-numeric discount %r", coupon["_id"], coupon.get("discount"))
        raise DependencyError("Internal server error")
    return CouponValidation(
        coupon=coupon["coupon"],
        discount=discount,
        description=coupon.get("description"),
    )


def list_coupons(store: RecordStore) -> List[Dict[str, Any]]:
    try:
        return [serialize(c) for c in store.coupons.find().sort("createdAt", DESCENDING)]
    except PyMongoError:
        logger.exception("Error fetching coupons")
        raise DependencyError("Failed to fetch coupons.")


def _check_discount(payload: CouponIn) -> None:
    try:
        normalize_discount(payload.discount)
    except ValueError:
        raise ClientError("Discount must be a number.")


def create_coupon(store: RecordStore, payload: CouponIn) -> str:
    _check_discount(payload)
    # Exact, case-sensitive duplicate check; validation is case-insensitive.
    try:
        if store.coupons.find_one({"coupon": payload.coupon}):
            raise ClientError("Coupon already exists.")
        return store.create_document("coupons", payload)
    except PyMongoError:
        logger.exception("Error creating coupon")
        raise DependencyError("Failed to create coupon.")


def update_coupon(store: RecordStore, coupon_id: str, payload: CouponIn) -> None:
    _id = to_object_id(coupon_id, "coupon id")
    _check_discount(payload)
    try:
        result = store.coupons.update_one(
            {"_id": _id},
            {"$set": {"coupon": payload.coupon, "discount": payload.discount,
                      "description": payload.description, "updatedAt": now_iso()}},
        )
    except PyMongoError:
        logger.exception("Error updating coupon %s", coupon_id)
        raise DependencyError("Failed to update coupon.")
    if result.matched_count != 1:
        raise NotFoundError("Coupon not found.")


def delete_coupon(store: RecordStore, coupon_id: str) -> None:
    _id = to_object_id(coupon_id, "coupon id")
    try:
        result = store.coupons.delete_one({"_id": _id})
    except PyMongoError:
        logger.exception("Error deleting coupon %s", coupon_id)
        raise DependencyError("Failed to delete coupon.")
    if result.deleted_count != 1:
        raise NotFoundError("Coupon not found.")
