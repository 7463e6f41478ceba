import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware

import bookings
import coupons
import members
import payments
import users
from config import get_settings
from database import RecordStore
from errors import ClientError, NotFoundError, register_error_handlers
from identity import FirebaseIdentityProvider, IdentityProvider, Principal, get_identity, get_principal
from schemas import (
    AnnouncementIn,
    ApprovalRequest,
    ApprovalResponse,
    Booking,
    Court,
    CouponIn,
    CouponValidation,
    MemberRemoval,
    PaymentCreated,
    PaymentIn,
    ReconcileReport,
    User,
)

logger = logging.getLogger(__name__)


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


router = APIRouter()


# -------------------------------
# Health
# -------------------------------

@router.get("/")
def root():
    return {"message": "Elite Club Server is running"}


@router.get("/test")
def test_database(store: RecordStore = Depends(get_store)):
    response = {
        "backend": "Running",
        "database": "Not Available",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        info = store.describe()
        response["database"] = "Connected & Working"
        response["database_name"] = info["name"]
        response["connection_status"] = "Connected"
        response["collections"] = info["collections"]
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        response["database"] = "Error"
    return response


# -------------------------------
# Courts
# -------------------------------

@router.get("/courts")
def list_courts(store: RecordStore = Depends(get_store)) -> List[Dict[str, Any]]:
    return store.get_documents("courts")


@router.post("/courts", status_code=201)
def create_court(court: Court, store: RecordStore = Depends(get_store),
                 principal: Principal = Depends(get_principal)):
    return {"acknowledged": True, "insertedId": store.create_document("courts", court)}


@router.patch("/courts/{court_id}")
def update_court(court_id: str, fields: Dict[str, Any] = Body(...),
                 store: RecordStore = Depends(get_store),
                 principal: Principal = Depends(get_principal)):
    fields.pop("_id", None)
    if not fields:
        raise ClientError("No court fields to update.")
    if not store.update_document("courts", court_id, fields):
        raise NotFoundError("Court not found.")
    return {"success": True, "message": "Court updated successfully."}


@router.delete("/courts/{court_id}")
def delete_court(court_id: str, store: RecordStore = Depends(get_store),
                 principal: Principal = Depends(get_principal)):
    if not store.delete_document("courts", court_id):
        raise NotFoundError("Court not found.")
    return {"success": True, "message": "Court deleted successfully."}


# -------------------------------
# Users & members
# -------------------------------

@router.post("/users")
def create_user(user: User, store: RecordStore = Depends(get_store)):
    result = users.create_user_if_absent(store, user)
    if not result.created:
        return {"created": False, "message": "User already exists"}
    return {"created": True, "insertedId": result.user_id}


@router.get("/users")
def get_user(email: Optional[str] = Query(None), store: RecordStore = Depends(get_store),
             principal: Principal = Depends(get_principal)):
    return {"success": True, "data": users.find_user_by_email(store, email)}


@router.get("/all-users")
def all_users(store: RecordStore = Depends(get_store), principal: Principal = Depends(get_principal)):
    return users.list_users(store)


@router.get("/members")
def list_members(store: RecordStore = Depends(get_store), principal: Principal = Depends(get_principal)):
    return users.list_users(store, role="member")


@router.delete("/members/{user_id}", response_model=MemberRemoval)
def delete_member(user_id: str, store: RecordStore = Depends(get_store),
                  identity: IdentityProvider = Depends(get_identity),
                  principal: Principal = Depends(get_principal)):
    outcome = members.remove_member(store, identity, user_id)
    return MemberRemoval(
        success=True,
        message="User and their bookings deleted successfully",
        deletedBookings=outcome.value,
        warnings=outcome.warnings,
    )


# -------------------------------
# Bookings
# -------------------------------

@router.get("/bookings/pending")
def my_pending_bookings(store: RecordStore = Depends(get_store), principal: Principal = Depends(get_principal)):
    return bookings.list_bookings(store, bookings.PENDING, email=principal.email, newest_first=False)


@router.get("/bookings/pending-all")
def all_pending_bookings(store: RecordStore = Depends(get_store), principal: Principal = Depends(get_principal)):
    return bookings.list_bookings(store, bookings.PENDING)


@router.get("/bookings/approved")
def my_approved_bookings(store: RecordStore = Depends(get_store), principal: Principal = Depends(get_principal)):
    return bookings.list_bookings(store, bookings.APPROVED, email=principal.email)


@router.get("/bookings/confirmed")
def my_confirmed_bookings(store: RecordStore = Depends(get_store), principal: Principal = Depends(get_principal)):
    return bookings.list_bookings(store, bookings.CONFIRMED, email=principal.email)


@router.get("/bookings/confirmed-all")
def all_confirmed_bookings(store: RecordStore = Depends(get_store), principal: Principal = Depends(get_principal)):
    return bookings.list_bookings(store, bookings.CONFIRMED)


@router.post("/bookings")
def create_booking(booking: Booking, store: RecordStore = Depends(get_store),
                   principal: Principal = Depends(get_principal)):
    booking_id = bookings.create_booking(store, principal.email, booking.model_dump(exclude_none=True))
    return {"acknowledged": True, "insertedId": booking_id}


@router.patch("/bookings/approve/{booking_id}", response_model=ApprovalResponse)
def approve_booking(booking_id: str, payload: ApprovalRequest, store: RecordStore = Depends(get_store),
                    principal: Principal = Depends(get_principal)):
    result = bookings.approve_booking(store, booking_id, payload.status, payload.approvedAt, payload.userEmail)
    return ApprovalResponse(success=True, message=result.message, userUpdated=result.user_promoted)


@router.delete("/bookings/{booking_id}")
def delete_booking(booking_id: str, store: RecordStore = Depends(get_store),
                   principal: Principal = Depends(get_principal)):
    bookings.delete_booking(store, booking_id)
    return {"success": True, "message": "Booking deleted successfully"}


# -------------------------------
# Coupons
# -------------------------------

@router.get("/coupons")
def list_coupons(store: RecordStore = Depends(get_store)):
    return coupons.list_coupons(store)


@router.get("/coupons/validate", response_model=CouponValidation)
def validate_coupon(code: Optional[str] = Query(None), store: RecordStore = Depends(get_store)):
    return coupons.validate_coupon(store, code)


@router.post("/coupons", status_code=201)
def create_coupon(payload: CouponIn, store: RecordStore = Depends(get_store),
                  principal: Principal = Depends(get_principal)):
    return {"acknowledged": True, "insertedId": coupons.create_coupon(store, payload)}


@router.patch("/coupons/{coupon_id}")
def update_coupon(coupon_id: str, payload: CouponIn, store: RecordStore = Depends(get_store),
                  principal: Principal = Depends(get_principal)):
    coupons.update_coupon(store, coupon_id, payload)
    return {"success": True, "message": "Coupon updated successfully."}


@router.delete("/coupons/{coupon_id}")
def delete_coupon(coupon_id: str, store: RecordStore = Depends(get_store),
                  principal: Principal = Depends(get_principal)):
    coupons.delete_coupon(store, coupon_id)
    return {"success": True, "message": "Coupon deleted successfully."}


# -------------------------------
# Announcements
# -------------------------------

def _announcement_fields(payload: AnnouncementIn) -> Dict[str, str]:
    if not payload.title or not payload.message:
        raise ClientError("Title and message are required.")
    return {"title": payload.title, "message": payload.message}


@router.get("/announcements")
def list_announcements(store: RecordStore = Depends(get_store)):
    return store.get_documents("announcements", newest_first=True)


@router.post("/announcements", status_code=201)
def create_announcement(payload: AnnouncementIn, store: RecordStore = Depends(get_store),
                        principal: Principal = Depends(get_principal)):
    doc_id = store.create_document("announcements", _announcement_fields(payload))
    return {"acknowledged": True, "insertedId": doc_id}


@router.patch("/announcements/{announcement_id}")
def update_announcement(announcement_id: str, payload: AnnouncementIn,
                        store: RecordStore = Depends(get_store),
                        principal: Principal = Depends(get_principal)):
    if not store.update_document("announcements", announcement_id, _announcement_fields(payload)):
        raise NotFoundError("Announcement not found.")
    return {"success": True, "message": "Announcement updated successfully."}


@router.delete("/announcements/{announcement_id}")
def delete_announcement(announcement_id: str, store: RecordStore = Depends(get_store),
                        principal: Principal = Depends(get_principal)):
    if not store.delete_document("announcements", announcement_id):
        raise NotFoundError("Announcement not found.")
    return {"success": True, "message": "Announcement deleted successfully."}


# -------------------------------
# Payments
# -------------------------------

@router.get("/payments")
def my_payments(store: RecordStore = Depends(get_store), principal: Principal = Depends(get_principal)):
    return payments.list_payments(store, principal.email)


@router.post("/payments", status_code=201, response_model=PaymentCreated)
def create_payment(payload: PaymentIn, store: RecordStore = Depends(get_store),
                   principal: Principal = Depends(get_principal)):
    payment_id = payments.settle_payment(store, payload)
    return PaymentCreated(message="Payment saved successfully", paymentId=payment_id)


@router.post("/payments/reconcile", response_model=ReconcileReport)
def reconcile(store: RecordStore = Depends(get_store), principal: Principal = Depends(get_principal)):
    reconciled, failed = payments.reconcile_payments(store)
    return ReconcileReport(reconciled=reconciled, failed=failed)


# -------------------------------
# App factory
# -------------------------------

def create_app(store: Optional[RecordStore] = None, identity: Optional[IdentityProvider] = None) -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store", None) is None:
            app.state.store = RecordStore.from_settings(settings)
        if getattr(app.state, "identity", None) is None:
            app.state.identity = FirebaseIdentityProvider.from_settings(settings)
        logger.info("Elite Club API ready")
        yield

    app = FastAPI(title="Elite Club - Sports Club Management API", lifespan=lifespan)
    app.state.store = store
    app.state.identity = identity

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router)
    return app


logging.basicConfig(level=get_settings().log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
