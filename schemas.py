"""
Database Schemas for the Elite Club backend

Each document model maps to a MongoDB collection (courts, bookings, users,
coupons, announcements, payments). Field names follow the camelCase used by
the club's web client. Courts and bookings accept extra descriptive fields.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal, Union

BookingStatus = Literal["pending", "approved", "confirmed"]
Role = Literal["user", "member"]


class Court(BaseModel):
    """
    Courts collection schema
    Collection name: "courts"
    """
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    type: Optional[str] = None
    price: Optional[float] = None
    image: Optional[str] = None


class Booking(BaseModel):
    """
    Bookings collection schema
    Collection name: "bookings"
    """
    model_config = ConfigDict(extra="allow")

    email: Optional[str] = Field(None, description="Owner email; defaults to the caller")
    courtId: Optional[str] = None
    status: BookingStatus = "pending"
    createdAt: Optional[str] = None


class User(BaseModel):
    """
    Users collection schema
    Collection name: "users"
    """
    model_config = ConfigDict(extra="allow")

    email: str
    name: Optional[str] = None
    role: Role = "user"


class CouponIn(BaseModel):
    coupon: str = Field(..., min_length=1)
    discount: Union[float, str]
    description: Optional[str] = None


class CouponValidation(BaseModel):
    coupon: str
    discount: Union[int, float]
    description: Optional[str] = None


class AnnouncementIn(BaseModel):
    title: Optional[str] = None
    message: Optional[str] = None


class ApprovalRequest(BaseModel):
    status: str
    approvedAt: Optional[str] = None
    userEmail: Optional[str] = None


class ApprovalResponse(BaseModel):
    success: bool
    message: str
    userUpdated: bool


class PaymentIn(BaseModel):
    """Required fields are checked by the settlement engine, not here."""
    model_config = ConfigDict(extra="allow")

    bookingId: Optional[str] = None
    email: Optional[str] = None
    price: Optional[float] = None


class PaymentCreated(BaseModel):
    message: str
    paymentId: str


class MemberRemoval(BaseModel):
    success: bool
    message: str
    deletedBookings: int
    warnings: List[str] = []


class ReconcileReport(BaseModel):
    reconciled: int
    failed: int
